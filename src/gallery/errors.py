"""Failure taxonomy for the sponsorship kernel and the badge module.

Every failure aborts the call that raised it. Engines raise these;
the service layer rolls back and converts them into a failed
ServiceResult carrying the message and the stable ``code``.

All errors are ValueErrors so callers that only care about
"the request was invalid" can catch the builtin.
"""

from __future__ import annotations


class GalleryError(ValueError):
    """Base class. ``code`` is a stable machine-readable identifier."""
    code = "gallery_error"


# -- Authorization ---------------------------------------------------------

class NotAuthority(GalleryError):
    code = "not_authority"

    def __init__(self) -> None:
        super().__init__("Owner only")


class ProposedOwnerOnly(GalleryError):
    code = "proposed_owner_only"

    def __init__(self) -> None:
        super().__init__("Proposed owner only")


class NotAuthor(GalleryError):
    code = "not_author"

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(
            f"Proposal {proposal_id} can only be rescinded by original author"
        )


# -- Payment ---------------------------------------------------------------

class ConfirmationRequired(GalleryError):
    code = "confirmation_required"

    def __init__(self, received: int) -> None:
        self.received = received
        super().__init__(
            f"Requires attached deposit of exactly 1 unit (received {received})"
        )


class DepositRequired(GalleryError):
    code = "deposit_required"

    def __init__(self) -> None:
        super().__init__("Deposit required")


class InsufficientDeposit(GalleryError):
    code = "insufficient_deposit"

    def __init__(self, required: int, received: int) -> None:
        self.required = required
        self.received = received
        super().__init__(
            f"Insufficient deposit. Required: {required} Received: {received}"
        )


class InvalidAmount(GalleryError):
    code = "invalid_amount"


# -- Lookup ----------------------------------------------------------------

class ProposalNotFound(GalleryError):
    code = "proposal_not_found"

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal does not exist: {proposal_id}")


class BadgeNotFound(GalleryError):
    code = "badge_not_found"

    def __init__(self, badge_id: str) -> None:
        self.badge_id = badge_id
        super().__init__(f"Badge does not exist: {badge_id}")


class UnknownTag(GalleryError):
    code = "unknown_tag"

    def __init__(self, tag: str) -> None:
        self.tag = tag
        super().__init__(f"Tag does not exist: {tag}")


# -- State -----------------------------------------------------------------

class AlreadyResolved(GalleryError):
    code = "already_resolved"

    def __init__(self, proposal_id: int, status: str) -> None:
        self.proposal_id = proposal_id
        self.status = status
        super().__init__(
            f"Proposal {proposal_id} has already been resolved (status: {status})"
        )


class CannotRescind(GalleryError):
    code = "cannot_rescind"

    def __init__(self, proposal_id: int, status: str) -> None:
        self.proposal_id = proposal_id
        self.status = status
        super().__init__(
            f"Proposal {proposal_id} cannot be rescinded from status {status}"
        )


class ProposalExpired(GalleryError):
    code = "expired"

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} is expired")


# -- Domain validation -----------------------------------------------------

class DuplicateBadge(GalleryError):
    code = "duplicate_id"

    def __init__(self, badge_id: str) -> None:
        self.badge_id = badge_id
        super().__init__(f"Badge ID already exists: {badge_id}")


class AlreadyEnded(GalleryError):
    code = "already_ended"

    def __init__(self, badge_id: str) -> None:
        self.badge_id = badge_id
        super().__init__(f"Badge {badge_id} would end before it is active")


class DurationTooLong(GalleryError):
    code = "duration_too_long"

    def __init__(self, requested: int, maximum: int) -> None:
        self.requested = requested
        self.maximum = maximum
        super().__init__(
            f"Exceeded maximum active duration: {requested} > {maximum}"
        )


class CannotExtendIndefinite(GalleryError):
    code = "cannot_extend_indefinite"

    def __init__(self, badge_id: str) -> None:
        self.badge_id = badge_id
        super().__init__(f"Badge {badge_id} has no end and cannot be extended")


class TagMismatch(GalleryError):
    code = "tag_mismatch"

    def __init__(self, tag: str, action: str) -> None:
        self.tag = tag
        self.action = action
        super().__init__(f"Action tag mismatch: tag {tag!r} carries {action}")


class MissingPayload(GalleryError):
    code = "missing_payload"

    def __init__(self, tag: str) -> None:
        self.tag = tag
        super().__init__(f"Proposal tagged {tag!r} requires an action payload")


class DepositTooLow(GalleryError):
    code = "deposit_too_low"

    def __init__(self, required: int, received: int) -> None:
        self.required = required
        self.received = received
        super().__init__(
            f"Deposit too low. Required: {required} Received: {received}"
        )


# -- Configuration ---------------------------------------------------------

class InvalidConfiguration(GalleryError):
    code = "invalid_configuration"
