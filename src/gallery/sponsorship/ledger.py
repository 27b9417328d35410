"""Proposal ledger — append-only record of time-bounded, escrowed proposals.

The ledger is a pure state machine. It never touches payments, storage
metering, the authority gate or the audit trail; the service layer
does. It only enforces what is knowable from its own state plus the
``now`` and ``caller`` it is given.

Accounting invariants (checked by tools/check_invariants.py):
    total_deposits          == sum(deposit) over non-RESCINDED proposals
    total_accepted_deposits == sum(deposit) over ACCEPTED proposals

Proposal ids equal insertion index: dense, gapless, never reused.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Generic, Iterable, Optional, TypeVar

from gallery.errors import (
    AlreadyResolved,
    CannotRescind,
    InvalidConfiguration,
    NotAuthor,
    ProposalExpired,
    ProposalNotFound,
    UnknownTag,
)
from gallery.guards import check_u64
from gallery.models.sponsorship import (
    PROPOSAL_TRANSITIONS,
    Proposal,
    ProposalStatus,
    ProposalSubmission,
)

T = TypeVar("T")


@dataclass(frozen=True)
class LedgerCheckpoint:
    """Everything needed to undo a call. Records are frozen, so a shallow copy suffices."""
    tags: tuple[str, ...]
    proposals: tuple[Proposal, ...]
    default_duration: Optional[int]
    total_deposits: int
    total_accepted_deposits: int


def effective_duration(
    default: Optional[int],
    requested: Optional[int],
) -> Optional[int]:
    """The shorter of the ledger default and the request; None if neither."""
    if default is not None and requested is not None:
        return min(default, requested)
    if default is not None:
        return default
    return requested


class ProposalLedger(Generic[T]):
    """Tags, proposals and the two deposit aggregates.

    Usage:
        ledger = ProposalLedger(["badge_create"], default_duration=ONE_DAY * 7)
        p = ledger.submit("alice", submission, now)
        p = ledger.accept(p.id, now)
    """

    def __init__(
        self,
        tags: Iterable[str] = (),
        default_duration: Optional[int] = None,
    ) -> None:
        self._tags: list[str] = []
        self.add_tags(tags)
        self._proposals: list[Proposal[T]] = []
        self._default_duration = (
            check_u64("default_duration", default_duration)
            if default_duration is not None else None
        )
        self._total_deposits = 0
        self._total_accepted_deposits = 0

    @classmethod
    def from_records(
        cls,
        tags: Iterable[str],
        default_duration: Optional[int],
        proposals: Iterable[Proposal[T]],
        total_deposits: int,
        total_accepted_deposits: int,
    ) -> ProposalLedger[T]:
        """Restore ledger state from persisted records."""
        ledger: ProposalLedger[T] = cls(tags, default_duration)
        for expected_id, proposal in enumerate(proposals):
            if proposal.id != expected_id:
                raise ValueError(
                    f"Proposal ids must be dense: expected {expected_id}, got {proposal.id}"
                )
            ledger._proposals.append(proposal)
        ledger._total_deposits = total_deposits
        ledger._total_accepted_deposits = total_accepted_deposits
        return ledger

    # ------------------------------------------------------------------
    # Tags and configuration
    # ------------------------------------------------------------------

    def get_tags(self) -> list[str]:
        return list(self._tags)

    def add_tags(self, tags: Iterable[str]) -> None:
        for tag in tags:
            if tag not in self._tags:
                self._tags.append(tag)

    def remove_tags(self, tags: Iterable[str]) -> None:
        """Existing proposals keep their tag; only future submissions are affected."""
        removing = set(tags)
        self._tags = [t for t in self._tags if t not in removing]

    def get_duration(self) -> Optional[int]:
        return self._default_duration

    def set_duration(self, duration: Optional[int]) -> None:
        """Set the default time-to-live. None clears it; zero or less is refused."""
        if duration is not None:
            if isinstance(duration, int) and not isinstance(duration, bool) and duration <= 0:
                raise InvalidConfiguration(f"duration must be > 0, got {duration}")
            check_u64("duration", duration)
        self._default_duration = duration

    @property
    def total_deposits(self) -> int:
        return self._total_deposits

    @property
    def total_accepted_deposits(self) -> int:
        return self._total_accepted_deposits

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        return len(self._proposals)

    def get_proposal(self, proposal_id: int) -> Optional[Proposal[T]]:
        if 0 <= proposal_id < len(self._proposals):
            return self._proposals[proposal_id]
        return None

    def get_all(self) -> list[Proposal[T]]:
        return list(self._proposals)

    def get_by_status(self, status: ProposalStatus) -> list[Proposal[T]]:
        return [p for p in self._proposals if p.status == status]

    def get_pending(self, now: int) -> list[Proposal[T]]:
        """PENDING and still within their time-to-live."""
        return [
            p for p in self._proposals
            if p.status == ProposalStatus.PENDING and not p.is_expired(now)
        ]

    def get_expired(self, now: int) -> list[Proposal[T]]:
        """PENDING but past their time-to-live. Derived, never stored."""
        return [
            p for p in self._proposals
            if p.status == ProposalStatus.PENDING and p.is_expired(now)
        ]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit(
        self,
        author_id: str,
        submission: ProposalSubmission[T],
        now: int,
    ) -> Proposal[T]:
        """Append a PENDING proposal and add its deposit to total_deposits.

        Payment checks belong to the caller; by the time this runs the
        service has already confirmed a deposit was attached.
        """
        if submission.tag not in self._tags:
            raise UnknownTag(submission.tag)

        proposal: Proposal[T] = Proposal(
            id=len(self._proposals),
            description=submission.description,
            tag=submission.tag,
            msg=submission.msg,
            author_id=author_id,
            deposit=submission.deposit,
            status=ProposalStatus.PENDING,
            created_at=now,
            duration=effective_duration(self._default_duration, submission.duration),
            resolved_at=None,
        )
        self._proposals.append(proposal)
        self._total_deposits += proposal.deposit
        return proposal

    def accept(self, proposal_id: int, now: int) -> Proposal[T]:
        """PENDING → ACCEPTED. The deposit stays escrowed for good."""
        proposal = self._resolvable(proposal_id, now)
        resolved = self._resolve(proposal, ProposalStatus.ACCEPTED, now)
        self._total_accepted_deposits += resolved.deposit
        return resolved

    def reject(self, proposal_id: int, now: int) -> Proposal[T]:
        """PENDING → REJECTED. The author may still rescind to reclaim the deposit."""
        proposal = self._resolvable(proposal_id, now)
        return self._resolve(proposal, ProposalStatus.REJECTED, now)

    def rescind(self, proposal_id: int, caller: str, now: int) -> Proposal[T]:
        """PENDING or REJECTED → RESCINDED, by the author, even after expiry.

        Returns the rescinded record; the caller refunds ``deposit``.
        """
        proposal = self._get(proposal_id)
        if proposal.author_id != caller:
            raise NotAuthor(proposal_id)
        if ProposalStatus.RESCINDED not in PROPOSAL_TRANSITIONS[proposal.status]:
            raise CannotRescind(proposal_id, proposal.status.value)
        resolved = self._resolve(proposal, ProposalStatus.RESCINDED, now)
        self._total_deposits -= resolved.deposit
        return resolved

    # ------------------------------------------------------------------
    # Rollback support
    # ------------------------------------------------------------------

    def checkpoint(self) -> LedgerCheckpoint:
        return LedgerCheckpoint(
            tags=tuple(self._tags),
            proposals=tuple(self._proposals),
            default_duration=self._default_duration,
            total_deposits=self._total_deposits,
            total_accepted_deposits=self._total_accepted_deposits,
        )

    def restore(self, checkpoint: LedgerCheckpoint) -> None:
        self._tags = list(checkpoint.tags)
        self._proposals = list(checkpoint.proposals)
        self._default_duration = checkpoint.default_duration
        self._total_deposits = checkpoint.total_deposits
        self._total_accepted_deposits = checkpoint.total_accepted_deposits

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, proposal_id: int) -> Proposal[T]:
        proposal = self.get_proposal(proposal_id)
        if proposal is None:
            raise ProposalNotFound(proposal_id)
        return proposal

    def _resolvable(self, proposal_id: int, now: int) -> Proposal[T]:
        proposal = self._get(proposal_id)
        if proposal.status != ProposalStatus.PENDING:
            raise AlreadyResolved(proposal_id, proposal.status.value)
        if proposal.is_expired(now):
            raise ProposalExpired(proposal_id)
        return proposal

    def _resolve(
        self,
        proposal: Proposal[T],
        status: ProposalStatus,
        now: int,
    ) -> Proposal[T]:
        """The only write path for existing records: status + resolved_at.

        resolved_at is stamped once, on leaving PENDING.
        """
        allowed = PROPOSAL_TRANSITIONS[proposal.status]
        if status not in allowed:
            raise ValueError(
                f"Invalid proposal transition: {proposal.status.value} → {status.value}"
            )
        resolved_at = proposal.resolved_at if proposal.resolved_at is not None else now
        resolved = replace(proposal, status=status, resolved_at=resolved_at)
        self._proposals[proposal.id] = resolved
        return resolved
