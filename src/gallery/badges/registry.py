"""Badge registry — the badge domain bound to the proposal ledger.

The registry is the ledger's transition hook. Two tags are its own:

    badge_create → BadgeCreate payload
    badge_extend → BadgeExtend payload

On a PENDING proposal it pre-validates (raising vetoes the submission).
On an ACCEPTED proposal it re-runs the same checks against current
state, then commits. Other proposals sharing the ledger pass through.

Validation is repeated at acceptance because the badge map may have
changed in between (e.g. another proposal created the same badge id).

Create rules:
    1. id unused                                   (DuplicateBadge)
    2. start + duration > now                      (AlreadyEnded)
    3. duration <= max_active_duration             (DurationTooLong)
    4. deposit >= min_creation_deposit             (DepositTooLow)
    5. deposit >= billable_days(duration) * rate   (DepositTooLow)

Extend rules:
    1. badge exists                                (BadgeNotFound)
    2. badge has a finite duration                 (CannotExtendIndefinite)
    3. max(0, start + duration + extra - now) <= max_active_duration
    4. deposit >= billable_days(extra) * rate      (DepositTooLow)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional

from gallery.errors import (
    AlreadyEnded,
    BadgeNotFound,
    CannotExtendIndefinite,
    DepositTooLow,
    DuplicateBadge,
    DurationTooLong,
    InvalidConfiguration,
    MissingPayload,
    TagMismatch,
)
from gallery.guards import check_u64, check_u128
from gallery.models.badge import (
    TAG_BADGE_CREATE,
    TAG_BADGE_EXTEND,
    Badge,
    BadgeAction,
    BadgeCreate,
    BadgeExtend,
    action_from_dict,
    action_name,
    action_to_dict,
    billable_days,
)
from gallery.models.sponsorship import Proposal, ProposalStatus


@dataclass(frozen=True)
class BadgeConfig:
    """Pricing and duration limits. Each field is independently settable."""
    rate_per_day: int
    max_active_duration: int
    min_creation_deposit: int = 0

    def __post_init__(self) -> None:
        for name in ("rate_per_day", "max_active_duration"):
            value = getattr(self, name)
            if isinstance(value, int) and not isinstance(value, bool) and value <= 0:
                raise InvalidConfiguration(f"{name} must be > 0, got {value}")
        check_u128("rate_per_day", self.rate_per_day)
        check_u64("max_active_duration", self.max_active_duration)
        check_u128("min_creation_deposit", self.min_creation_deposit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rate_per_day": str(self.rate_per_day),
            "max_active_duration": self.max_active_duration,
            "min_creation_deposit": str(self.min_creation_deposit),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> BadgeConfig:
        return BadgeConfig(
            rate_per_day=int(data["rate_per_day"]),
            max_active_duration=int(data["max_active_duration"]),
            min_creation_deposit=int(data.get("min_creation_deposit", 0)),
        )


class BadgeRegistry:
    """Badge map plus the hook that feeds it from accepted proposals.

    Usage:
        registry = BadgeRegistry(BadgeConfig(rate, max_duration, min_deposit))
        registry.on_transition(pending_proposal, now)    # validates
        registry.on_transition(accepted_proposal, now)   # validates + commits
        registry.list_badges(now)
    """

    def __init__(
        self,
        config: BadgeConfig,
        badges: Optional[Iterable[Badge]] = None,
    ) -> None:
        self._config = config
        self._badges: dict[str, Badge] = {}
        for badge in badges or ():
            self._badges[badge.id] = badge

    # ------------------------------------------------------------------
    # Hook
    # ------------------------------------------------------------------

    def on_transition(self, proposal: Proposal[Any], now: int) -> None:
        if proposal.status not in (ProposalStatus.PENDING, ProposalStatus.ACCEPTED):
            return
        action = self._action_for(proposal)
        if action is None:
            return

        if isinstance(action, BadgeCreate):
            start = self.validate_create(action, proposal.deposit, now)
            if proposal.status == ProposalStatus.ACCEPTED:
                self._badges[action.id] = Badge(
                    id=action.id,
                    group_id=action.group_id,
                    name=action.name,
                    description=action.description,
                    is_enabled=True,
                    created_at=now,
                    start_at=start,
                    duration=action.duration,
                )
        else:
            existing = self.validate_extend(action, proposal.deposit, now)
            if proposal.status == ProposalStatus.ACCEPTED:
                self._badges[action.id] = replace(
                    existing, duration=existing.duration + action.duration,
                )

    def encode_payload(self, payload: Any) -> Any:
        if isinstance(payload, (BadgeCreate, BadgeExtend)):
            return action_to_dict(payload)
        return payload

    def decode_payload(self, data: Any) -> Any:
        if isinstance(data, dict) and data.get("kind") in ("create", "extend"):
            return action_from_dict(data)
        return data

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_create(self, action: BadgeCreate, deposit: int, now: int) -> int:
        """Check a Create against current state. Returns the effective start."""
        if action.id in self._badges:
            raise DuplicateBadge(action.id)
        start = action.start_at if action.start_at is not None else now
        if start + action.duration <= now:
            raise AlreadyEnded(action.id)
        if action.duration > self._config.max_active_duration:
            raise DurationTooLong(action.duration, self._config.max_active_duration)
        if deposit < self._config.min_creation_deposit:
            raise DepositTooLow(self._config.min_creation_deposit, deposit)
        priced = billable_days(action.duration) * self._config.rate_per_day
        if deposit < priced:
            raise DepositTooLow(priced, deposit)
        return start

    def validate_extend(self, action: BadgeExtend, deposit: int, now: int) -> Badge:
        """Check an Extend against current state. Returns the badge being extended."""
        existing = self._badges.get(action.id)
        if existing is None:
            raise BadgeNotFound(action.id)
        if existing.duration is None:
            raise CannotExtendIndefinite(action.id)
        remaining = max(
            0, existing.start_at + existing.duration + action.duration - now,
        )
        if remaining > self._config.max_active_duration:
            raise DurationTooLong(remaining, self._config.max_active_duration)
        priced = billable_days(action.duration) * self._config.rate_per_day
        if deposit < priced:
            raise DepositTooLow(priced, deposit)
        return existing

    # ------------------------------------------------------------------
    # Badge access and authority overrides
    # ------------------------------------------------------------------

    def get_badge(self, badge_id: str) -> Optional[Badge]:
        """Lookup ignores enabled/expired state."""
        return self._badges.get(badge_id)

    def list_badges(self, now: int) -> list[Badge]:
        """Public listing: enabled and not expired."""
        return [
            b for b in self._badges.values()
            if b.is_enabled and not b.is_expired(now)
        ]

    def all_badges(self) -> list[Badge]:
        return list(self._badges.values())

    def set_enabled(self, badge_id: str, is_enabled: bool) -> Badge:
        badge = self._badges.get(badge_id)
        if badge is None:
            raise BadgeNotFound(badge_id)
        updated = replace(badge, is_enabled=is_enabled)
        self._badges[badge_id] = updated
        return updated

    def insert_badge(self, badge: Badge) -> Optional[Badge]:
        """Direct insert, bypassing proposals. Returns the badge it replaced."""
        previous = self._badges.get(badge.id)
        self._badges[badge.id] = badge
        return previous

    def remove_badge(self, badge_id: str) -> Badge:
        badge = self._badges.pop(badge_id, None)
        if badge is None:
            raise BadgeNotFound(badge_id)
        return badge

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> BadgeConfig:
        return self._config

    def set_rate_per_day(self, rate_per_day: int) -> None:
        self._config = replace(self._config, rate_per_day=rate_per_day)

    def set_max_active_duration(self, max_active_duration: int) -> None:
        self._config = replace(self._config, max_active_duration=max_active_duration)

    def set_min_creation_deposit(self, min_creation_deposit: int) -> None:
        self._config = replace(self._config, min_creation_deposit=min_creation_deposit)

    # ------------------------------------------------------------------
    # Rollback support
    # ------------------------------------------------------------------

    def checkpoint(self) -> tuple[BadgeConfig, dict[str, Badge]]:
        return self._config, dict(self._badges)

    def restore(self, checkpoint: tuple[BadgeConfig, dict[str, Badge]]) -> None:
        self._config, badges = checkpoint
        self._badges = dict(badges)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _action_for(self, proposal: Proposal[Any]) -> Optional[BadgeAction]:
        """Match payload to tag. None means the proposal is not a badge action."""
        msg = proposal.msg
        if proposal.tag == TAG_BADGE_CREATE:
            if msg is None:
                raise MissingPayload(proposal.tag)
            if not isinstance(msg, BadgeCreate):
                raise TagMismatch(proposal.tag, action_name(msg))
            return msg
        if proposal.tag == TAG_BADGE_EXTEND:
            if msg is None:
                raise MissingPayload(proposal.tag)
            if not isinstance(msg, BadgeExtend):
                raise TagMismatch(proposal.tag, action_name(msg))
            return msg
        if isinstance(msg, (BadgeCreate, BadgeExtend)):
            raise TagMismatch(proposal.tag, action_name(msg))
        return None
