"""Badge models — credential records and the actions that create or extend them.

A badge is a time-windowed credential. It comes into existence only
through an accepted Create proposal (or a direct authority insert),
and its window grows only through an accepted Extend proposal.

Pricing is linear in billable days: a duration is charged by whole
days, rounded up, at the configured rate per day.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from gallery.guards import check_u64

ONE_DAY = 1_000_000_000 * 60 * 60 * 24  # nanoseconds

TAG_BADGE_CREATE = "badge_create"
TAG_BADGE_EXTEND = "badge_extend"
BADGE_TAGS = (TAG_BADGE_CREATE, TAG_BADGE_EXTEND)


def billable_days(duration: int) -> int:
    """Whole days in ``duration``, rounded up. ``billable_days(0) == 0``."""
    return -(-duration // ONE_DAY)


@dataclass(frozen=True)
class Badge:
    """A stored badge.

    ``duration`` of None means the badge never ends. Such badges can
    only be created by a direct authority insert.
    """
    id: str
    group_id: str
    name: str
    description: str
    is_enabled: bool
    created_at: int
    start_at: int
    duration: Optional[int] = None

    def __post_init__(self) -> None:
        check_u64("created_at", self.created_at)
        check_u64("start_at", self.start_at)
        if self.duration is not None:
            check_u64("duration", self.duration)

    def is_expired(self, now: int) -> bool:
        if self.duration is None:
            return False
        return self.created_at + self.duration < now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "group_id": self.group_id,
            "name": self.name,
            "description": self.description,
            "is_enabled": self.is_enabled,
            "created_at": self.created_at,
            "start_at": self.start_at,
            "duration": self.duration,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Badge:
        return Badge(
            id=data["id"],
            group_id=data["group_id"],
            name=data["name"],
            description=data["description"],
            is_enabled=bool(data["is_enabled"]),
            created_at=int(data["created_at"]),
            start_at=int(data["start_at"]),
            duration=data.get("duration"),
        )


@dataclass(frozen=True)
class BadgeCreate:
    """Request a new badge active from ``start_at`` (default: acceptance time)."""
    id: str
    group_id: str
    name: str
    description: str
    duration: int
    start_at: Optional[int] = None

    def __post_init__(self) -> None:
        check_u64("duration", self.duration)
        if self.start_at is not None:
            check_u64("start_at", self.start_at)


@dataclass(frozen=True)
class BadgeExtend:
    """Request ``duration`` more nanoseconds on an existing badge."""
    id: str
    duration: int

    def __post_init__(self) -> None:
        check_u64("duration", self.duration)


BadgeAction = Union[BadgeCreate, BadgeExtend]


def action_name(action: Any) -> str:
    if isinstance(action, BadgeCreate):
        return "Create"
    if isinstance(action, BadgeExtend):
        return "Extend"
    return type(action).__name__


def required_deposit(
    action: BadgeAction,
    rate_per_day: int,
    min_creation_deposit: int,
) -> int:
    """Smallest deposit the badge module will accept for ``action``."""
    priced = billable_days(action.duration) * rate_per_day
    if isinstance(action, BadgeCreate):
        return max(min_creation_deposit, priced)
    return priced


def action_to_dict(action: BadgeAction) -> dict[str, Any]:
    if isinstance(action, BadgeCreate):
        return {
            "kind": "create",
            "id": action.id,
            "group_id": action.group_id,
            "name": action.name,
            "description": action.description,
            "duration": action.duration,
            "start_at": action.start_at,
        }
    if isinstance(action, BadgeExtend):
        return {"kind": "extend", "id": action.id, "duration": action.duration}
    raise TypeError(f"Not a badge action: {action!r}")


def action_from_dict(data: dict[str, Any]) -> BadgeAction:
    kind = data.get("kind")
    if kind == "create":
        return BadgeCreate(
            id=data["id"],
            group_id=data["group_id"],
            name=data["name"],
            description=data["description"],
            duration=int(data["duration"]),
            start_at=data.get("start_at"),
        )
    if kind == "extend":
        return BadgeExtend(id=data["id"], duration=int(data["duration"]))
    raise ValueError(f"Unknown badge action kind: {kind!r}")
