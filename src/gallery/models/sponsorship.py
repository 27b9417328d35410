"""Sponsorship models — proposals, submissions and their lifecycle.

All amounts are integers in the smallest indivisible unit. All times
and durations are integer nanoseconds supplied by the host.

Lifecycle (fail-closed, no other transitions exist):
    PENDING → ACCEPTED     (authority, not expired)
    PENDING → REJECTED     (authority, not expired)
    PENDING → RESCINDED    (author, expiry irrelevant)
    REJECTED → RESCINDED   (author reclaims the deposit)

EXPIRED is a derived view over PENDING proposals, never stored.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from gallery.guards import check_u64, check_u128

T = TypeVar("T")


class ProposalStatus(str, enum.Enum):
    """Stored lifecycle state of a proposal."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    RESCINDED = "rescinded"


PROPOSAL_TRANSITIONS: Dict[ProposalStatus, frozenset] = {
    ProposalStatus.PENDING: frozenset({
        ProposalStatus.ACCEPTED,
        ProposalStatus.REJECTED,
        ProposalStatus.RESCINDED,
    }),
    ProposalStatus.REJECTED: frozenset({ProposalStatus.RESCINDED}),
    ProposalStatus.ACCEPTED: frozenset(),
    ProposalStatus.RESCINDED: frozenset(),
}


@dataclass(frozen=True)
class ProposalSubmission(Generic[T]):
    """What a caller asks the ledger to record.

    ``deposit`` is the economic stake, separate from storage rent.
    ``duration`` is a requested time-to-live; the ledger default caps it.
    """
    tag: str
    description: str
    deposit: int
    msg: Optional[T] = None
    duration: Optional[int] = None

    def __post_init__(self) -> None:
        check_u128("deposit", self.deposit)
        if self.duration is not None:
            check_u64("duration", self.duration)


@dataclass(frozen=True)
class Proposal(Generic[T]):
    """A recorded proposal.

    Frozen: the ledger produces a new record on each status transition,
    and only ``status`` and ``resolved_at`` may differ between versions.
    """
    id: int
    description: str
    tag: str
    msg: Optional[T]
    author_id: str
    deposit: int
    status: ProposalStatus
    created_at: int
    duration: Optional[int] = None
    resolved_at: Optional[int] = None

    def is_expired(self, now: int) -> bool:
        if self.duration is None:
            return False
        return self.created_at + self.duration < now

    @property
    def expires_at(self) -> Optional[int]:
        if self.duration is None:
            return None
        return self.created_at + self.duration

    def to_dict(
        self,
        encode_msg: Optional[Callable[[Any], Any]] = None,
    ) -> dict[str, Any]:
        """JSON-safe form. Amounts are decimal strings (u128 safe)."""
        msg: Any = self.msg
        if msg is not None and encode_msg is not None:
            msg = encode_msg(msg)
        return {
            "id": self.id,
            "description": self.description,
            "tag": self.tag,
            "msg": msg,
            "author_id": self.author_id,
            "deposit": str(self.deposit),
            "status": self.status.value,
            "created_at": self.created_at,
            "duration": self.duration,
            "resolved_at": self.resolved_at,
        }

    @staticmethod
    def from_dict(
        data: dict[str, Any],
        decode_msg: Optional[Callable[[Any], Any]] = None,
    ) -> Proposal:
        msg = data.get("msg")
        if msg is not None and decode_msg is not None:
            msg = decode_msg(msg)
        return Proposal(
            id=int(data["id"]),
            description=data["description"],
            tag=data["tag"],
            msg=msg,
            author_id=data["author_id"],
            deposit=int(data["deposit"]),
            status=ProposalStatus(data["status"]),
            created_at=int(data["created_at"]),
            duration=data.get("duration"),
            resolved_at=data.get("resolved_at"),
        )
