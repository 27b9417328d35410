"""Ownership — single authority with a two-phase handoff.

State is ``{owner, proposed_owner}``:
    propose_owner(next)   owner only; sets (or clears) proposed_owner
    accept_owner()        proposed owner only; becomes owner
    renounce_owner()      owner only; clears both fields for good

The one-unit confirmation is the caller's concern (service layer).
"""

from __future__ import annotations

from typing import Any, Optional

from gallery.errors import NotAuthority, ProposedOwnerOnly


class Ownership:
    """The authority gate consumed by privileged operations.

    Usage:
        own = Ownership("alice")
        own.propose_owner("alice", "bob")
        own.accept_owner("bob")
        assert own.is_authority("bob")
    """

    def __init__(
        self,
        owner: Optional[str],
        proposed_owner: Optional[str] = None,
    ) -> None:
        self._owner = owner
        self._proposed_owner = proposed_owner

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    @property
    def proposed_owner(self) -> Optional[str]:
        return self._proposed_owner

    def current_authority(self) -> Optional[str]:
        return self._owner

    def is_authority(self, identity: str) -> bool:
        return self._owner is not None and self._owner == identity

    def assert_owner(self, caller: str) -> None:
        if not self.is_authority(caller):
            raise NotAuthority()

    def propose_owner(self, caller: str, proposed: Optional[str]) -> None:
        self.assert_owner(caller)
        self._proposed_owner = proposed

    def accept_owner(self, caller: str) -> None:
        if self._proposed_owner is None or self._proposed_owner != caller:
            raise ProposedOwnerOnly()
        self._owner = caller
        self._proposed_owner = None

    def renounce_owner(self, caller: str) -> None:
        self.assert_owner(caller)
        self._owner = None
        self._proposed_owner = None

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self._owner, "proposed_owner": self._proposed_owner}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ownership:
        return cls(data.get("owner"), data.get("proposed_owner"))
