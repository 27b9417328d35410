"""Transition hook — how a domain module rides on the generic ledger.

The ledger knows nothing about what a payload means. After every
successful submit / accept / reject / rescind, the service hands the
proposal (in its new state) to exactly one hook. The hook may raise
to veto; the service then rolls the whole call back.

A hook also owns the JSON codec for its payload type, since it is the
only component that knows the payload's shape.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, TypeVar

from gallery.models.sponsorship import Proposal

T = TypeVar("T")


class TransitionHook(Protocol[T]):
    def on_transition(self, proposal: Proposal[T], now: int) -> None: ...

    def encode_payload(self, payload: T) -> Any: ...

    def decode_payload(self, data: Any) -> T: ...


class NullHook:
    """Hook for ledger-only deployments: accepts everything, payloads are raw JSON."""

    def on_transition(self, proposal: Proposal[Any], now: int) -> None:
        return None

    def encode_payload(self, payload: Any) -> Any:
        return payload

    def decode_payload(self, data: Any) -> Optional[Any]:
        return data
