"""Host facade — the runtime services the kernel treats as primitives.

The kernel never reads the wall clock, never decides who is calling,
and never moves value itself. It asks the host. ``LocalHost`` is the
in-process host used by the CLI and tests: it meters the state
store's encoded size and keeps an outbox of transfers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

# 1e19 yocto per byte, i.e. 1e-5 of a whole token per byte.
DEFAULT_STORAGE_BYTE_PRICE = 10**19


class Host(Protocol):
    def now(self) -> int: ...

    def caller_identity(self) -> str: ...

    def attached_payment(self) -> int: ...

    def storage_bytes_used(self) -> int: ...

    def storage_byte_price(self) -> int: ...

    def transfer(self, recipient: str, amount: int) -> None: ...


@dataclass(frozen=True)
class Transfer:
    """A value transfer handed to the host."""
    recipient: str
    amount: int


class LocalHost:
    """Single-process host.

    Call context (caller, attached payment, clock) is set per call,
    in the manner of a test VM context:

        host = LocalHost(store.byte_size)
        host.set_context("alice", attached=1, now=1_000)
        service.accept(0)
    """

    def __init__(
        self,
        meter: Callable[[], int],
        caller: str = "",
        attached: int = 0,
        now: Optional[int] = None,
        storage_byte_price: int = DEFAULT_STORAGE_BYTE_PRICE,
    ) -> None:
        self._meter = meter
        self.caller = caller
        self.attached = attached
        self.clock = now
        self.byte_price = storage_byte_price
        self.transfers: list[Transfer] = []

    def set_context(
        self,
        caller: str,
        attached: int = 0,
        now: Optional[int] = None,
    ) -> None:
        self.caller = caller
        self.attached = attached
        if now is not None:
            self.clock = now

    def now(self) -> int:
        if self.clock is None:
            return time.time_ns()
        return self.clock

    def caller_identity(self) -> str:
        return self.caller

    def attached_payment(self) -> int:
        return self.attached

    def storage_bytes_used(self) -> int:
        return self._meter()

    def storage_byte_price(self) -> int:
        return self.byte_price

    def transfer(self, recipient: str, amount: int) -> None:
        self.transfers.append(Transfer(recipient=recipient, amount=amount))

    def total_transferred_to(self, recipient: str) -> int:
        return sum(t.amount for t in self.transfers if t.recipient == recipient)
