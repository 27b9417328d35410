"""State store — JSON persistence for the ledger, badges and ownership.

Stores and recovers:
- Ownership (owner, proposed owner)
- Proposal ledger (tags, default duration, dense proposal list, totals)
- Badge registry (pricing config, badge map)

Writes are staged into an in-memory document with the ``save_*``
methods and made durable by ``flush()`` (temp file + atomic replace).
``byte_size()`` reports the encoded size of the staged document; the
local host meters storage growth with it, so a proposal's storage fee
is exactly the bytes it adds to the persisted state.

Amounts are written as decimal strings so u128 values survive any JSON
reader.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Optional

from gallery.badges.registry import BadgeConfig, BadgeRegistry
from gallery.models.badge import Badge
from gallery.models.sponsorship import Proposal
from gallery.ownership import Ownership
from gallery.sponsorship.ledger import ProposalLedger


def _encode(state: dict[str, Any]) -> bytes:
    return json.dumps(state, sort_keys=True, ensure_ascii=False).encode("utf-8")


class StateStore:
    """JSON file-based state persistence (in-memory when no path is given).

    Usage:
        store = StateStore(Path("data/state.json"))
        store.save_ledger(ledger, registry.encode_payload)
        store.flush()

        # On recovery:
        ledger = store.load_ledger(registry.decode_payload)
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._path = storage_path
        self._state: dict[str, Any] = {}
        if storage_path is not None and storage_path.exists():
            self._load()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def is_empty(self) -> bool:
        return not self._state

    def byte_size(self) -> int:
        return len(_encode(self._state))

    def document(self) -> dict[str, Any]:
        """A deep copy of the staged document."""
        return json.loads(_encode(self._state))

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as f:
            self._state = json.load(f)

    def flush(self) -> None:
        """Write the staged document durably. No-op for in-memory stores."""
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("wb") as f:
            f.write(_encode(self._state))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self._path)

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def save_ownership(self, ownership: Ownership) -> None:
        self._state["ownership"] = ownership.to_dict()

    def load_ownership(self) -> Optional[Ownership]:
        data = self._state.get("ownership")
        if data is None:
            return None
        return Ownership.from_dict(data)

    # ------------------------------------------------------------------
    # Proposal ledger
    # ------------------------------------------------------------------

    def save_ledger(
        self,
        ledger: ProposalLedger,
        encode_payload: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self._state["ledger"] = {
            "tags": ledger.get_tags(),
            "proposal_duration": ledger.get_duration(),
            "proposals": [p.to_dict(encode_payload) for p in ledger.get_all()],
            "total_deposits": str(ledger.total_deposits),
            "total_accepted_deposits": str(ledger.total_accepted_deposits),
        }

    def load_ledger(
        self,
        decode_payload: Optional[Callable[[Any], Any]] = None,
    ) -> Optional[ProposalLedger]:
        data = self._state.get("ledger")
        if data is None:
            return None
        return ProposalLedger.from_records(
            tags=data.get("tags", []),
            default_duration=data.get("proposal_duration"),
            proposals=[
                Proposal.from_dict(p, decode_payload) for p in data.get("proposals", [])
            ],
            total_deposits=int(data.get("total_deposits", "0")),
            total_accepted_deposits=int(data.get("total_accepted_deposits", "0")),
        )

    # ------------------------------------------------------------------
    # Badge registry
    # ------------------------------------------------------------------

    def save_badges(self, registry: BadgeRegistry) -> None:
        self._state["badges"] = {
            "config": registry.config.to_dict(),
            "records": {b.id: b.to_dict() for b in registry.all_badges()},
        }

    def load_badges(self) -> Optional[BadgeRegistry]:
        data = self._state.get("badges")
        if data is None:
            return None
        return BadgeRegistry(
            BadgeConfig.from_dict(data["config"]),
            badges=[Badge.from_dict(b) for b in data.get("records", {}).values()],
        )
