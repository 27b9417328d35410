"""Append-only event log — the audit trail of every state change.

Every mutating call that succeeds writes its event records as one batch
before state is persisted. Events are immutable once written.
The log serves as:
1. The audit trail for proposals, refunds, badges and configuration.
2. The input to the Merkle root used for ledger anchoring.
3. A cross-check for the state store (accounting can be replayed).
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of ledger events."""
    # Proposal lifecycle
    PROPOSAL_SUBMITTED = "proposal_submitted"
    PROPOSAL_ACCEPTED = "proposal_accepted"
    PROPOSAL_REJECTED = "proposal_rejected"
    PROPOSAL_RESCINDED = "proposal_rescinded"
    # Ledger configuration
    TAGS_ADDED = "tags_added"
    TAGS_REMOVED = "tags_removed"
    PROPOSAL_DURATION_SET = "proposal_duration_set"
    # Badge domain
    BADGE_CREATED = "badge_created"
    BADGE_EXTENDED = "badge_extended"
    BADGE_INSERTED = "badge_inserted"
    BADGE_REMOVED = "badge_removed"
    BADGE_ENABLED_SET = "badge_enabled_set"
    BADGE_CONFIG_UPDATED = "badge_config_updated"
    # Ownership
    OWNER_PROPOSED = "owner_proposed"
    OWNER_ACCEPTED = "owner_accepted"
    OWNER_RENOUNCED = "owner_renounced"
    # Anchoring
    LEDGER_ANCHORED = "ledger_anchored"


def _canonical_digest(fields: dict[str, Any]) -> str:
    canonical = json.dumps(fields, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event.

    event_hash is SHA-256 over the canonical JSON of the other fields
    and is the Merkle leaf for anchoring.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        digest = _canonical_digest({
            "event_id": event_id,
            "event_kind": event_kind.value,
            "timestamp_utc": ts_str,
            "actor_id": actor_id,
            "payload": payload,
        })
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            event_hash=digest,
        )


class EventLog:
    """Append-only event log with optional JSONL persistence.

    Events can only be appended, never modified or deleted. On load,
    every record's hash is recomputed (fail-closed on tampering) and
    duplicate ids are rejected (replay protection).
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, event: EventRecord) -> None:
        """Raises ValueError if event_id is a duplicate."""
        self.append_many([event])

    def append_many(self, events: list[EventRecord]) -> None:
        """Append a batch as one unit: either every event is written or none is.

        All ids are checked before anything touches the file, and all lines
        go out in a single write.
        """
        seen: set[str] = set()
        for event in events:
            if event.event_id in self._event_ids or event.event_id in seen:
                raise ValueError(f"Duplicate event ID: {event.event_id}")
            seen.add(event.event_id)

        if self._storage_path:
            self._append_to_file(events)

        self._events.extend(events)
        self._event_ids.update(seen)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def event_hashes(self, kind: Optional[EventKind] = None) -> list[str]:
        return [e.event_hash for e in self.events(kind)]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, events: list[EventRecord]) -> None:
        lines = []
        for event in events:
            record = {
                "event_id": event.event_id,
                "event_kind": event.event_kind.value,
                "timestamp_utc": event.timestamp_utc,
                "actor_id": event.actor_id,
                "payload": event.payload,
                "event_hash": event.event_hash,
            }
            lines.append(json.dumps(record, sort_keys=True, ensure_ascii=False) + "\n")
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write("".join(lines))

    def _load_from_file(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                event_id = data["event_id"]

                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_digest({
                    "event_id": data["event_id"],
                    "event_kind": data["event_kind"],
                    "timestamp_utc": data["timestamp_utc"],
                    "actor_id": data["actor_id"],
                    "payload": data["payload"],
                })
                if data["event_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {data['event_hash']} != computed {expected_hash}"
                    )

                self._events.append(EventRecord(
                    event_id=event_id,
                    event_kind=EventKind(data["event_kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    event_hash=data["event_hash"],
                ))
                self._event_ids.add(event_id)
