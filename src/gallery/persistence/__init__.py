"""Persistence — append-only audit trail and JSON state store."""

from gallery.persistence.event_log import EventKind, EventLog, EventRecord
from gallery.persistence.state_store import StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "StateStore"]
