"""Sponsorship kernel — generic proposal ledger and its transition hook."""

from gallery.sponsorship.hook import NullHook, TransitionHook
from gallery.sponsorship.ledger import ProposalLedger, effective_duration

__all__ = [
    "NullHook",
    "ProposalLedger",
    "TransitionHook",
    "effective_duration",
]
