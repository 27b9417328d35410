"""Cryptographic primitives — ordered Merkle root, ledger digest, anchoring."""

from gallery.crypto.anchor import LedgerDigest, ledger_digest
from gallery.crypto.merkle import merkle_root

__all__ = ["LedgerDigest", "ledger_digest", "merkle_root"]
