"""Ordered Merkle tree over the audit trail.

Unlike a set commitment, the ledger's history is ordered: leaves keep
append order, so reordering events changes the root. Odd levels pair
the last node with itself.
"""

from __future__ import annotations

import hashlib

EMPTY_ROOT = "sha256:" + hashlib.sha256(b"").hexdigest()


def _strip(h: str) -> str:
    return h.removeprefix("sha256:")


def _hash_pair(left: str, right: str) -> str:
    combined = f"{_strip(left)}{_strip(right)}".encode("utf-8")
    return "sha256:" + hashlib.sha256(combined).hexdigest()


def merkle_root(leaves: list[str]) -> str:
    if not leaves:
        return EMPTY_ROOT
    current = list(leaves)
    while len(current) > 1:
        nxt: list[str] = []
        for i in range(0, len(current), 2):
            left = current[i]
            right = current[i + 1] if i + 1 < len(current) else left
            nxt.append(_hash_pair(left, right))
        current = nxt
    root = current[0]
    return root if root.startswith("sha256:") else f"sha256:{root}"
