"""Tests for the ordered Merkle tree and the ledger digest."""

from gallery.crypto.anchor import ledger_digest, state_hash
from gallery.crypto.merkle import EMPTY_ROOT, merkle_root


def _leaf(c: str) -> str:
    return "sha256:" + c * 64


class TestMerkleRoot:
    def test_empty(self) -> None:
        assert merkle_root([]) == EMPTY_ROOT

    def test_single_leaf_is_root(self) -> None:
        assert merkle_root([_leaf("a")]) == _leaf("a")

    def test_order_matters(self) -> None:
        """The audit trail is a sequence, so reordering changes the root."""
        assert merkle_root([_leaf("a"), _leaf("b")]) != merkle_root([_leaf("b"), _leaf("a")])

    def test_deterministic(self) -> None:
        leaves = [_leaf(c) for c in "abcde"]
        assert merkle_root(leaves) == merkle_root(list(leaves))

    def test_appending_changes_root(self) -> None:
        leaves = [_leaf(c) for c in "abc"]
        assert merkle_root(leaves) != merkle_root(leaves + [_leaf("d")])


class TestLedgerDigest:
    def test_commits_to_events_and_state(self) -> None:
        hashes = [_leaf("a"), _leaf("b")]
        doc = {"ledger": {"total_deposits": "10"}}
        base = ledger_digest(hashes, doc)
        assert base.event_count == 2
        assert base.events_root == merkle_root(hashes)
        assert base.state_hash == state_hash(doc)
        assert len(base.digest) == 64
        assert ledger_digest(hashes[:1], doc).digest != base.digest
        assert ledger_digest(hashes, {"ledger": {"total_deposits": "11"}}).digest != base.digest

    def test_state_hash_ignores_key_order(self) -> None:
        assert state_hash({"a": 1, "b": 2}) == state_hash({"b": 2, "a": 1})
