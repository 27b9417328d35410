"""Ledger anchoring — embeds a digest of the ledger in an Ethereum transaction.

Anchoring gives third parties a timestamped, tamper-evident witness
that the proposal ledger and badge map existed in an exact form at an
exact moment. No contract code runs on-chain: the digest rides in the
data field of a 0-value self-send.

The digest commits to both the audit trail (ordered Merkle root of
event hashes) and the persisted state document.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from gallery.crypto.merkle import merkle_root

EXPLORERS = {
    1: "https://etherscan.io/tx/",
    11155111: "https://sepolia.etherscan.io/tx/",
}


@dataclass(frozen=True)
class LedgerDigest:
    events_root: str
    state_hash: str
    event_count: int
    digest: str  # hex, no prefix: what gets anchored


@dataclass(frozen=True)
class AnchorRecord:
    """A record of a successful anchor."""
    sha256_hash: str
    tx_hash: str
    block_number: int
    chain_id: int
    timestamp_utc: str
    explorer_url: str


def state_hash(document: dict[str, Any]) -> str:
    """Canonical SHA-256 of a state document: sorted keys, UTF-8."""
    canonical = json.dumps(document, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return "sha256:" + hashlib.sha256(canonical).hexdigest()


def ledger_digest(event_hashes: list[str], document: dict[str, Any]) -> LedgerDigest:
    events_root = merkle_root(event_hashes)
    doc_hash = state_hash(document)
    combined = f"{events_root}|{doc_hash}".encode("utf-8")
    return LedgerDigest(
        events_root=events_root,
        state_hash=doc_hash,
        event_count=len(event_hashes),
        digest=hashlib.sha256(combined).hexdigest(),
    )


def anchor_to_chain(
    digest: str,
    rpc_url: str,
    private_key: str,
    chain_id: int = 11155111,  # Sepolia
    gas: int = 30_000,
    gas_price_gwei: str = "2",
    timeout: int = 300,
) -> AnchorRecord:
    """Send a 0-value self-send carrying ``digest`` and wait for one confirmation."""
    from web3 import HTTPProvider, Web3
    from eth_account import Account

    w3 = Web3(HTTPProvider(rpc_url))
    acct = Account.from_key(private_key)

    tx = {
        "to": acct.address,
        "value": 0,
        "gas": gas,
        "gasPrice": w3.to_wei(gas_price_gwei, "gwei"),
        "nonce": w3.eth.get_transaction_count(acct.address),
        "chainId": chain_id,
        "data": bytes.fromhex(digest),
    }
    signed = acct.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)

    return AnchorRecord(
        sha256_hash=digest,
        tx_hash=tx_hash.hex(),
        block_number=receipt.blockNumber,
        chain_id=chain_id,
        timestamp_utc=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        explorer_url=EXPLORERS.get(chain_id, "") + tx_hash.hex(),
    )
