#!/usr/bin/env python3
"""Gallery invariant checks against deployment parameters and persisted state."""

import json
import sys
from pathlib import Path
from typing import Optional


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"
STATE_PATH = ROOT / "data" / "state.json"

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
STATUSES = ("pending", "accepted", "rejected", "rescinded")
BADGE_TAGS = ("badge_create", "badge_extend")


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _amount(value, label: str, errors: list[str]) -> Optional[int]:
    """Amounts are stored as decimal strings."""
    try:
        amount = int(value)
    except (TypeError, ValueError):
        errors.append(f"{label} is not an integer amount: {value!r}")
        return None
    if not 0 <= amount <= U128_MAX:
        errors.append(f"{label} out of u128 range: {amount}")
        return None
    return amount


def check_params(params: dict, errors: list[str]) -> None:
    sponsorship = params.get("sponsorship", {})
    tags = sponsorship.get("tags", [])
    for tag in BADGE_TAGS:
        if tag not in tags:
            errors.append(f"sponsorship.tags missing badge tag: {tag}")
    if len(set(tags)) != len(tags):
        errors.append("sponsorship.tags must not contain duplicates")

    duration = sponsorship.get("proposal_duration_ns")
    if duration is not None and not 0 < int(duration) <= U64_MAX:
        errors.append(f"proposal_duration_ns must be in (0, 2^64), got {duration}")

    badges = params.get("badges", {})
    rate = _amount(badges.get("rate_per_day"), "badges.rate_per_day", errors)
    if rate is not None and rate <= 0:
        errors.append("badges.rate_per_day must be > 0")
    max_active = badges.get("max_active_duration_ns")
    if max_active is None or not 0 < int(max_active) <= U64_MAX:
        errors.append(f"badges.max_active_duration_ns must be in (0, 2^64), got {max_active}")
    _amount(badges.get("min_creation_deposit", "0"), "badges.min_creation_deposit", errors)

    price = params.get("host", {}).get("storage_byte_price")
    if price is not None:
        _amount(price, "host.storage_byte_price", errors)


def check_ledger(ledger: dict, errors: list[str]) -> None:
    """Dense ids, one-way lifecycle stamps and the two accounting closures."""
    expected_total = 0
    expected_accepted = 0
    for index, proposal in enumerate(ledger.get("proposals", [])):
        pid = proposal.get("id")
        if pid != index:
            errors.append(f"proposal ids must be dense: position {index} holds id {pid}")
        status = proposal.get("status")
        if status not in STATUSES:
            errors.append(f"proposal {pid} has unknown status {status!r}")
            continue
        deposit = _amount(proposal.get("deposit"), f"proposal {pid} deposit", errors)
        if deposit is None:
            continue

        resolved_at = proposal.get("resolved_at")
        if status == "pending" and resolved_at is not None:
            errors.append(f"pending proposal {pid} must not have resolved_at")
        if status != "pending":
            if resolved_at is None:
                errors.append(f"{status} proposal {pid} must have resolved_at")
            elif resolved_at < proposal.get("created_at", 0):
                errors.append(f"proposal {pid} resolved before it was created")

        if status != "rescinded":
            expected_total += deposit
        if status == "accepted":
            expected_accepted += deposit

    total = _amount(ledger.get("total_deposits", "0"), "total_deposits", errors)
    accepted = _amount(
        ledger.get("total_accepted_deposits", "0"), "total_accepted_deposits", errors,
    )
    if total is not None and total != expected_total:
        errors.append(
            f"total_deposits {total} != sum of non-rescinded deposits {expected_total}"
        )
    if accepted is not None and accepted != expected_accepted:
        errors.append(
            f"total_accepted_deposits {accepted} != sum of accepted deposits {expected_accepted}"
        )


def check_badges(badges: dict, errors: list[str]) -> None:
    config = badges.get("config", {})
    rate = _amount(config.get("rate_per_day"), "badge config rate_per_day", errors)
    if rate is not None and rate <= 0:
        errors.append("badge config rate_per_day must be > 0")
    if not 0 < int(config.get("max_active_duration", 0)) <= U64_MAX:
        errors.append("badge config max_active_duration must be > 0")

    for key, record in badges.get("records", {}).items():
        if record.get("id") != key:
            errors.append(f"badge stored under {key!r} has id {record.get('id')!r}")
        duration = record.get("duration")
        if duration is not None and not 0 <= duration <= U64_MAX:
            errors.append(f"badge {key} duration out of u64 range: {duration}")


def check(config_dir: Path = CONFIG_DIR, state_path: Path = STATE_PATH) -> int:
    errors: list[str] = []

    # --- Deployment parameters ---
    check_params(load_json(config_dir / "gallery_params.json"), errors)

    # --- Persisted state (optional: a fresh deployment has none) ---
    if state_path.exists():
        state = load_json(state_path)
        if "ledger" in state:
            check_ledger(state["ledger"], errors)
        if "badges" in state:
            check_badges(state["badges"], errors)
        ownership = state.get("ownership", {})
        if ownership.get("owner") is None and ownership.get("proposed_owner") is not None:
            errors.append("renounced ownership must not keep a proposed owner")

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check())
