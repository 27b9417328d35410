"""Gallery CLI — command-line interface for the sponsorship ledger.

Every invocation is one call against the persisted ledger. The call
context (who is calling, how much is attached, what time it is) is
given with global flags, the way a wallet would sign a transaction:

Usage:
    python -m gallery.cli status
    python -m gallery.cli --caller alice --attach 3000000000000000000000000 \\
        submit-create --badge-id b1 --group g1 --name "Top 10" \\
        --badge-description "Top ten contracts" --days 30 --deposit 3000000000000000000000000
    python -m gallery.cli --caller owner --attach 1 accept --id 0
    python -m gallery.cli --caller alice --attach 1 rescind --id 0
    python -m gallery.cli proposals --status pending
    python -m gallery.cli quote-deposit --kind create --days 30
    python -m gallery.cli check-invariants
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Optional

from gallery.errors import GalleryError
from gallery.host import LocalHost
from gallery.models.badge import ONE_DAY, Badge, BadgeAction, BadgeCreate, BadgeExtend
from gallery.persistence.event_log import EventLog
from gallery.persistence.state_store import StateStore
from gallery.policy.resolver import PolicyResolver
from gallery.service import GalleryService, ServiceResult


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"

PROPOSAL_VIEWS = ("all", "pending", "accepted", "rejected", "rescinded", "expired")


def _make_service(args: argparse.Namespace) -> tuple[GalleryService, LocalHost]:
    """Create a GalleryService with durable persistence and the call context from flags."""
    data_dir: Path = args.data
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(args.config)
    state_store = StateStore(storage_path=data_dir / "state.json")
    event_log = EventLog(storage_path=data_dir / "events.jsonl")
    host = LocalHost(
        state_store.byte_size,
        caller=args.caller,
        attached=args.attach,
        now=args.now,
        storage_byte_price=resolver.storage_byte_price(),
    )
    service = GalleryService(resolver, host, state_store, event_log=event_log)
    return service, host


def _duration(args: argparse.Namespace) -> Optional[int]:
    """--duration (ns) wins over --days; neither means no value."""
    if getattr(args, "duration", None) is not None:
        return args.duration
    if getattr(args, "days", None) is not None:
        return args.days * ONE_DAY
    return None


def _failed(message: str) -> int:
    print(f"Failed: {message}", file=sys.stderr)
    return 1


def _report(result: ServiceResult, host: LocalHost) -> int:
    if not result.success:
        return _failed("; ".join(result.errors))
    print(json.dumps(result.data, indent=2, default=str))
    for transfer in host.transfers:
        print(f"Transfer: {transfer.amount} -> {transfer.recipient}")
    if "warning" in result.data:
        print(f"Warning: {result.data['warning']}", file=sys.stderr)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    service, _ = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def _submit(args: argparse.Namespace, tag: str, action: BadgeAction) -> int:
    service, host = _make_service(args)
    result = service.submit(
        tag=tag,
        description=args.description,
        msg=action,
        deposit=args.deposit,
        duration=args.ttl,
    )
    return _report(result, host)


def cmd_submit_create(args: argparse.Namespace) -> int:
    duration = _duration(args)
    if duration is None:
        return _failed("--days or --duration is required")
    try:
        action = BadgeCreate(
            id=args.badge_id,
            group_id=args.group,
            name=args.name,
            description=args.badge_description,
            duration=duration,
            start_at=args.start_at,
        )
    except GalleryError as e:
        return _failed(str(e))
    return _submit(args, "badge_create", action)


def cmd_submit_extend(args: argparse.Namespace) -> int:
    duration = _duration(args)
    if duration is None:
        return _failed("--days or --duration is required")
    try:
        action = BadgeExtend(id=args.badge_id, duration=duration)
    except GalleryError as e:
        return _failed(str(e))
    return _submit(args, "badge_extend", action)


def cmd_accept(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.accept(args.id), host)


def cmd_reject(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.reject(args.id), host)


def cmd_rescind(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.rescind(args.id), host)


def cmd_proposals(args: argparse.Namespace) -> int:
    service, _ = _make_service(args)
    views = {
        "all": service.get_all_proposals,
        "pending": service.get_pending_proposals,
        "accepted": service.get_accepted_proposals,
        "rejected": service.get_rejected_proposals,
        "rescinded": service.get_rescinded_proposals,
        "expired": service.get_expired_proposals,
    }
    proposals = views[args.status]()
    print(json.dumps([service.proposal_to_dict(p) for p in proposals], indent=2))
    return 0


def cmd_badges(args: argparse.Namespace) -> int:
    service, _ = _make_service(args)
    print(json.dumps([b.to_dict() for b in service.get_badges()], indent=2))
    return 0


def cmd_badge(args: argparse.Namespace) -> int:
    service, _ = _make_service(args)
    badge = service.get_badge(args.id)
    if badge is None:
        print(f"Badge does not exist: {args.id}", file=sys.stderr)
        return 1
    print(json.dumps(badge.to_dict(), indent=2))
    return 0


def cmd_add_tags(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.add_tags(args.tags), host)


def cmd_remove_tags(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.remove_tags(args.tags), host)


def cmd_set_duration(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    duration = None if args.clear else _duration(args)
    if duration is None and not args.clear:
        return _failed("--days, --duration or --clear is required")
    return _report(service.set_default_duration(duration), host)


def cmd_set_badge_enabled(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.set_badge_enabled(args.id, args.enabled), host)


def cmd_insert_badge(args: argparse.Namespace) -> int:
    """Direct insert. Without a duration the badge never ends."""
    service, host = _make_service(args)
    now = host.now()
    try:
        badge = Badge(
            id=args.id,
            group_id=args.group,
            name=args.name,
            description=args.badge_description,
            is_enabled=True,
            created_at=now,
            start_at=args.start_at if args.start_at is not None else now,
            duration=_duration(args),
        )
    except GalleryError as e:
        return _failed(str(e))
    return _report(service.insert_badge(badge), host)


def cmd_remove_badge(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.remove_badge(args.id), host)


def cmd_set_rate(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.set_badge_rate_per_day(args.value), host)


def cmd_set_max_duration(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.set_badge_max_active_duration(args.value), host)


def cmd_set_min_deposit(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.set_badge_min_creation_deposit(args.value), host)


def cmd_quote_deposit(args: argparse.Namespace) -> int:
    """Print the smallest deposit the badge module accepts for an action."""
    service, _ = _make_service(args)
    duration = _duration(args)
    if duration is None:
        return _failed("--days or --duration is required")
    try:
        if args.kind == "create":
            action: BadgeAction = BadgeCreate(id="", group_id="", name="", description="", duration=duration)
        else:
            action = BadgeExtend(id="", duration=duration)
    except GalleryError as e:
        return _failed(str(e))
    print(service.quote_deposit(action))
    return 0


def cmd_propose_owner(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.own_propose_owner(args.account), host)


def cmd_accept_owner(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.own_accept_owner(), host)


def cmd_renounce_owner(args: argparse.Namespace) -> int:
    service, host = _make_service(args)
    return _report(service.own_renounce_owner(), host)


def cmd_digest(args: argparse.Namespace) -> int:
    service, _ = _make_service(args)
    digest = service.ledger_digest()
    print(json.dumps({
        "events_root": digest.events_root,
        "state_hash": digest.state_hash,
        "event_count": digest.event_count,
        "digest": digest.digest,
    }, indent=2))
    return 0


def cmd_anchor(args: argparse.Namespace) -> int:
    """Anchor the ledger digest on chain. Requires SEPOLIA_RPC_URL and PRIVATE_KEY."""
    from dotenv import load_dotenv
    from gallery.crypto.anchor import anchor_to_chain

    load_dotenv(ROOT / ".env")
    rpc_url = os.getenv("SEPOLIA_RPC_URL")
    private_key = os.getenv("PRIVATE_KEY") or os.getenv("SEPOLIA_PRIVATE_KEY")
    if not rpc_url or not private_key:
        return _failed("missing SEPOLIA_RPC_URL and/or PRIVATE_KEY in .env")

    service, host = _make_service(args)
    # Checked up front so nothing is sent on chain for a call that cannot be recorded
    if args.attach != 1 or service.own_get_owner() != args.caller:
        return _failed("anchoring requires the owner with exactly 1 unit attached")

    digest = service.ledger_digest()
    record = anchor_to_chain(digest.digest, rpc_url, private_key, chain_id=args.chain_id)
    print(f"Anchored {digest.digest} in tx {record.tx_hash} (block {record.block_number})")
    if record.explorer_url:
        print(record.explorer_url)
    return _report(service.record_anchor(record), host)


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run configuration and accounting invariant checks."""
    tools_dir = ROOT / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(config_dir=args.config, state_path=args.data / "state.json")


def _add_duration_args(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--days", type=int, help="Duration in whole days")
    group.add_argument("--duration", type=int, help="Duration in nanoseconds")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gallery",
        description="Stats Gallery — sponsorship ledger and badge CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=DEFAULT_DATA,
        help="Path to data directory (default: data/)",
    )
    parser.add_argument("--caller", default="", help="Calling account")
    parser.add_argument("--attach", type=int, default=0, help="Attached payment (smallest unit)")
    parser.add_argument("--now", type=int, help="Clock override in nanoseconds (default: wall clock)")
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show ledger status")

    # submit-create / submit-extend
    p_create = sub.add_parser("submit-create", help="Propose a new badge")
    p_create.add_argument("--badge-id", required=True, help="Badge ID")
    p_create.add_argument("--group", required=True, help="Badge group ID")
    p_create.add_argument("--name", required=True, help="Badge name")
    p_create.add_argument("--badge-description", default="", help="Badge description")
    p_create.add_argument("--start-at", type=int, help="Start time in ns (default: acceptance time)")
    _add_duration_args(p_create)

    p_extend = sub.add_parser("submit-extend", help="Propose extending a badge")
    p_extend.add_argument("--badge-id", required=True, help="Badge ID")
    _add_duration_args(p_extend)

    for p in (p_create, p_extend):
        p.add_argument("--description", default="", help="Proposal description")
        p.add_argument("--deposit", type=int, required=True, help="Escrowed deposit (smallest unit)")
        p.add_argument("--ttl", type=int, help="Requested proposal time-to-live in ns")

    # accept / reject / rescind
    for name, help_text in (
        ("accept", "Accept a pending proposal (owner)"),
        ("reject", "Reject a pending proposal (owner)"),
        ("rescind", "Rescind your own proposal and reclaim the deposit"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--id", type=int, required=True, help="Proposal ID")

    # proposals
    p_list = sub.add_parser("proposals", help="List proposals")
    p_list.add_argument("--status", default="all", choices=PROPOSAL_VIEWS)

    # badges / badge
    sub.add_parser("badges", help="List enabled, unexpired badges")
    p_badge = sub.add_parser("badge", help="Show one badge (any state)")
    p_badge.add_argument("--id", required=True, help="Badge ID")

    # tags
    p_add = sub.add_parser("add-tags", help="Recognise proposal tags (owner)")
    p_add.add_argument("tags", nargs="+")
    p_rm = sub.add_parser("remove-tags", help="Stop accepting proposal tags (owner)")
    p_rm.add_argument("tags", nargs="+")

    # set-duration
    p_dur = sub.add_parser("set-duration", help="Set the default proposal time-to-live (owner)")
    _add_duration_args(p_dur)
    p_dur.add_argument("--clear", action="store_true", help="Proposals never expire")

    # badge administration
    p_en = sub.add_parser("set-badge-enabled", help="Enable or disable a badge (owner)")
    p_en.add_argument("--id", required=True, help="Badge ID")
    toggle = p_en.add_mutually_exclusive_group(required=True)
    toggle.add_argument("--enabled", dest="enabled", action="store_true")
    toggle.add_argument("--disabled", dest="enabled", action="store_false")

    p_ins = sub.add_parser("insert-badge", help="Insert or replace a badge directly (owner)")
    p_ins.add_argument("--id", required=True, help="Badge ID")
    p_ins.add_argument("--group", required=True, help="Badge group ID")
    p_ins.add_argument("--name", required=True, help="Badge name")
    p_ins.add_argument("--badge-description", default="", help="Badge description")
    p_ins.add_argument("--start-at", type=int, help="Start time in ns (default: now)")
    _add_duration_args(p_ins)

    p_rmb = sub.add_parser("remove-badge", help="Delete a badge (owner)")
    p_rmb.add_argument("--id", required=True, help="Badge ID")

    for name, help_text in (
        ("set-rate", "Set badge rate per day (owner)"),
        ("set-max-duration", "Set badge max active duration in ns (owner)"),
        ("set-min-deposit", "Set badge minimum creation deposit (owner)"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--value", type=int, required=True)

    # quote-deposit
    p_quote = sub.add_parser("quote-deposit", help="Smallest accepted deposit for a badge action")
    p_quote.add_argument("--kind", required=True, choices=["create", "extend"])
    _add_duration_args(p_quote)

    # ownership
    p_prop = sub.add_parser("propose-owner", help="Propose a new owner (owner)")
    p_prop.add_argument("--account", help="Proposed owner (omit to clear)")
    sub.add_parser("accept-owner", help="Accept a pending ownership proposal")
    sub.add_parser("renounce-owner", help="Give up ownership for good (owner)")

    # anchoring
    sub.add_parser("digest", help="Show the ledger digest")
    p_anchor = sub.add_parser("anchor", help="Anchor the ledger digest on chain (owner)")
    p_anchor.add_argument("--chain-id", type=int, default=11155111, help="Chain ID (default: Sepolia)")

    # check-invariants
    sub.add_parser("check-invariants", help="Run configuration and accounting checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "submit-create": cmd_submit_create,
        "submit-extend": cmd_submit_extend,
        "accept": cmd_accept,
        "reject": cmd_reject,
        "rescind": cmd_rescind,
        "proposals": cmd_proposals,
        "badges": cmd_badges,
        "badge": cmd_badge,
        "add-tags": cmd_add_tags,
        "remove-tags": cmd_remove_tags,
        "set-duration": cmd_set_duration,
        "set-badge-enabled": cmd_set_badge_enabled,
        "insert-badge": cmd_insert_badge,
        "remove-badge": cmd_remove_badge,
        "set-rate": cmd_set_rate,
        "set-max-duration": cmd_set_max_duration,
        "set-min-deposit": cmd_set_min_deposit,
        "quote-deposit": cmd_quote_deposit,
        "propose-owner": cmd_propose_owner,
        "accept-owner": cmd_accept_owner,
        "renounce-owner": cmd_renounce_owner,
        "digest": cmd_digest,
        "anchor": cmd_anchor,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
