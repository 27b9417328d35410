"""Gallery service — unified facade for the sponsorship kernel and badges.

This is the contract surface. It orchestrates:
- Call-intent confirmation (exactly one unit attached on privileged calls)
- The authority gate (two-phase ownership)
- The proposal ledger (submit / accept / reject / rescind, tags, TTL)
- Storage rent and deposit accounting against the host's payment
- The badge registry, bound as the ledger's transition hook
- Audit trail (event log) and persistence (state store)

Every mutating call is all-or-nothing. Ledger, registry and ownership
are checkpointed on entry; any failure (validation, hook veto, audit
append) restores them and re-stages the state document, so no partial
write and no transfer survives. Refunds are handed to the host last,
after the audit event is durable.

Once the audit event is appended the call has happened: a failing
state-store flush after that point only raises a warning and marks
the service as persistence-degraded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from gallery.badges.registry import BadgeRegistry
from gallery.crypto.anchor import AnchorRecord, LedgerDigest, ledger_digest
from gallery.errors import DepositRequired, GalleryError, InsufficientDeposit
from gallery.guards import assert_one_unit
from gallery.host import Host
from gallery.models.badge import (
    Badge,
    BadgeAction,
    BadgeCreate,
    BadgeExtend,
    required_deposit,
)
from gallery.models.sponsorship import Proposal, ProposalStatus, ProposalSubmission
from gallery.ownership import Ownership
from gallery.persistence.event_log import EventKind, EventLog, EventRecord
from gallery.persistence.state_store import StateStore
from gallery.policy.resolver import PolicyResolver
from gallery.sponsorship.ledger import ProposalLedger


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Outcome:
    """What a successful call body hands back for auditing and settlement."""
    kind: EventKind
    payload: dict[str, Any]
    data: dict[str, Any] = field(default_factory=dict)
    transfers: list[tuple[str, int]] = field(default_factory=list)
    followups: list[tuple[EventKind, dict[str, Any]]] = field(default_factory=list)


def _utc(now_ns: int) -> datetime:
    return datetime.fromtimestamp(now_ns // 1_000_000_000, tz=timezone.utc)


class GalleryService:
    """Sponsorship kernel + badge module facade.

    Usage:
        store = StateStore(Path("data/state.json"))
        host = LocalHost(store.byte_size, storage_byte_price=resolver.storage_byte_price())
        service = GalleryService(resolver, host, store, event_log=EventLog(...))

        host.set_context("alice", attached=deposit + fee_allowance)
        result = service.submit("badge_create", "My badge", BadgeCreate(...), deposit)

        host.set_context("owner", attached=1)
        result = service.accept(result.data["proposal_id"])

    State is loaded from the store when it holds any; otherwise the
    deployment is initialised from the resolver and flushed.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        host: Host,
        state_store: StateStore,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._resolver = resolver
        self._host = host
        self._store = state_store
        self._event_log = event_log

        ownership = state_store.load_ownership()
        badges = state_store.load_badges()
        if ownership is None or badges is None:
            self._ownership = Ownership(resolver.owner_id())
            self._badges = BadgeRegistry(resolver.badge_config())
            self._ledger: ProposalLedger[BadgeAction] = ProposalLedger(
                resolver.sponsorship_tags(), resolver.proposal_duration(),
            )
            self._stage_state()
            self._store.flush()
        else:
            self._ownership = ownership
            self._badges = badges
            self._ledger = state_store.load_ledger(self._badges.decode_payload) or ProposalLedger(
                resolver.sponsorship_tags(), resolver.proposal_duration(),
            )
            self._stage_state()

        self._event_counter = event_log.count if event_log is not None else 0
        self._persistence_degraded: bool = False

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def own_get_owner(self) -> Optional[str]:
        return self._ownership.owner

    def own_get_proposed_owner(self) -> Optional[str]:
        return self._ownership.proposed_owner

    def own_propose_owner(self, proposed: Optional[str]) -> ServiceResult:
        def body() -> _Outcome:
            assert_one_unit(self._host.attached_payment())
            self._ownership.propose_owner(self._host.caller_identity(), proposed)
            return _Outcome(
                EventKind.OWNER_PROPOSED,
                {"proposed_owner": proposed},
                {"proposed_owner": proposed},
            )
        return self._execute(body)

    def own_accept_owner(self) -> ServiceResult:
        def body() -> _Outcome:
            assert_one_unit(self._host.attached_payment())
            self._ownership.accept_owner(self._host.caller_identity())
            return _Outcome(
                EventKind.OWNER_ACCEPTED,
                {"owner": self._ownership.owner},
                {"owner": self._ownership.owner},
            )
        return self._execute(body)

    def own_renounce_owner(self) -> ServiceResult:
        def body() -> _Outcome:
            assert_one_unit(self._host.attached_payment())
            self._ownership.renounce_owner(self._host.caller_identity())
            return _Outcome(EventKind.OWNER_RENOUNCED, {})
        return self._execute(body)

    # ------------------------------------------------------------------
    # Proposal lifecycle
    # ------------------------------------------------------------------

    def submit(
        self,
        tag: str,
        description: str,
        msg: Optional[BadgeAction],
        deposit: int,
        duration: Optional[int] = None,
    ) -> ServiceResult:
        """Record a PENDING proposal, charging storage rent plus ``deposit``.

        The attached payment must cover both. Any excess is refunded to
        the caller once the call has fully succeeded.
        """
        def body() -> _Outcome:
            attached = self._host.attached_payment()
            if attached < 1:
                raise DepositRequired()
            caller = self._host.caller_identity()
            now = self._host.now()
            submission: ProposalSubmission[BadgeAction] = ProposalSubmission(
                tag=tag,
                description=description,
                deposit=deposit,
                msg=msg,
                duration=duration,
            )

            bytes_before = self._host.storage_bytes_used()
            proposal = self._ledger.submit(caller, submission, now)
            self._stage_state()
            bytes_after = self._host.storage_bytes_used()

            storage_fee = max(0, bytes_after - bytes_before) * self._host.storage_byte_price()
            required = storage_fee + proposal.deposit
            if attached < required:
                raise InsufficientDeposit(required, attached)
            refund = attached - required

            self._badges.on_transition(proposal, now)

            return _Outcome(
                EventKind.PROPOSAL_SUBMITTED,
                {
                    "proposal_id": proposal.id,
                    "tag": proposal.tag,
                    "deposit": str(proposal.deposit),
                    "storage_fee": str(storage_fee),
                    "refund": str(refund),
                    "duration": proposal.duration,
                    "at": now,
                },
                self._proposal_data(proposal, storage_fee=storage_fee, refund=refund),
                [(caller, refund)],
            )
        return self._execute(body)

    def accept(self, proposal_id: int) -> ServiceResult:
        """Authority accepts a live PENDING proposal; the hook commits its effect."""
        def body() -> _Outcome:
            assert_one_unit(self._host.attached_payment())
            self._ownership.assert_owner(self._host.caller_identity())
            now = self._host.now()
            proposal = self._ledger.accept(proposal_id, now)
            self._badges.on_transition(proposal, now)
            return _Outcome(
                EventKind.PROPOSAL_ACCEPTED,
                {"proposal_id": proposal.id, "deposit": str(proposal.deposit), "at": now},
                self._proposal_data(proposal),
                followups=self._badge_effects(proposal),
            )
        return self._execute(body)

    def reject(self, proposal_id: int) -> ServiceResult:
        """Authority rejects a live PENDING proposal. The deposit stays escrowed."""
        def body() -> _Outcome:
            assert_one_unit(self._host.attached_payment())
            self._ownership.assert_owner(self._host.caller_identity())
            now = self._host.now()
            proposal = self._ledger.reject(proposal_id, now)
            self._badges.on_transition(proposal, now)
            return _Outcome(
                EventKind.PROPOSAL_REJECTED,
                {"proposal_id": proposal.id, "at": now},
                self._proposal_data(proposal),
            )
        return self._execute(body)

    def rescind(self, proposal_id: int) -> ServiceResult:
        """Author withdraws a PENDING or REJECTED proposal and gets the deposit back."""
        def body() -> _Outcome:
            assert_one_unit(self._host.attached_payment())
            now = self._host.now()
            proposal = self._ledger.rescind(proposal_id, self._host.caller_identity(), now)
            self._badges.on_transition(proposal, now)
            return _Outcome(
                EventKind.PROPOSAL_RESCINDED,
                {"proposal_id": proposal.id, "refund": str(proposal.deposit), "at": now},
                self._proposal_data(proposal, refund=proposal.deposit),
                [(proposal.author_id, proposal.deposit)],
            )
        return self._execute(body)

    # ------------------------------------------------------------------
    # Ledger configuration
    # ------------------------------------------------------------------

    def add_tags(self, tags: Iterable[str]) -> ServiceResult:
        tags = list(tags)

        def body() -> _Outcome:
            self._require_authority()
            self._ledger.add_tags(tags)
            return _Outcome(EventKind.TAGS_ADDED, {"tags": tags}, {"tags": self._ledger.get_tags()})
        return self._execute(body)

    def remove_tags(self, tags: Iterable[str]) -> ServiceResult:
        tags = list(tags)

        def body() -> _Outcome:
            self._require_authority()
            self._ledger.remove_tags(tags)
            return _Outcome(EventKind.TAGS_REMOVED, {"tags": tags}, {"tags": self._ledger.get_tags()})
        return self._execute(body)

    def set_default_duration(self, duration: Optional[int]) -> ServiceResult:
        """Set (or clear, with None) the default proposal time-to-live."""
        def body() -> _Outcome:
            self._require_authority()
            self._ledger.set_duration(duration)
            return _Outcome(
                EventKind.PROPOSAL_DURATION_SET,
                {"duration": duration},
                {"duration": duration},
            )
        return self._execute(body)

    # ------------------------------------------------------------------
    # Badge administration (bypasses the proposal flow)
    # ------------------------------------------------------------------

    def set_badge_enabled(self, badge_id: str, is_enabled: bool) -> ServiceResult:
        def body() -> _Outcome:
            self._require_authority()
            badge = self._badges.set_enabled(badge_id, is_enabled)
            return _Outcome(
                EventKind.BADGE_ENABLED_SET,
                {"badge_id": badge_id, "is_enabled": is_enabled},
                {"badge": badge.to_dict()},
            )
        return self._execute(body)

    def insert_badge(self, badge: Badge) -> ServiceResult:
        def body() -> _Outcome:
            self._require_authority()
            replaced = self._badges.insert_badge(badge)
            return _Outcome(
                EventKind.BADGE_INSERTED,
                {"badge": badge.to_dict(), "replaced": replaced is not None},
                {"badge": badge.to_dict()},
            )
        return self._execute(body)

    def remove_badge(self, badge_id: str) -> ServiceResult:
        def body() -> _Outcome:
            self._require_authority()
            removed = self._badges.remove_badge(badge_id)
            return _Outcome(
                EventKind.BADGE_REMOVED,
                {"badge_id": badge_id},
                {"badge": removed.to_dict()},
            )
        return self._execute(body)

    def set_badge_rate_per_day(self, rate_per_day: int) -> ServiceResult:
        return self._set_badge_config("rate_per_day", rate_per_day, self._badges.set_rate_per_day)

    def set_badge_max_active_duration(self, max_active_duration: int) -> ServiceResult:
        return self._set_badge_config(
            "max_active_duration", max_active_duration, self._badges.set_max_active_duration,
        )

    def set_badge_min_creation_deposit(self, min_creation_deposit: int) -> ServiceResult:
        return self._set_badge_config(
            "min_creation_deposit", min_creation_deposit, self._badges.set_min_creation_deposit,
        )

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------

    def ledger_digest(self) -> LedgerDigest:
        hashes = self._event_log.event_hashes() if self._event_log is not None else []
        return ledger_digest(hashes, self._store.document())

    def record_anchor(self, record: AnchorRecord) -> ServiceResult:
        """Audit a completed on-chain anchor. Authority only."""
        def body() -> _Outcome:
            self._require_authority()
            payload = {
                "sha256_hash": record.sha256_hash,
                "tx_hash": record.tx_hash,
                "block_number": record.block_number,
                "chain_id": record.chain_id,
            }
            return _Outcome(EventKind.LEDGER_ANCHORED, payload, dict(payload))
        return self._execute(body)

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    def get_tags(self) -> list[str]:
        return self._ledger.get_tags()

    def get_duration(self) -> Optional[int]:
        return self._ledger.get_duration()

    def get_total_deposits(self) -> int:
        return self._ledger.total_deposits

    def get_total_accepted_deposits(self) -> int:
        return self._ledger.total_accepted_deposits

    def get_proposal(self, proposal_id: int) -> Optional[Proposal[BadgeAction]]:
        return self._ledger.get_proposal(proposal_id)

    def get_all_proposals(self) -> list[Proposal[BadgeAction]]:
        return self._ledger.get_all()

    def get_pending_proposals(self) -> list[Proposal[BadgeAction]]:
        return self._ledger.get_pending(self._host.now())

    def get_expired_proposals(self) -> list[Proposal[BadgeAction]]:
        return self._ledger.get_expired(self._host.now())

    def get_accepted_proposals(self) -> list[Proposal[BadgeAction]]:
        return self._ledger.get_by_status(ProposalStatus.ACCEPTED)

    def get_rejected_proposals(self) -> list[Proposal[BadgeAction]]:
        return self._ledger.get_by_status(ProposalStatus.REJECTED)

    def get_rescinded_proposals(self) -> list[Proposal[BadgeAction]]:
        return self._ledger.get_by_status(ProposalStatus.RESCINDED)

    def proposal_to_dict(self, proposal: Proposal[BadgeAction]) -> dict[str, Any]:
        return proposal.to_dict(self._badges.encode_payload)

    def get_badge(self, badge_id: str) -> Optional[Badge]:
        return self._badges.get_badge(badge_id)

    def get_badges(self) -> list[Badge]:
        return self._badges.list_badges(self._host.now())

    def get_badge_rate_per_day(self) -> int:
        return self._badges.config.rate_per_day

    def get_badge_max_active_duration(self) -> int:
        return self._badges.config.max_active_duration

    def get_badge_min_creation_deposit(self) -> int:
        return self._badges.config.min_creation_deposit

    def quote_deposit(self, action: BadgeAction) -> int:
        """Smallest deposit the badge module accepts for ``action`` right now."""
        config = self._badges.config
        return required_deposit(action, config.rate_per_day, config.min_creation_deposit)

    @property
    def persistence_degraded(self) -> bool:
        return self._persistence_degraded

    def status(self) -> dict[str, Any]:
        counts: dict[str, int] = {}
        for p in self._ledger.get_all():
            counts[p.status.value] = counts.get(p.status.value, 0) + 1
        counts["expired"] = len(self.get_expired_proposals())
        config = self._badges.config
        return {
            "owner": self._ownership.owner,
            "proposed_owner": self._ownership.proposed_owner,
            "tags": self._ledger.get_tags(),
            "proposal_duration": self._ledger.get_duration(),
            "proposals": {"total": self._ledger.count, **counts},
            "total_deposits": str(self._ledger.total_deposits),
            "total_accepted_deposits": str(self._ledger.total_accepted_deposits),
            "badges": {
                "total": len(self._badges.all_badges()),
                "listed": len(self.get_badges()),
            },
            "badge_config": config.to_dict(),
            "events": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_authority(self) -> None:
        """One-unit confirmation first, then the authority check."""
        assert_one_unit(self._host.attached_payment())
        self._ownership.assert_owner(self._host.caller_identity())

    def _set_badge_config(
        self,
        name: str,
        value: int,
        setter: Callable[[int], None],
    ) -> ServiceResult:
        def body() -> _Outcome:
            self._require_authority()
            setter(value)
            return _Outcome(
                EventKind.BADGE_CONFIG_UPDATED,
                {"field": name, "value": str(value)},
                {"badge_config": self._badges.config.to_dict()},
            )
        return self._execute(body)

    def _badge_effects(
        self, proposal: Proposal[BadgeAction],
    ) -> list[tuple[EventKind, dict[str, Any]]]:
        """Audit entries for the badge write an accepted proposal committed."""
        msg = proposal.msg
        if isinstance(msg, BadgeCreate):
            kind = EventKind.BADGE_CREATED
        elif isinstance(msg, BadgeExtend):
            kind = EventKind.BADGE_EXTENDED
        else:
            return []
        badge = self._badges.get_badge(msg.id)
        return [(kind, {"proposal_id": proposal.id, "badge": badge.to_dict()})]

    def _proposal_data(self, proposal: Proposal[BadgeAction], **extra: int) -> dict[str, Any]:
        data: dict[str, Any] = {
            "proposal_id": proposal.id,
            "status": proposal.status.value,
            "proposal": self.proposal_to_dict(proposal),
        }
        data.update(extra)
        return data

    def _execute(self, body: Callable[[], _Outcome]) -> ServiceResult:
        """Run a call body all-or-nothing, audit it, persist it, then settle transfers."""
        ledger_cp = self._ledger.checkpoint()
        badges_cp = self._badges.checkpoint()
        ownership_cp = self._ownership.to_dict()

        def _rollback() -> None:
            self._ledger.restore(ledger_cp)
            self._badges.restore(badges_cp)
            self._ownership = Ownership.from_dict(ownership_cp)
            self._stage_state()

        try:
            outcome = body()
        except GalleryError as e:
            _rollback()
            return ServiceResult(success=False, errors=[str(e)], data={"code": e.code})
        except Exception:
            _rollback()
            raise

        self._stage_state()
        err = self._record_events([(outcome.kind, outcome.payload), *outcome.followups])
        if err:
            _rollback()
            return ServiceResult(success=False, errors=[err], data={"code": "audit_failure"})

        # Audit event committed: do NOT rollback in-memory state
        warning = self._safe_persist_post_audit()

        for recipient, amount in outcome.transfers:
            if amount > 0:
                self._host.transfer(recipient, amount)

        data = dict(outcome.data)
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_events(self, entries: list[tuple[EventKind, dict[str, Any]]]) -> Optional[str]:
        """Append a call's audit events as one batch. Returns an error string or None.

        Either the whole batch lands in the log or none of it does.
        """
        if self._event_log is None:
            return None
        counter = self._event_counter
        actor = self._host.caller_identity() or "system"
        timestamp = _utc(self._host.now())
        try:
            events = [
                EventRecord.create(
                    event_id=self._next_event_id(),
                    event_kind=kind,
                    actor_id=actor,
                    payload=payload,
                    timestamp_utc=timestamp,
                )
                for kind, payload in entries
            ]
            self._event_log.append_many(events)
        except (ValueError, OSError) as e:
            self._event_counter = counter
            return f"Event log failure: {e}"
        return None

    def _stage_state(self) -> None:
        self._store.save_ownership(self._ownership)
        self._store.save_ledger(self._ledger, self._badges.encode_payload)
        self._store.save_badges(self._badges)

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Flush after the audit event is durable.

        MUST NOT rollback: the call is on the audit trail. On failure the
        in-memory state stays authoritative and the store is stale.
        """
        try:
            self._store.flush()
            return None
        except OSError as e:
            self._persistence_degraded = True
            return f"Persistence degraded: {e}; call recorded in audit trail but state store is stale"
