"""Tests for the Gallery CLI — proves CLI dispatches correctly."""

import json

import pytest

from gallery.cli import build_parser, main
from gallery.models.badge import ONE_DAY


T0 = 1_700_000_000 * 1_000_000_000
DEPOSIT = 3 * 10**24
ATTACH = 4 * 10**24


def _run(tmp_path, *argv: str) -> int:
    return main(["--data", str(tmp_path), "--now", str(T0), *argv])


def _submit(tmp_path, badge_id: str = "b1") -> int:
    return _run(
        tmp_path, "--caller", "alice", "--attach", str(ATTACH),
        "submit-create", "--badge-id", badge_id, "--group", "g", "--name", "Top",
        "--days", "30", "--deposit", str(DEPOSIT),
    )


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_call_context_flags(self) -> None:
        args = build_parser().parse_args([
            "--caller", "owner", "--attach", "1", "--now", "5", "accept", "--id", "3",
        ])
        assert (args.caller, args.attach, args.now, args.id) == ("owner", 1, 5, 3)

    def test_submit_extend_command(self) -> None:
        args = build_parser().parse_args([
            "submit-extend", "--badge-id", "b1", "--duration", "10", "--deposit", "7",
        ])
        assert args.command == "submit-extend"
        assert args.duration == 10
        assert args.days is None

    def test_days_and_duration_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([
                "quote-deposit", "--kind", "create", "--days", "1", "--duration", "5",
            ])


class TestCLIExecution:
    def test_no_command_shows_help(self, capsys) -> None:
        assert main([]) == 0

    def test_status_runs(self, tmp_path) -> None:
        assert _run(tmp_path, "status") == 0
        assert (tmp_path / "state.json").exists()

    def test_submit_and_accept_e2e(self, tmp_path, capsys) -> None:
        assert _submit(tmp_path) == 0
        out = capsys.readouterr().out
        assert "Transfer:" in out
        assert "-> alice" in out

        assert _run(tmp_path, "--caller", "owner", "--attach", "1", "accept", "--id", "0") == 0
        capsys.readouterr()

        assert _run(tmp_path, "badges") == 0
        badges = json.loads(capsys.readouterr().out)
        assert [b["id"] for b in badges] == ["b1"]
        assert badges[0]["duration"] == 30 * ONE_DAY

        assert _run(tmp_path, "proposals", "--status", "accepted") == 0
        proposals = json.loads(capsys.readouterr().out)
        assert proposals[0]["msg"]["kind"] == "create"

    def test_accept_by_non_owner_fails(self, tmp_path, capsys) -> None:
        _submit(tmp_path)
        capsys.readouterr()
        assert _run(tmp_path, "--caller", "alice", "--attach", "1", "accept", "--id", "0") == 1
        assert "Owner only" in capsys.readouterr().err

    def test_rescind_refunds_deposit(self, tmp_path, capsys) -> None:
        _submit(tmp_path)
        capsys.readouterr()
        assert _run(tmp_path, "--caller", "alice", "--attach", "1", "rescind", "--id", "0") == 0
        assert f"Transfer: {DEPOSIT} -> alice" in capsys.readouterr().out

    def test_negative_days_reported_as_failure(self, tmp_path, capsys) -> None:
        assert _run(
            tmp_path, "--caller", "alice", "--attach", str(ATTACH),
            "submit-create", "--badge-id", "b1", "--group", "g", "--name", "Top",
            "--days", "-1", "--deposit", str(DEPOSIT),
        ) == 1
        assert capsys.readouterr().err.startswith("Failed: duration must be")
        assert _run(
            tmp_path, "--caller", "alice", "--attach", str(ATTACH),
            "submit-extend", "--badge-id", "b1", "--days", "-1", "--deposit", str(DEPOSIT),
        ) == 1
        assert "Failed:" in capsys.readouterr().err
        assert _run(tmp_path, "quote-deposit", "--kind", "create", "--days", "-1") == 1

    def test_set_duration_zero_fails(self, tmp_path, capsys) -> None:
        assert _run(tmp_path, "--caller", "owner", "--attach", "1", "set-duration", "--duration", "0") == 1
        assert "duration must be > 0" in capsys.readouterr().err

    def test_quote_deposit(self, tmp_path, capsys) -> None:
        assert _run(tmp_path, "quote-deposit", "--kind", "create", "--days", "1") == 0
        assert capsys.readouterr().out.strip() == str(25 * 10**23)
        assert _run(tmp_path, "quote-deposit", "--kind", "extend", "--days", "2") == 0
        assert capsys.readouterr().out.strip() == str(2 * 10**23)

    def test_badge_lookup_missing(self, tmp_path) -> None:
        assert _run(tmp_path, "badge", "--id", "nope") == 1

    def test_owner_administration(self, tmp_path, capsys) -> None:
        owner = ("--caller", "owner", "--attach", "1")
        assert _run(tmp_path, *owner, "add-tags", "feature") == 0
        assert _run(tmp_path, *owner, "set-duration", "--days", "3") == 0
        assert _run(tmp_path, *owner, "set-rate", "--value", "5") == 0
        assert _run(tmp_path, *owner, "insert-badge", "--id", "m", "--group", "g", "--name", "M") == 0
        assert _run(tmp_path, *owner, "set-badge-enabled", "--id", "m", "--disabled") == 0
        capsys.readouterr()
        assert _run(tmp_path, "status") == 0
        status = json.loads(capsys.readouterr().out)
        assert "feature" in status["tags"]
        assert status["proposal_duration"] == 3 * ONE_DAY
        assert status["badge_config"]["rate_per_day"] == "5"
        assert status["badges"] == {"total": 1, "listed": 0}

    def test_ownership_handoff(self, tmp_path, capsys) -> None:
        assert _run(tmp_path, "--caller", "owner", "--attach", "1", "propose-owner", "--account", "bob") == 0
        assert _run(tmp_path, "--caller", "bob", "--attach", "1", "accept-owner") == 0
        capsys.readouterr()
        _run(tmp_path, "status")
        assert json.loads(capsys.readouterr().out)["owner"] == "bob"

    def test_digest(self, tmp_path, capsys) -> None:
        _submit(tmp_path)
        capsys.readouterr()
        assert _run(tmp_path, "digest") == 0
        digest = json.loads(capsys.readouterr().out)
        assert digest["event_count"] == 1
        assert len(digest["digest"]) == 64

    def test_anchor_without_credentials_fails(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.delenv("SEPOLIA_RPC_URL", raising=False)
        monkeypatch.delenv("PRIVATE_KEY", raising=False)
        monkeypatch.delenv("SEPOLIA_PRIVATE_KEY", raising=False)
        monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **k: False)
        assert _run(tmp_path, "--caller", "owner", "--attach", "1", "anchor") == 1
        assert "SEPOLIA_RPC_URL" in capsys.readouterr().err

    def test_check_invariants_runs(self, tmp_path) -> None:
        _submit(tmp_path)
        _run(tmp_path, "--caller", "owner", "--attach", "1", "reject", "--id", "0")
        assert _run(tmp_path, "check-invariants") == 0

    def test_check_invariants_detects_broken_totals(self, tmp_path, capsys) -> None:
        _submit(tmp_path)
        state_path = tmp_path / "state.json"
        state = json.loads(state_path.read_text(encoding="utf-8"))
        state["ledger"]["total_deposits"] = "1"
        state_path.write_text(json.dumps(state), encoding="utf-8")
        capsys.readouterr()
        assert _run(tmp_path, "check-invariants") == 1
        assert "total_deposits" in capsys.readouterr().out
