from __future__ import annotations

import io
import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterator

import pytest

import main as cli
from safeqr.logger import StructuredLogger
from safeqr.services import ServiceContainer
from tests.conftest import T0, FrozenClock, suspension_row, user_row
from tests.fakes import FakeSupabase


@pytest.fixture
def cli_log(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[io.StringIO]:
    stream = io.StringIO()
    # StructuredLogger only attaches handlers on first use of a name; reset so
    # each test's stream is the one actually written to.
    underlying = logging.getLogger("safeqr.tests.cli")
    for handler in list(underlying.handlers):
        underlying.removeHandler(handler)
        handler.close()
    logger = StructuredLogger(
        name="safeqr.tests.cli", level=logging.DEBUG, stream=stream, log_file=str(tmp_path / "cli.log"),
    )
    monkeypatch.setattr(cli, "get_logger", lambda name, config=None: logger)
    yield stream
    for handler in list(underlying.handlers):
        underlying.removeHandler(handler)
        handler.close()


def _run(services: ServiceContainer, capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, Any]:
    code = cli.main(list(argv), services=services)
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None


def test_suspend_then_status(
    services: ServiceContainer, fake: FakeSupabase, capsys: pytest.CaptureFixture[str], cli_log: io.StringIO,
) -> None:
    fake.seed("users", [user_row("u1")])

    code, payload = _run(services, capsys, "suspend", "u1", "3")
    assert code == cli.EXIT_OK
    assert payload["user_id"] == "u1"

    code, payload = _run(services, capsys, "status", "u1")
    assert code == cli.EXIT_OK
    assert payload["is_suspended"] is True
    assert payload["suspension"]["user_id"] == "u1"
    assert fake.rows("users")[0]["account_status"] == "suspended"


@pytest.mark.parametrize("days", ["0", "-2"])
def test_suspend_rejects_non_positive_days(
    services: ServiceContainer, fake: FakeSupabase, capsys: pytest.CaptureFixture[str],
    cli_log: io.StringIO, days: str,
) -> None:
    fake.seed("users", [user_row("u1")])

    code, payload = _run(services, capsys, "suspend", "u1", days)

    assert code == cli.EXIT_USAGE
    assert payload is None
    assert fake.writes() == []


def test_suspend_partial_failure_exits_nonzero(
    services: ServiceContainer, fake: FakeSupabase, capsys: pytest.CaptureFixture[str], cli_log: io.StringIO,
) -> None:
    fake.seed("users", [user_row("u1")])
    fake.fail("users", "update")

    code, _ = _run(services, capsys, "suspend", "u1", "2")

    assert code == cli.EXIT_FAILURE
    assert fake.rows("suspensions") == []
    assert "half-applied" in cli_log.getvalue()


def test_lift_reports_rows_removed(
    services: ServiceContainer, fake: FakeSupabase, capsys: pytest.CaptureFixture[str], cli_log: io.StringIO,
) -> None:
    fake.seed("users", [user_row("u1", status="suspended")])
    fake.seed("suspensions", [suspension_row("u1", T0, T0 + timedelta(days=5))])

    code, payload = _run(services, capsys, "lift", "u1", "--reason", "appeal accepted")

    assert code == cli.EXIT_OK
    assert payload == {"user_id": "u1", "rows_removed": 1}
    assert fake.rows("users")[0]["account_status"] == "active"


def test_lift_unknown_account_fails(
    services: ServiceContainer, capsys: pytest.CaptureFixture[str], cli_log: io.StringIO,
) -> None:
    code, _ = _run(services, capsys, "lift", "ghost")

    assert code == cli.EXIT_FAILURE


def test_listings_and_sweep(
    services: ServiceContainer,
    fake: FakeSupabase,
    clock: FrozenClock,
    capsys: pytest.CaptureFixture[str],
    cli_log: io.StringIO,
) -> None:
    fake.seed("users", [user_row("u1", status="suspended"), user_row("u2", status="suspended")])
    fake.seed("suspensions", [
        suspension_row("u1", T0, T0 + timedelta(days=1)),
        suspension_row("u2", T0, T0 + timedelta(days=4)),
    ])
    clock.advance(days=2)

    code, active = _run(services, capsys, "active")
    assert code == cli.EXIT_OK
    assert [s["user_id"] for s in active] == ["u2"]

    code, expired = _run(services, capsys, "expired")
    assert code == cli.EXIT_OK
    assert expired == []

    code, payload = _run(services, capsys, "sweep")
    assert code == cli.EXIT_OK
    assert payload == {"lifted": ["u1"]}


def test_stats_and_users(
    services: ServiceContainer, fake: FakeSupabase, capsys: pytest.CaptureFixture[str], cli_log: io.StringIO,
) -> None:
    fake.seed("users", [user_row("u1"), user_row("u2", status="suspended")])

    code, stats = _run(services, capsys, "stats")
    assert code == cli.EXIT_OK
    assert stats["backend_online"] is True
    assert (stats["total_users"], stats["suspended_users"]) == (2, 1)

    code, users = _run(services, capsys, "users")
    assert code == cli.EXIT_OK
    assert {u["user_id"] for u in users} == {"u1", "u2"}


def test_missing_command_is_usage_error(services: ServiceContainer) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([], services=services)
    assert excinfo.value.code == 2
