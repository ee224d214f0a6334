from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from safeqr.logger import StructuredLogger
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.services.expiry_sweeper import ExpirySweeper
from safeqr.services.suspension_query import SuspensionQueryService
from tests.conftest import T0, FrozenClock, suspension_row
from tests.fakes import FakeSupabase


def _query_service(
    repo: SuspensionRepository,
    logger: StructuredLogger,
    clock: FrozenClock,
    fail_closed: bool = False,
) -> SuspensionQueryService:
    sweeper = ExpirySweeper(repo=repo, logger=logger, clock=clock)
    return SuspensionQueryService(
        repo=repo, sweeper=sweeper, logger=logger, clock=clock, fail_closed=fail_closed,
    )


# ---------------------------------------------------------------------------
# Expiry sweeper
# ---------------------------------------------------------------------------

def test_sweep_deletes_expired_rows(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [
        suspension_row("old", T0 - timedelta(days=2), T0 - timedelta(seconds=1)),
        suspension_row("live", T0, T0 + timedelta(days=1)),
    ])
    sweeper = ExpirySweeper(repo=suspension_repo, logger=logger, clock=clock)

    removed = sweeper.sweep()

    assert [s.user_id for s in removed] == ["old"]
    assert [row["user_id"] for row in fake.rows("suspensions")] == ["live"]


def test_sweep_failure_is_logged_and_reported_as_nothing_removed(
    suspension_repo: SuspensionRepository,
    fake: FakeSupabase,
    logger: StructuredLogger,
    clock: FrozenClock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    fake.fail("suspensions", "delete")
    sweeper = ExpirySweeper(repo=suspension_repo, logger=logger, clock=clock)

    with caplog.at_level(logging.WARNING):
        assert sweeper.sweep() == []

    assert any(getattr(r, "event", None) == "SWEEP_FAILED" for r in caplog.records)


# ---------------------------------------------------------------------------
# Query service
# ---------------------------------------------------------------------------

def test_unknown_user_is_not_suspended(
    suspension_repo: SuspensionRepository, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    queries = _query_service(suspension_repo, logger, clock)

    assert queries.is_currently_suspended("nobody") is False


def test_active_row_means_suspended_until_end(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [suspension_row("u1", T0, T0 + timedelta(hours=5))])
    queries = _query_service(suspension_repo, logger, clock)

    assert queries.is_currently_suspended("u1") is True
    clock.advance(hours=5)
    assert queries.is_currently_suspended("u1") is False


def test_status_check_sweeps_before_reading(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [suspension_row("u1", T0 - timedelta(days=3), T0 - timedelta(days=1))])
    queries = _query_service(suspension_repo, logger, clock)

    assert queries.is_currently_suspended("u1") is False
    assert fake.rows("suspensions") == []
    assert fake.calls[0] == ("suspensions", "delete")


def test_status_check_survives_failed_sweep(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [
        suspension_row("u1", T0, T0 + timedelta(days=1)),
        suspension_row("u2", T0 - timedelta(days=3), T0 - timedelta(days=1)),
    ])
    fake.fail("suspensions", "delete")
    queries = _query_service(suspension_repo, logger, clock)

    assert queries.is_currently_suspended("u1") is True
    assert queries.is_currently_suspended("u2") is False
    assert [s.user_id for s in queries.get_active_suspensions()] == ["u1"]


def test_read_failure_fails_open_by_default(
    suspension_repo: SuspensionRepository,
    fake: FakeSupabase,
    logger: StructuredLogger,
    clock: FrozenClock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    fake.seed("suspensions", [suspension_row("u1", T0, T0 + timedelta(days=1))])
    fake.fail("suspensions", "select")
    queries = _query_service(suspension_repo, logger, clock)

    with caplog.at_level(logging.WARNING):
        assert queries.is_currently_suspended("u1") is False

    flagged = [r for r in caplog.records if getattr(r, "event", None) == "SUSPENSION_CHECK_FAILED"]
    assert flagged and flagged[0].fail_open == "True"


def test_read_failure_fails_closed_when_configured(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.fail("suspensions", "select")
    queries = _query_service(suspension_repo, logger, clock, fail_closed=True)

    assert queries.is_currently_suspended("u1") is True


def test_active_list_excludes_rows_ending_now(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [
        suspension_row("edge", T0 - timedelta(days=1), T0),
        suspension_row("b", T0, T0 + timedelta(days=3)),
        suspension_row("a", T0, T0 + timedelta(days=1)),
    ])
    queries = _query_service(suspension_repo, logger, clock)

    active = queries.get_active_suspensions()

    assert [s.user_id for s in active] == ["a", "b"]
    assert all(s.end_date > clock() for s in active)


def test_listings_degrade_to_empty_on_read_failure(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [suspension_row("u1", T0, T0 + timedelta(days=1))])
    fake.fail("suspensions", "select")
    fake.fail("rpc:get_suspension", "call")
    queries = _query_service(suspension_repo, logger, clock)

    assert queries.get_active_suspensions() == []
    assert queries.get_expired_suspensions() == []
    assert queries.fetch_suspension_by_user("u1") is None


def test_expired_list_surfaces_rows_the_sweep_missed(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [
        suspension_row("a", T0 - timedelta(days=9), T0 - timedelta(days=4)),
        suspension_row("a", T0 - timedelta(days=9), T0 - timedelta(days=1)),
        suspension_row("b", T0 - timedelta(days=9), T0 - timedelta(days=2)),
    ])
    fake.fail("suspensions", "delete")
    queries = _query_service(suspension_repo, logger, clock)

    expired = queries.get_expired_suspensions()

    assert [(e.user_id, e.end_date) for e in expired] == [
        ("a", T0 - timedelta(days=1)),
        ("b", T0 - timedelta(days=2)),
    ]


def test_expired_list_is_empty_in_steady_state(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [suspension_row("a", T0 - timedelta(days=9), T0 - timedelta(days=4))])
    queries = _query_service(suspension_repo, logger, clock)

    assert queries.get_expired_suspensions() == []


# ---------------------------------------------------------------------------
# Malformed stored rows
# ---------------------------------------------------------------------------

def test_malformed_expired_row_does_not_abort_status_check(
    suspension_repo: SuspensionRepository,
    fake: FakeSupabase,
    logger: StructuredLogger,
    clock: FrozenClock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    stamp = T0 - timedelta(hours=1)
    fake.seed("suspensions", [
        suspension_row("u1", stamp, stamp),
        suspension_row("u1", T0, T0 + timedelta(days=2)),
    ])
    queries = _query_service(suspension_repo, logger, clock)

    with caplog.at_level(logging.WARNING):
        assert queries.is_currently_suspended("u1") is True

    assert len(fake.rows("suspensions")) == 1
    assert any(getattr(r, "event", None) == "ROW_SKIPPED" for r in caplog.records)


def test_sweep_returns_only_rows_that_parse(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [
        suspension_row("bad", T0 - timedelta(days=1), T0 - timedelta(days=3)),
        suspension_row("old", T0 - timedelta(days=2), T0 - timedelta(days=1)),
    ])
    sweeper = ExpirySweeper(repo=suspension_repo, logger=logger, clock=clock)

    assert [s.user_id for s in sweeper.sweep()] == ["old"]
    assert fake.rows("suspensions") == []


def test_listings_skip_malformed_rows(
    suspension_repo: SuspensionRepository, fake: FakeSupabase, logger: StructuredLogger, clock: FrozenClock,
) -> None:
    fake.seed("suspensions", [
        suspension_row("bad", T0 + timedelta(days=9), T0 + timedelta(days=4)),
        suspension_row("u2", T0, T0 + timedelta(days=1)),
    ])
    queries = _query_service(suspension_repo, logger, clock)

    assert [s.user_id for s in queries.get_active_suspensions()] == ["u2"]
    assert queries.fetch_suspension_by_user("bad") is None
    assert queries.is_currently_suspended("u2") is True
