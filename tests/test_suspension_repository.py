from __future__ import annotations

from datetime import timedelta

import pytest

from safeqr.errors import ReadError, SweepError, WriteError
from safeqr.repositories.suspension_repository import SuspensionRepository
from tests.conftest import T0, suspension_row
from tests.fakes import FakeSupabase, api_error


def test_insert_returns_row_and_persists(suspension_repo: SuspensionRepository, fake: FakeSupabase) -> None:
    created = suspension_repo.insert("u1", T0, T0 + timedelta(days=3))

    assert created.user_id == "u1"
    assert created.end_date - created.start_date == timedelta(days=3)
    assert [row["user_id"] for row in fake.rows("suspensions")] == ["u1"]


def test_insert_failure_raises_write_error(suspension_repo: SuspensionRepository, fake: FakeSupabase) -> None:
    fake.fail("suspensions", "insert", api_error("violates foreign key constraint", "23503"))

    with pytest.raises(WriteError):
        suspension_repo.insert("ghost", T0, T0 + timedelta(days=1))
    assert fake.rows("suspensions") == []


def test_delete_by_user_counts_rows_and_tolerates_zero(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    fake.seed("suspensions", [
        suspension_row("u1", T0, T0 + timedelta(days=1)),
        suspension_row("u1", T0, T0 + timedelta(days=4)),
        suspension_row("u2", T0, T0 + timedelta(days=2)),
    ])

    assert suspension_repo.delete_by_user("u1") == 2
    assert suspension_repo.delete_by_user("u1") == 0
    assert [row["user_id"] for row in fake.rows("suspensions")] == ["u2"]


def test_delete_exact_leaves_other_rows(suspension_repo: SuspensionRepository, fake: FakeSupabase) -> None:
    fake.seed("suspensions", [
        suspension_row("u1", T0 - timedelta(days=1), T0 + timedelta(days=5)),
    ])
    created = suspension_repo.insert("u1", T0, T0 + timedelta(days=2))

    assert suspension_repo.delete_exact(created) == 1
    remaining = fake.rows("suspensions")
    assert len(remaining) == 1
    assert remaining[0]["end_date"].startswith("2025-03-06")


def test_delete_expired_removes_only_past_rows(suspension_repo: SuspensionRepository, fake: FakeSupabase) -> None:
    fake.seed("suspensions", [
        suspension_row("old", T0 - timedelta(days=5), T0 - timedelta(hours=1)),
        suspension_row("live", T0 - timedelta(days=1), T0 + timedelta(hours=1)),
    ])

    removed = suspension_repo.delete_expired(T0)

    assert [s.user_id for s in removed] == ["old"]
    assert [row["user_id"] for row in fake.rows("suspensions")] == ["live"]


def test_delete_expired_failure_raises_sweep_error(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    fake.fail("suspensions", "delete")

    with pytest.raises(SweepError):
        suspension_repo.delete_expired(T0)


def test_query_most_recent_by_user_picks_latest_end(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    fake.seed("suspensions", [
        suspension_row("u1", T0, T0 + timedelta(days=2)),
        suspension_row("u1", T0, T0 + timedelta(days=9)),
        suspension_row("u1", T0, T0 + timedelta(days=4)),
    ])

    latest = suspension_repo.query_most_recent_by_user("u1")

    assert latest is not None
    assert latest.end_date == T0 + timedelta(days=9)
    assert suspension_repo.query_most_recent_by_user("nobody") is None


def test_query_active_orders_soonest_expiry_first(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    fake.seed("suspensions", [
        suspension_row("late", T0, T0 + timedelta(days=7)),
        suspension_row("gone", T0 - timedelta(days=3), T0 - timedelta(days=1)),
        suspension_row("soon", T0, T0 + timedelta(hours=2)),
    ])

    assert [s.user_id for s in suspension_repo.query_active(T0)] == ["soon", "late"]


def test_query_expired_keeps_latest_row_per_user(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    fake.seed("suspensions", [
        suspension_row("a", T0 - timedelta(days=10), T0 - timedelta(days=8)),
        suspension_row("a", T0 - timedelta(days=10), T0 - timedelta(days=2)),
        suspension_row("b", T0 - timedelta(days=10), T0 - timedelta(days=1)),
        suspension_row("c", T0 - timedelta(days=10), T0 - timedelta(days=5)),
        suspension_row("live", T0, T0 + timedelta(days=1)),
    ])

    expired = suspension_repo.query_expired(T0)

    assert [e.user_id for e in expired] == ["b", "a", "c"]
    assert expired[1].end_date == T0 - timedelta(days=2)


def test_query_failure_raises_read_error(suspension_repo: SuspensionRepository, fake: FakeSupabase) -> None:
    fake.fail("suspensions", "select")

    with pytest.raises(ReadError):
        suspension_repo.query_active(T0)


def test_fetch_by_user_uses_rpc(suspension_repo: SuspensionRepository, fake: FakeSupabase) -> None:
    fake.seed("suspensions", [
        suspension_row("u1", T0, T0 + timedelta(days=1)),
        suspension_row("u1", T0, T0 + timedelta(days=6)),
    ])

    found = suspension_repo.fetch_by_user("u1")

    assert found is not None
    assert found.end_date == T0 + timedelta(days=6)
    assert ("rpc:get_suspension", "call") in fake.calls
    assert ("suspensions", "select") not in fake.calls


def test_fetch_by_user_falls_back_when_rpc_unavailable(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    fake.seed("suspensions", [suspension_row("u1", T0, T0 + timedelta(days=2))])
    fake.fail("rpc:get_suspension", "call", api_error("function missing", "PGRST202"))

    found = suspension_repo.fetch_by_user("u1")

    assert found is not None
    assert found.end_date == T0 + timedelta(days=2)
    assert ("suspensions", "select") in fake.calls


def test_fetch_by_user_returns_none_without_rows(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    assert suspension_repo.fetch_by_user("u1") is None


def test_fetch_by_user_raises_when_both_paths_fail(
    suspension_repo: SuspensionRepository, fake: FakeSupabase,
) -> None:
    fake.fail("rpc:get_suspension", "call")
    fake.fail("suspensions", "select")

    with pytest.raises(ReadError):
        suspension_repo.fetch_by_user("u1")


def test_insert_many_restores_snapshot(suspension_repo: SuspensionRepository, fake: FakeSupabase) -> None:
    first = suspension_repo.insert("u1", T0, T0 + timedelta(days=1))
    second = suspension_repo.insert("u1", T0, T0 + timedelta(days=2))
    snapshot = suspension_repo.query_by_user("u1")
    suspension_repo.delete_by_user("u1")

    assert suspension_repo.insert_many(snapshot) == 2
    assert {s.end_date for s in suspension_repo.query_by_user("u1")} == {first.end_date, second.end_date}
    assert suspension_repo.insert_many([]) == 0
