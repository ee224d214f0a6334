"""
Suspension Repository.

Durable storage of suspension rows in the Supabase ``suspensions`` table,
keyed by user.  Rows are never updated in place: they are inserted by a
suspend action and deleted by a lift or by the expiry sweep.

Multiple rows per user are tolerated; every reader resolves them by
"latest ``end_date`` wins".
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from safeqr.database import DatabaseManager
from safeqr.errors import SweepError
from safeqr.logger import StructuredLogger
from safeqr.models.suspension import ExpiredSuspension, Suspension
from safeqr.repositories.base_repository import BaseRepository
from safeqr.utils.clock import to_iso


class SuspensionRepository(BaseRepository):
    """Data access layer for Suspension rows."""

    TABLE = "suspensions"
    LOOKUP_RPC = "get_suspension"
    COLUMNS = "user_id, start_date, end_date"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, user_id: str, start_date: datetime, end_date: datetime) -> Suspension:
        """Insert a suspension row and return it.

        Raises:
            WriteError: If the store rejects the row (constraint, connectivity).
        """
        requested = Suspension(user_id=user_id, start_date=start_date, end_date=end_date)
        payload = {
            "user_id": user_id,
            "start_date": to_iso(start_date),
            "end_date": to_iso(end_date),
        }

        def _op() -> list[dict[str, object]]:
            return self.supabase.table(self.TABLE).insert(payload).execute().data or []

        rows = self._write(_op, operation_name=f"insert ({self.TABLE})")
        stored = self._parse_rows(Suspension, rows, operation_name=f"insert ({self.TABLE})")
        suspension = stored[0] if stored else requested
        self._logger.info(
            "Suspension row inserted for %s until %s",
            user_id,
            suspension.end_date.isoformat(),
        )
        return suspension

    def insert_many(self, suspensions: list[Suspension]) -> int:
        """Re-insert previously snapshotted rows; used for compensation."""
        if not suspensions:
            return 0
        payload = [
            {
                "user_id": s.user_id,
                "start_date": to_iso(s.start_date),
                "end_date": to_iso(s.end_date),
            }
            for s in suspensions
        ]

        def _op() -> int:
            self.supabase.table(self.TABLE).insert(payload).execute()
            return len(payload)

        return self._write(_op, operation_name=f"insert_many ({self.TABLE})")

    def delete_by_user(self, user_id: str) -> int:
        """Remove every suspension row for *user_id*; zero matches is fine."""

        def _op() -> int:
            response = (
                self.supabase.table(self.TABLE)
                .delete()
                .eq("user_id", user_id)
                .execute()
            )
            return len(response.data or [])

        removed = self._write(_op, operation_name=f"delete_by_user ({self.TABLE})")
        self._logger.info("Removed %d suspension row(s) for %s", removed, user_id)
        return removed

    def delete_exact(self, suspension: Suspension) -> int:
        """Remove only the row matching *suspension* exactly."""

        def _op() -> int:
            response = (
                self.supabase.table(self.TABLE)
                .delete()
                .eq("user_id", suspension.user_id)
                .eq("start_date", to_iso(suspension.start_date))
                .eq("end_date", to_iso(suspension.end_date))
                .execute()
            )
            return len(response.data or [])

        return self._write(_op, operation_name=f"delete_exact ({self.TABLE})")

    def delete_expired(self, now: datetime) -> list[Suspension]:
        """Remove every row whose ``end_date`` is before *now*.

        Returns the removed rows.  A removed row the model rejects is
        logged and left out of the result; it is gone from the store either
        way.

        Raises:
            SweepError: If the delete could not be completed.  Callers on
                read paths are expected to treat this as "nothing removed".
        """
        try:
            response = (
                self.supabase.table(self.TABLE)
                .delete()
                .lt("end_date", to_iso(now))
                .execute()
            )
        except Exception as exc:
            raise SweepError(f"Expired suspension cleanup failed: {exc}", exc) from exc
        return self._parse_rows(
            Suspension, response.data, operation_name=f"delete_expired ({self.TABLE})",
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query_by_user(self, user_id: str) -> list[Suspension]:
        """All rows for *user_id*, latest ``end_date`` first."""

        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .eq("user_id", user_id)
                .order("end_date", desc=True)
                .execute()
            )
            return response.data or []

        name = f"query_by_user ({self.TABLE})"
        return self._parse_rows(Suspension, self._read(_op, operation_name=name), operation_name=name)

    def query_most_recent_by_user(self, user_id: str) -> Optional[Suspension]:
        """The single row with the latest ``end_date`` for *user_id*, or ``None``."""

        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .eq("user_id", user_id)
                .order("end_date", desc=True)
                .execute()
            )
            return response.data or []

        name = f"query_most_recent_by_user ({self.TABLE})"
        rows = self._parse_rows(Suspension, self._read(_op, operation_name=name), operation_name=name)
        return rows[0] if rows else None

    def lookup_via_rpc(self, user_id: str) -> Optional[Suspension]:
        """Atomic server-side lookup through the ``get_suspension`` function.

        The function returns a set of rows; the one with the latest
        ``end_date`` is used.  Failures are *not* translated here so the
        caller can fall back to :meth:`query_most_recent_by_user`.
        """
        response = self.supabase.rpc(self.LOOKUP_RPC, {"p_user_id": user_id}).execute()
        rows = response.data or []
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            return None
        suspensions = self._parse_rows(Suspension, rows, operation_name=f"rpc {self.LOOKUP_RPC}")
        if not suspensions:
            return None
        return max(suspensions, key=lambda s: s.end_date)

    def query_active(self, now: datetime) -> list[Suspension]:
        """Rows with ``end_date`` after *now*, soonest-expiring first."""

        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .gt("end_date", to_iso(now))
                .order("end_date", desc=False)
                .execute()
            )
            return response.data or []

        name = f"query_active ({self.TABLE})"
        return self._parse_rows(Suspension, self._read(_op, operation_name=name), operation_name=name)

    def query_expired(self, now: datetime) -> list[ExpiredSuspension]:
        """Rows with ``end_date`` before *now*, one per user.

        Each user is represented by their latest ``end_date``; the result
        is ordered most-recently-expired first.
        """

        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .select("user_id, end_date")
                .lt("end_date", to_iso(now))
                .order("end_date", desc=True)
                .execute()
            )
            return response.data or []

        name = f"query_expired ({self.TABLE})"
        rows = self._parse_rows(ExpiredSuspension, self._read(_op, operation_name=name), operation_name=name)

        latest: dict[str, ExpiredSuspension] = {}
        for row in rows:
            current = latest.get(row.user_id)
            if current is None or row.end_date > current.end_date:
                latest[row.user_id] = row
        return sorted(latest.values(), key=lambda r: r.end_date, reverse=True)

    def fetch_by_user(self, user_id: str) -> Optional[Suspension]:
        """Latest suspension for *user_id*: RPC first, direct query as fallback.

        Both paths return the same shape; the fallback only covers an
        unavailable ``get_suspension`` function.

        Raises:
            ReadError: If the fallback query fails as well.
        """
        return self._execute_with_fallback(
            primary_op=lambda: self.lookup_via_rpc(user_id),
            fallback_op=lambda: self.query_most_recent_by_user(user_id),
            default_factory=lambda: None,
            operation_name=f"fetch_by_user ({self.TABLE})",
        )
