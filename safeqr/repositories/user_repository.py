"""
User Repository.

Handles account data access on the Supabase ``users`` table.  This is the
Account Store the suspension lifecycle keeps consistent with the
``suspensions`` table through ``account_status``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from safeqr.database import DatabaseManager
from safeqr.errors import NotFoundError
from safeqr.logger import StructuredLogger
from safeqr.models.enums import AccountStatus
from safeqr.models.user import User
from safeqr.repositories.base_repository import BaseRepository
from safeqr.utils.clock import Clock, to_iso, utcnow


class UserRepository(BaseRepository):
    """Data access layer for User rows."""

    TABLE = "users"
    COLUMNS = "user_id, username, email, role, account_status, created_at, updated_at"

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(db, logger)
        self._clock = clock

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Fetch a user by primary key, or ``None`` if absent."""
        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
            return response.data or []

        name = f"get_by_id ({self.TABLE})"
        rows = self._parse_rows(User, self._read(_op, operation_name=name), operation_name=name)
        return rows[0] if rows else None

    def get_all(self) -> list[User]:
        """Fetch all users, newest first."""
        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .order("created_at", desc=True)
                .execute()
            )
            return response.data or []

        name = f"get_all ({self.TABLE})"
        return self._parse_rows(User, self._read(_op, operation_name=name), operation_name=name)

    def get_by_status(self, status: AccountStatus) -> list[User]:
        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .eq("account_status", str(status))
                .execute()
            )
            return response.data or []

        name = f"get_by_status ({self.TABLE})"
        return self._parse_rows(User, self._read(_op, operation_name=name), operation_name=name)

    def count(self, status: Optional[AccountStatus] = None) -> int:
        """Exact row count, optionally restricted to one account status."""
        def _op() -> int:
            query = self.supabase.table(self.TABLE).select("user_id", count="exact", head=True)
            if status is not None:
                query = query.eq("account_status", str(status))
            response = query.execute()
            return response.count or 0

        return self._read(_op, operation_name=f"count ({self.TABLE})")

    def insert(self, user: User) -> User:
        """Insert a new profile row."""
        now = to_iso(self._clock())
        payload = user.model_dump(mode="json", exclude_none=True)
        payload.setdefault("created_at", now)
        payload.setdefault("updated_at", now)

        def _op() -> list[dict[str, object]]:
            return self.supabase.table(self.TABLE).insert(payload).execute().data or []

        name = f"insert ({self.TABLE})"
        stored = self._parse_rows(User, self._write(_op, operation_name=name), operation_name=name)
        created = stored[0] if stored else user
        self._logger.info("User row created: %s", created.user_id)
        return created

    def update(self, user_id: str, changes: dict[str, object]) -> Optional[User]:
        """Apply *changes* to one row, stamping ``updated_at``.

        Returns the updated row, or ``None`` when the write landed but the
        stored row could not be parsed back.

        Raises:
            NotFoundError: If no row has this ``user_id``.
            WriteError: If the store rejects the update.
        """
        payload: dict[str, object] = {
            key: (to_iso(value) if isinstance(value, datetime) else value)
            for key, value in changes.items()
        }
        payload["updated_at"] = to_iso(self._clock())

        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .update(payload)
                .eq("user_id", user_id)
                .execute()
            )
            return response.data or []

        name = f"update ({self.TABLE})"
        rows = self._write(_op, operation_name=name)
        if not rows:
            raise NotFoundError(f"User {user_id} not found.")
        parsed = self._parse_rows(User, rows, operation_name=name)
        return parsed[0] if parsed else None

    def update_status(self, user_id: str, status: AccountStatus) -> None:
        """Set ``account_status`` for one user.

        Raises:
            NotFoundError: If no row has this ``user_id``.
            WriteError: If the store rejects the update.
        """
        self.update(user_id, {"account_status": str(status)})
        self._logger.info("Account status for %s set to %s", user_id, status)

    def delete(self, user_id: str) -> bool:
        """Hard-delete a profile row. Returns ``True`` when a row was removed."""
        def _op() -> bool:
            response = (
                self.supabase.table(self.TABLE)
                .delete()
                .eq("user_id", user_id)
                .execute()
            )
            return bool(response.data)

        return self._write(_op, operation_name=f"delete ({self.TABLE})")

    def ping(self) -> None:
        """Fetch at most one row, letting any failure propagate untranslated."""
        self.supabase.table(self.TABLE).select("user_id").limit(1).execute()
