"""
Verified Link Repository.

Data access for ``verified_links`` and its dependent ``url_features``
rows.  URL uniqueness is enforced by the table's unique constraint and
reported as ``DuplicateError`` by :meth:`insert`.
"""

from __future__ import annotations

from typing import Optional

from safeqr.database import DatabaseManager
from safeqr.logger import StructuredLogger
from safeqr.models.enums import SecurityStatus
from safeqr.models.verified_link import VerifiedLink
from safeqr.repositories.base_repository import BaseRepository
from safeqr.utils.clock import Clock, to_iso, utcnow


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so a search term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class VerifiedLinkRepository(BaseRepository):
    """Data access layer for VerifiedLink rows."""

    TABLE = "verified_links"
    FEATURES_TABLE = "url_features"

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(db, logger)
        self._clock = clock

    def get_page(self, start: int, size: int) -> list[VerifiedLink]:
        """One batch of links, newest first (``start`` is a row offset)."""
        def _op() -> list[VerifiedLink]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .order("created_at", desc=True)
                .range(start, start + size - 1)
                .execute()
            )
            return [VerifiedLink(**row) for row in response.data or []]

        return self._read(_op, operation_name=f"get_page ({self.TABLE})")

    def get_by_id(self, link_id: str) -> Optional[VerifiedLink]:
        return self._get_one("link_id", link_id, "get_by_id")

    def get_by_url(self, url: str) -> Optional[VerifiedLink]:
        return self._get_one("url", url, "get_by_url")

    def get_by_status(self, status: SecurityStatus) -> list[VerifiedLink]:
        def _op() -> list[VerifiedLink]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("security_status", str(status))
                .order("created_at", desc=True)
                .execute()
            )
            return [VerifiedLink(**row) for row in response.data or []]

        return self._read(_op, operation_name=f"get_by_status ({self.TABLE})")

    def search(self, term: str) -> list[VerifiedLink]:
        """Case-insensitive substring match on the URL."""
        pattern = f"%{_escape_like(term)}%"

        def _op() -> list[VerifiedLink]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .ilike("url", pattern)
                .order("created_at", desc=True)
                .execute()
            )
            return [VerifiedLink(**row) for row in response.data or []]

        return self._read(_op, operation_name=f"search ({self.TABLE})")

    def insert(self, link: VerifiedLink) -> VerifiedLink:
        """Insert a link.

        Raises:
            DuplicateError: If the URL is already present.
            WriteError: For any other rejection.
        """
        payload = link.model_dump(mode="json", exclude_none=True, exclude={"link_id"})
        payload.setdefault("created_at", to_iso(self._clock()))

        def _op() -> list[dict[str, object]]:
            return self.supabase.table(self.TABLE).insert(payload).execute().data or []

        name = f"insert ({self.TABLE})"
        stored = self._parse_rows(VerifiedLink, self._write(_op, operation_name=name), operation_name=name)
        created = stored[0] if stored else link
        self._logger.info("Verified link added: %s (%s)", created.url, created.security_status)
        return created

    def update_status(self, link_id: str, status: SecurityStatus) -> Optional[VerifiedLink]:
        """Set the classification; ``None`` when no row matched."""
        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .update({"security_status": str(status)})
                .eq("link_id", link_id)
                .execute()
            )
            return response.data or []

        name = f"update_status ({self.TABLE})"
        rows = self._write(_op, operation_name=name)
        return self._read_back(VerifiedLink, rows, operation_name=name) if rows else None

    def delete_with_features(self, link_id: str) -> bool:
        """Delete dependent ``url_features`` rows, then the link itself."""
        def _delete_features() -> None:
            (
                self.supabase.table(self.FEATURES_TABLE)
                .delete()
                .eq("link_id", link_id)
                .execute()
            )

        def _delete_link() -> bool:
            response = (
                self.supabase.table(self.TABLE)
                .delete()
                .eq("link_id", link_id)
                .execute()
            )
            return bool(response.data)

        self._write(_delete_features, operation_name=f"delete ({self.FEATURES_TABLE})")
        return self._write(_delete_link, operation_name=f"delete ({self.TABLE})")

    def _get_one(self, column: str, value: str, label: str) -> Optional[VerifiedLink]:
        def _op() -> Optional[VerifiedLink]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq(column, value)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return VerifiedLink(**rows[0]) if rows else None

        return self._read(_op, operation_name=f"{label} ({self.TABLE})")
