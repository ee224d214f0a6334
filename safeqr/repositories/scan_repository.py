"""
Scan and Report Repositories.

``qr_scans`` is written by the mobile client and only read here.
``reports`` rows are read and have their ``status`` moved by admins.
"""

from __future__ import annotations

from typing import Optional

from safeqr.models.enums import ReportStatus, ScanSecurityStatus
from safeqr.models.scan import QRScan, Report
from safeqr.repositories.base_repository import BaseRepository


class ScanRepository(BaseRepository):
    """Read-only access to QR scan records."""

    TABLE = "qr_scans"
    COLUMNS = "scan_id, user_id, decoded_content, security_status, scanned_at, content_type"

    def get_all(self) -> list[QRScan]:
        def _op() -> list[QRScan]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .order("scanned_at", desc=True)
                .execute()
            )
            return [QRScan(**row) for row in response.data or []]

        return self._read(_op, operation_name=f"get_all ({self.TABLE})")

    def get_by_id(self, scan_id: str) -> Optional[QRScan]:
        def _op() -> Optional[QRScan]:
            response = (
                self.supabase.table(self.TABLE)
                .select(self.COLUMNS)
                .eq("scan_id", scan_id)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return QRScan(**rows[0]) if rows else None

        return self._read(_op, operation_name=f"get_by_id ({self.TABLE})")

    def count(self, status: Optional[ScanSecurityStatus] = None) -> int:
        def _op() -> int:
            query = self.supabase.table(self.TABLE).select("scan_id", count="exact", head=True)
            if status is not None:
                query = query.eq("security_status", str(status))
            return query.execute().count or 0

        return self._read(_op, operation_name=f"count ({self.TABLE})")


class ReportRepository(BaseRepository):
    """Data access for end-user abuse reports."""

    TABLE = "reports"

    def get_all(self) -> list[Report]:
        def _op() -> list[Report]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
            return [Report(**row) for row in response.data or []]

        return self._read(_op, operation_name=f"get_all ({self.TABLE})")

    def update_status(self, report_id: str, status: ReportStatus) -> int:
        """Set one report's status; returns the number of rows changed."""
        def _op() -> int:
            response = (
                self.supabase.table(self.TABLE)
                .update({"status": str(status)})
                .eq("report_id", report_id)
                .execute()
            )
            return len(response.data or [])

        return self._write(_op, operation_name=f"update_status ({self.TABLE})")

    def close_for_link(self, link_id: str) -> int:
        """Close every report tied to *link_id*."""
        def _op() -> int:
            response = (
                self.supabase.table(self.TABLE)
                .update({"status": str(ReportStatus.CLOSED)})
                .eq("link_id", link_id)
                .execute()
            )
            return len(response.data or [])

        return self._write(_op, operation_name=f"close_for_link ({self.TABLE})")
