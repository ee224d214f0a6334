"""
QR Scan and Report Models.

Scans are produced by the mobile client and only read here; reports are
end-user abuse reports about a scan, whose status admins move between
``Pending`` and ``Closed``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from safeqr.models.enums import ReportStatus, ScanSecurityStatus


class QRScan(BaseModel):
    scan_id: str
    user_id: Optional[str] = None
    decoded_content: Optional[str] = None
    security_status: ScanSecurityStatus = ScanSecurityStatus.UNKNOWN
    content_type: Optional[str] = None
    scanned_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}


class Report(BaseModel):
    report_id: str
    scan_id: Optional[str] = None
    user_id: Optional[str] = None
    link_id: Optional[str] = None
    reason: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}
