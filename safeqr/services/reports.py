"""
Report and Scan Services.

``ReportService`` drives the abuse-report workflow: listing reports,
moving them between ``Pending`` and ``Closed``, and verifying the scanned
content of a report into the verified-links list.  ``ScanService`` is
the read-only view over ``qr_scans``.
"""

from __future__ import annotations

from typing import Optional

from safeqr.errors import DuplicateError, SafeQRError
from safeqr.logger import StructuredLogger
from safeqr.models.enums import ReportStatus, SecurityStatus, VerifyOutcome
from safeqr.models.scan import QRScan, Report
from safeqr.models.service_models import ServiceResult
from safeqr.models.user import User
from safeqr.models.verified_link import VerifiedLink
from safeqr.repositories.scan_repository import ReportRepository, ScanRepository
from safeqr.repositories.verified_link_repository import VerifiedLinkRepository
from safeqr.services.base_service import BaseService
from safeqr.utils.audit import log_audit_event

SYSTEM_ACTOR: str = "system"


class ScanService(BaseService):
    """Read access to QR scans recorded by the mobile client."""

    def __init__(self, repo: ScanRepository, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._repo = repo

    def list_scans(self) -> list[QRScan]:
        try:
            return self._repo.get_all()
        except SafeQRError as exc:
            self._logger.error("Failed to fetch scans: %s", exc)
            return []

    def get_scan_details(self, scan_id: str) -> Optional[QRScan]:
        """The scan, or ``None`` when it does not exist or cannot be read."""
        try:
            return self._repo.get_by_id(scan_id)
        except SafeQRError as exc:
            self._logger.error("Failed to fetch scan %s: %s", scan_id, exc)
            return None

    def scan_url(self, scan_id: str) -> Optional[str]:
        """Decoded content of a scan, i.e. the URL that was scanned."""
        scan = self.get_scan_details(scan_id)
        if scan is None or not scan.decoded_content:
            return None
        return scan.decoded_content


class ReportService(BaseService):
    """Abuse-report workflow."""

    def __init__(
        self,
        repo: ReportRepository,
        scans: ScanService,
        link_repo: VerifiedLinkRepository,
        logger: StructuredLogger,
        default_creator_id: str = "",
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._scans = scans
        self._links = link_repo
        self._default_creator_id = default_creator_id

    def list_reports(self) -> list[Report]:
        try:
            return self._repo.get_all()
        except SafeQRError as exc:
            self._logger.error("Failed to fetch reports: %s", exc)
            return []

    def update_report_status(
        self,
        report_id: str,
        status: str,
        current_user: Optional[User],
    ) -> ServiceResult[dict[str, str]]:
        denied = self._forbidden_unless_admin(current_user, "update reports")
        if denied is not None:
            return denied
        try:
            new_status = ReportStatus(status)
        except ValueError:
            return ServiceResult(
                success=False,
                error=f"Invalid report status: '{status}'. "
                      f"Must be one of: {', '.join(s.value for s in ReportStatus)}.",
                status_code=400,
            )

        try:
            changed = self._repo.update_status(report_id, new_status)
        except SafeQRError as exc:
            return self._error_result(exc, "Updating report status")
        if changed == 0:
            return ServiceResult(success=False, error="Report not found.", status_code=404)

        log_audit_event(
            logger=self._logger,
            action="UPDATE_REPORT_STATUS",
            entity_type="Report",
            entity_id=report_id,
            user_id=current_user.user_id,
            details={"status": str(new_status)},
        )
        return ServiceResult(success=True, data={"report_id": report_id, "status": str(new_status)})

    def submit_verification(
        self,
        scan_id: str,
        label: str,
        report_id: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> VerifyOutcome:
        """Add the scanned URL to the verified list with *label*.

        Returns ``duplicate`` when the URL is already verified (the report
        is left untouched) and ``error`` when the scan is missing or any
        write fails.  On ``success`` the report, if given, is closed.
        """
        try:
            security_status = SecurityStatus(label)
        except ValueError:
            self._logger.warning("Rejected verification label %r for scan %s", label, scan_id)
            return VerifyOutcome.ERROR

        url = self._scans.scan_url(scan_id)
        if url is None:
            self._logger.warning("Scan %s not found or has no content.", scan_id)
            return VerifyOutcome.ERROR

        actor = performed_by or self._default_creator_id or SYSTEM_ACTOR
        try:
            link = self._links.insert(
                VerifiedLink(
                    url=url,
                    security_status=security_status,
                    added_by=self._default_creator_id or performed_by,
                )
            )
        except DuplicateError:
            return VerifyOutcome.DUPLICATE
        except SafeQRError as exc:
            self._logger.error("Verification of scan %s failed: %s", scan_id, exc)
            return VerifyOutcome.ERROR

        if report_id:
            try:
                self._repo.update_status(report_id, ReportStatus.CLOSED)
            except SafeQRError as exc:
                self._logger.error(
                    "Link added but report %s could not be closed: %s", report_id, exc,
                )
                return VerifyOutcome.ERROR

        log_audit_event(
            logger=self._logger,
            action="VERIFY_SCAN",
            entity_type="VerifiedLink",
            entity_id=link.link_id or url,
            user_id=actor,
            details={
                "scan_id": scan_id,
                "url": url,
                "security_status": str(security_status),
                "report_id": report_id,
            },
        )
        return VerifyOutcome.SUCCESS

    def verify_report_and_mark_safe(
        self,
        report_id: str,
        link_id: str,
        current_user: Optional[User],
    ) -> ServiceResult[dict[str, str]]:
        """Close the report, then classify the related link as ``Safe``."""
        denied = self._forbidden_unless_admin(current_user, "verify reports")
        if denied is not None:
            return denied
        try:
            if self._repo.update_status(report_id, ReportStatus.CLOSED) == 0:
                return ServiceResult(success=False, error="Report not found.", status_code=404)
            if self._links.update_status(link_id, SecurityStatus.SAFE) is None:
                return ServiceResult(success=False, error="Link not found.", status_code=404)
        except SafeQRError as exc:
            return self._error_result(exc, "Verifying report")

        log_audit_event(
            logger=self._logger,
            action="VERIFY_REPORT_SAFE",
            entity_type="Report",
            entity_id=report_id,
            user_id=current_user.user_id,
            details={"link_id": link_id},
        )
        return ServiceResult(success=True, data={"report_id": report_id, "link_id": link_id})
