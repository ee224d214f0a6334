"""
Verified Links Service.

Curates the list of URLs with an admin-assigned classification
(``Safe`` / ``Malicious``).  URL uniqueness is left to the store's unique
constraint: an insert that collides surfaces as ``DuplicateError`` and is
reported with status 409, with no read-before-write check.
"""

from __future__ import annotations

from typing import Optional

from safeqr.errors import DuplicateError, SafeQRError
from safeqr.logger import StructuredLogger
from safeqr.models.enums import SecurityStatus
from safeqr.models.service_models import ServiceResult, VerificationStats
from safeqr.models.user import User
from safeqr.models.verified_link import VerifiedLink
from safeqr.repositories.scan_repository import ReportRepository
from safeqr.repositories.verified_link_repository import VerifiedLinkRepository
from safeqr.services.base_service import BaseService
from safeqr.utils.audit import log_audit_event
from safeqr.utils.validation import is_valid_url


class VerifiedLinkService(BaseService):
    """Service layer for the verified-links page."""

    def __init__(
        self,
        repo: VerifiedLinkRepository,
        report_repo: ReportRepository,
        logger: StructuredLogger,
        page_size: int = 1000,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._reports = report_repo
        self._page_size = max(1, page_size)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_links(self) -> list[VerifiedLink]:
        """Every verified link, newest first, fetched in fixed-size pages."""
        links: list[VerifiedLink] = []
        start = 0
        try:
            while True:
                batch = self._repo.get_page(start, self._page_size)
                links.extend(batch)
                if len(batch) < self._page_size:
                    break
                start += self._page_size
        except SafeQRError as exc:
            self._logger.error("Listing verified links stopped after %d rows: %s", len(links), exc)
        return links

    def get_link(self, link_id: str) -> ServiceResult[VerifiedLink]:
        try:
            link = self._repo.get_by_id(link_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Fetching link")
        if link is None:
            return ServiceResult(success=False, error="Link not found.", status_code=404)
        return ServiceResult(success=True, data=link)

    def get_link_by_url(self, url: str) -> Optional[VerifiedLink]:
        try:
            return self._repo.get_by_url(url.strip())
        except SafeQRError as exc:
            self._logger.error("Lookup of %s failed: %s", url, exc)
            return None

    def links_by_status(self, status: SecurityStatus) -> list[VerifiedLink]:
        try:
            return self._repo.get_by_status(status)
        except SafeQRError as exc:
            self._logger.error("Listing %s links failed: %s", status, exc)
            return []

    def search_links(self, term: str) -> list[VerifiedLink]:
        """Case-insensitive substring search on the URL; blank lists everything."""
        if not term or not term.strip():
            return self.list_links()
        try:
            return self._repo.search(term.strip())
        except SafeQRError as exc:
            self._logger.error("Link search for %r failed: %s", term, exc)
            return []

    def is_url_verified_and_safe(self, url: str) -> bool:
        link = self.get_link_by_url(url)
        return link is not None and link.security_status == SecurityStatus.SAFE

    def verification_stats(self) -> VerificationStats:
        links = self.list_links()
        safe = sum(1 for link in links if link.security_status == SecurityStatus.SAFE)
        return VerificationStats(total=len(links), safe=safe, malicious=len(links) - safe)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_link(
        self,
        url: str,
        status: str,
        current_user: Optional[User],
        added_by: Optional[str] = None,
    ) -> ServiceResult[VerifiedLink]:
        denied = self._forbidden_unless_admin(current_user, "add verified links")
        if denied is not None:
            return denied

        url = (url or "").strip()
        if not is_valid_url(url):
            return ServiceResult(success=False, error=f"Invalid URL: '{url}'.", status_code=400)
        try:
            security_status = SecurityStatus(status)
        except ValueError:
            return ServiceResult(
                success=False,
                error=f"Invalid security status: '{status}'. "
                      f"Must be one of: {', '.join(s.value for s in SecurityStatus)}.",
                status_code=400,
            )

        try:
            created = self._repo.insert(
                VerifiedLink(
                    url=url,
                    security_status=security_status,
                    added_by=added_by or current_user.user_id,
                )
            )
        except DuplicateError:
            return ServiceResult(
                success=False,
                error=f"The URL '{url}' is already in the verified list.",
                status_code=409,
            )
        except SafeQRError as exc:
            return self._error_result(exc, "Adding verified link")

        log_audit_event(
            logger=self._logger,
            action="CREATE_LINK",
            entity_type="VerifiedLink",
            entity_id=created.link_id or url,
            user_id=current_user.user_id,
            details={"url": url, "security_status": str(security_status)},
        )
        return ServiceResult(success=True, data=created, status_code=201)

    def delete_link(self, link_id: str, current_user: Optional[User]) -> ServiceResult[dict[str, str]]:
        denied = self._forbidden_unless_admin(current_user, "delete verified links")
        if denied is not None:
            return denied
        try:
            removed = self._repo.delete_with_features(link_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Deleting verified link")
        if not removed:
            return ServiceResult(success=False, error="Link not found.", status_code=404)

        log_audit_event(
            logger=self._logger,
            action="DELETE_LINK",
            entity_type="VerifiedLink",
            entity_id=link_id,
            user_id=current_user.user_id,
        )
        return ServiceResult(success=True, data={"message": f"Link {link_id} deleted."})

    def toggle_security_status(
        self,
        link_id: str,
        current_user: Optional[User],
    ) -> ServiceResult[VerifiedLink]:
        """Flip Safe <-> Malicious and close every report tied to the link."""
        denied = self._forbidden_unless_admin(current_user, "reclassify verified links")
        if denied is not None:
            return denied

        found = self.get_link(link_id)
        if not found.success or found.data is None:
            return found
        old_status = found.data.security_status
        new_status = (
            SecurityStatus.MALICIOUS if old_status == SecurityStatus.SAFE else SecurityStatus.SAFE
        )

        try:
            updated = self._repo.update_status(link_id, new_status)
            if updated is None:
                return ServiceResult(success=False, error="Link not found.", status_code=404)
            closed = self._reports.close_for_link(link_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Updating link status")

        log_audit_event(
            logger=self._logger,
            action="TOGGLE_LINK_STATUS",
            entity_type="VerifiedLink",
            entity_id=link_id,
            user_id=current_user.user_id,
            details={
                "old_status": str(old_status),
                "new_status": str(new_status),
                "reports_closed": closed,
            },
        )
        return ServiceResult(success=True, data=updated)
