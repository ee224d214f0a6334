"""
Dashboard Service.

Headline counts for the admin landing page and the backend status
indicator.  Every count is an exact-count query; a count that fails is
logged and shown as zero so one broken table never blanks the page.
"""

from __future__ import annotations

from typing import Callable

from postgrest.exceptions import APIError

from safeqr.errors import ReadError
from safeqr.logger import StructuredLogger
from safeqr.models.enums import AccountStatus, ScanSecurityStatus
from safeqr.models.service_models import DashboardStats
from safeqr.repositories.scan_repository import ScanRepository
from safeqr.repositories.user_repository import UserRepository
from safeqr.services.base_service import BaseService

# PostgREST codes for "database unreachable" (served as 503/504).
_UNAVAILABLE_CODES: frozenset[str] = frozenset({"PGRST000", "PGRST001", "PGRST002", "PGRST003"})


class DashboardService(BaseService):
    """Service layer for dashboard statistics."""

    def __init__(
        self,
        user_repo: UserRepository,
        scan_repo: ScanRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._users = user_repo
        self._scans = scan_repo

    def get_dashboard_stats(self) -> DashboardStats:
        return DashboardStats(
            total_users=self._count("total_users", self._users.count),
            active_users=self._count("active_users", lambda: self._users.count(AccountStatus.ACTIVE)),
            suspended_users=self._count(
                "suspended_users", lambda: self._users.count(AccountStatus.SUSPENDED),
            ),
            total_scans=self._count("total_scans", self._scans.count),
            safe_scans=self._count("safe_scans", lambda: self._scans.count(ScanSecurityStatus.SAFE)),
            malicious_scans=self._count(
                "malicious_scans", lambda: self._scans.count(ScanSecurityStatus.MALICIOUS),
            ),
        )

    def is_backend_online(self) -> bool:
        """Probe the ``users`` table.

        Only an unreachable server or an unavailable database counts as
        offline.  Any other error response (permissions, bad request)
        proves the server answered and counts as online.
        """
        try:
            self._users.ping()
        except APIError as exc:
            if exc.code in _UNAVAILABLE_CODES:
                self._logger.warning("Backend reports database unavailable: %s", exc.message)
                return False
            return True
        except Exception as exc:
            self._logger.warning("Backend unreachable: %s", exc)
            return False
        return True

    def _count(self, label: str, op: Callable[[], int]) -> int:
        try:
            return op()
        except ReadError as exc:
            self._logger.error("Dashboard count %s failed: %s", label, exc)
            return 0
