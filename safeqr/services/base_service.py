"""
Base Service Class.

Holds the logger every service writes to, plus the small helpers the
``ServiceResult``-returning services share: the admin gate and the
failure envelope for repository errors.
"""

from __future__ import annotations

from typing import Any, Optional

from safeqr.errors import DuplicateError, NotFoundError, ReadError, SafeQRError
from safeqr.logger import StructuredLogger
from safeqr.models.service_models import ServiceResult
from safeqr.models.user import User


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    @staticmethod
    def _forbidden_unless_admin(current_user: Optional[User], action: str) -> Optional[ServiceResult[Any]]:
        """Return a 403 result when *current_user* may not perform *action*."""
        if current_user is None or not current_user.is_admin:
            return ServiceResult(
                success=False,
                error=f"Only admin users can {action}.",
                status_code=403,
            )
        return None

    def _error_result(self, exc: SafeQRError, context: str) -> ServiceResult[Any]:
        """Translate a typed repository error into a failure envelope."""
        if isinstance(exc, NotFoundError):
            status_code = 404
        elif isinstance(exc, DuplicateError):
            status_code = 409
        elif isinstance(exc, ReadError):
            status_code = 503
        else:
            status_code = 500
        self._logger.error("%s failed: %s", context, exc.message)
        return ServiceResult(success=False, error=f"{context} failed: {exc.message}", status_code=status_code)
