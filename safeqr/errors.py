"""
Typed error taxonomy for the SafeQR admin backend.

Repositories translate PostgREST / network failures into these types so
that services can decide, per operation, whether a failure propagates
(write paths) or degrades to an empty answer (read paths).
"""

from __future__ import annotations

from typing import Optional


class SafeQRError(Exception):
    """Base class for every error raised by the SafeQR service layer."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        self.message: str = message
        self.original_error: Optional[BaseException] = original_error
        super().__init__(message)


class NotFoundError(SafeQRError):
    """A keyed lookup matched no row."""


class WriteError(SafeQRError):
    """An insert, update or delete was rejected or could not be delivered."""


class DuplicateError(WriteError):
    """A write violated a unique constraint (PostgreSQL ``23505``)."""


class SweepError(SafeQRError):
    """The expired-suspension cleanup pass failed."""


class PartialTransactionError(WriteError):
    """A two-write sequence (suspension row + account status) half-applied.

    ``rolled_back`` reports whether the compensating action for the first
    write succeeded.  When it is ``False`` the suspension rows and the
    account status may disagree until the next reconciliation.
    """

    def __init__(
        self,
        message: str,
        *,
        user_id: str,
        operation: str,
        rolled_back: bool,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, original_error)
        self.user_id: str = user_id
        self.operation: str = operation
        self.rolled_back: bool = rolled_back


class InvalidSuspensionError(ValueError):
    """Precondition failure for a suspend request; raised before any write."""


class ReadError(SafeQRError):
    """A query could not be completed (backend unavailable or rejected)."""
