"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (Supabase data client)
- Logger reference
- Translation of PostgREST / transport failures into typed errors
- Primary-then-fallback read helper for resilient lookups
- Row parsing that skips malformed rows instead of failing the call
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, TypeVar

from postgrest.exceptions import APIError
from pydantic import BaseModel, ValidationError
from supabase import Client as SupabaseClient

from safeqr.database import DatabaseManager
from safeqr.errors import DuplicateError, ReadError, WriteError
from safeqr.logger import StructuredLogger

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

# PostgreSQL SQLSTATE for unique_violation.
UNIQUE_VIOLATION: str = "23505"


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase data client."""
        return self._db.supabase

    def _read(self, op: Callable[[], T], *, operation_name: str) -> T:
        """Run a query, converting any failure into :class:`ReadError`.

        ``RuntimeError`` from an unconfigured client is treated like any
        other backend failure.
        """
        try:
            return op()
        except Exception as exc:
            self._logger.warning(
                "Query failed for %s: %s", operation_name, exc,
            )
            raise ReadError(f"Could not complete {operation_name}: {exc}", exc) from exc

    def _write(self, op: Callable[[], T], *, operation_name: str) -> T:
        """Run a write, converting failures into :class:`WriteError`.

        Unique-constraint violations surface as :class:`DuplicateError`
        so callers can report them without a prior existence check.
        """
        try:
            return op()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                self._logger.info(
                    "Unique constraint rejected %s: %s", operation_name, exc.message,
                )
                raise DuplicateError(
                    f"Duplicate value rejected for {operation_name}.", exc,
                ) from exc
            self._logger.error(
                "Supabase rejected %s: %s", operation_name, exc.message,
            )
            raise WriteError(f"Could not complete {operation_name}: {exc.message}", exc) from exc
        except Exception as exc:
            self._logger.error("Write failed for %s: %s", operation_name, exc)
            raise WriteError(f"Could not complete {operation_name}: {exc}", exc) from exc

    def _execute_with_fallback(
        self,
        primary_op: Callable[[], Optional[T]],
        fallback_op: Callable[[], Optional[T]],
        default_factory: Callable[[], T],
        *,
        operation_name: str,
    ) -> T:
        """Execute a read with primary-first, fallback-second semantics.

        Execution order:
        1. Call ``primary_op()``.  If it succeeds, return its result
           (``None`` included: an empty answer is still an answer).
        2. Only when it *raises*, call ``fallback_op()`` and return its
           result, or ``default_factory()`` when that is ``None``.

        A failure of the fallback propagates as :class:`ReadError`.
        """
        try:
            result = primary_op()
            return result if result is not None else default_factory()
        except Exception as exc:
            self._logger.warning(
                "Primary lookup unavailable for %s, using fallback: %s",
                operation_name,
                exc,
            )

        result = self._read(fallback_op, operation_name=operation_name)
        return result if result is not None else default_factory()

    def _parse_rows(
        self,
        model: type[M],
        rows: Optional[Iterable[dict[str, Any]]],
        *,
        operation_name: str,
    ) -> list[M]:
        """Validate *rows* into *model*, logging and dropping any that fail.

        Runs outside ``_read``/``_write`` so a row the model rejects never
        turns a committed write into a reported failure.
        """
        parsed: list[M] = []
        for row in rows or []:
            try:
                parsed.append(model.model_validate(row))
            except ValidationError as exc:
                self._logger.warning(
                    "Skipping malformed %s row from %s: %s",
                    model.__name__,
                    operation_name,
                    exc.errors(include_url=False),
                    extra={"event": "ROW_SKIPPED", "table": self.TABLE},
                )
        return parsed

    def _read_back(
        self,
        model: type[M],
        rows: list[dict[str, Any]],
        *,
        operation_name: str,
    ) -> M:
        """Parse the row a committed write returned.

        Raises:
            ReadError: The write landed but the stored row does not parse.
        """
        parsed = self._parse_rows(model, rows[:1], operation_name=operation_name)
        if not parsed:
            raise ReadError(
                f"{operation_name} was applied but the stored row could not be read back."
            )
        return parsed[0]
