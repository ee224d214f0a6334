"""
ML Model Repository.

CRUD over the ``ml_models`` metadata table.
"""

from __future__ import annotations

from typing import Optional

from safeqr.database import DatabaseManager
from safeqr.logger import StructuredLogger
from safeqr.models.ml_model import MLModel
from safeqr.repositories.base_repository import BaseRepository
from safeqr.utils.clock import Clock, to_iso, utcnow


class MLModelRepository(BaseRepository):
    """Data access layer for MLModel rows."""

    TABLE = "ml_models"

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(db, logger)
        self._clock = clock

    def get_all(self) -> list[MLModel]:
        def _op() -> list[MLModel]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
            return [MLModel(**row) for row in response.data or []]

        return self._read(_op, operation_name=f"get_all ({self.TABLE})")

    def insert(self, model: MLModel) -> MLModel:
        payload = model.model_dump(mode="json", exclude_none=True, exclude={"model_id"})
        payload.setdefault("created_at", to_iso(self._clock()))

        def _op() -> list[dict[str, object]]:
            return self.supabase.table(self.TABLE).insert(payload).execute().data or []

        name = f"insert ({self.TABLE})"
        stored = self._parse_rows(MLModel, self._write(_op, operation_name=name), operation_name=name)
        return stored[0] if stored else model

    def update(self, model_id: str, changes: dict[str, object]) -> Optional[MLModel]:
        """Apply *changes*; ``None`` when no row matched."""
        def _op() -> list[dict[str, object]]:
            response = (
                self.supabase.table(self.TABLE)
                .update(changes)
                .eq("model_id", model_id)
                .execute()
            )
            return response.data or []

        name = f"update ({self.TABLE})"
        rows = self._write(_op, operation_name=name)
        return self._read_back(MLModel, rows, operation_name=name) if rows else None

    def deactivate_others(self, model_id: str) -> None:
        """Clear ``is_active`` on every model except *model_id*."""
        def _op() -> None:
            (
                self.supabase.table(self.TABLE)
                .update({"is_active": False})
                .neq("model_id", model_id)
                .execute()
            )

        self._write(_op, operation_name=f"deactivate_others ({self.TABLE})")

    def delete(self, model_id: str) -> bool:
        def _op() -> bool:
            response = (
                self.supabase.table(self.TABLE)
                .delete()
                .eq("model_id", model_id)
                .execute()
            )
            return bool(response.data)

        return self._write(_op, operation_name=f"delete ({self.TABLE})")
