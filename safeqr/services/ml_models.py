"""
ML Model Metadata Service.

Records classifier versions and their evaluation metrics, and chooses
which one is active.  Training runs elsewhere.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from safeqr.errors import SafeQRError
from safeqr.logger import StructuredLogger
from safeqr.models.ml_model import MLModel
from safeqr.models.service_models import ServiceResult
from safeqr.models.user import User
from safeqr.repositories.ml_model_repository import MLModelRepository
from safeqr.services.base_service import BaseService
from safeqr.utils.audit import log_audit_event

_EDITABLE_FIELDS: frozenset[str] = frozenset({
    "version",
    "storage_path",
    "trained_by",
    "accuracy",
    "precision",
    "recall",
    "f1",
    "params",
    "train_time_seconds",
})


class MLModelService(BaseService):
    """Service layer for the model management page."""

    def __init__(self, repo: MLModelRepository, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._repo = repo

    def list_models(self) -> list[MLModel]:
        try:
            return self._repo.get_all()
        except SafeQRError as exc:
            self._logger.error("Failed to fetch ML models: %s", exc)
            return []

    def active_model(self) -> Optional[MLModel]:
        return next((m for m in self.list_models() if m.is_active), None)

    def create_model(self, fields: dict[str, Any], current_user: Optional[User]) -> ServiceResult[MLModel]:
        denied = self._forbidden_unless_admin(current_user, "register models")
        if denied is not None:
            return denied
        payload = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS}
        payload.setdefault("trained_by", current_user.user_id)
        try:
            model = MLModel(**payload)
        except ValidationError as exc:
            return ServiceResult(success=False, error=f"Invalid model metadata: {exc}", status_code=400)

        try:
            created = self._repo.insert(model)
        except SafeQRError as exc:
            return self._error_result(exc, "Registering model")

        log_audit_event(
            logger=self._logger,
            action="CREATE_MODEL",
            entity_type="MLModel",
            entity_id=created.model_id or created.version,
            user_id=current_user.user_id,
            details={"version": created.version},
        )
        return ServiceResult(success=True, data=created, status_code=201)

    def update_model(
        self,
        model_id: str,
        changes: dict[str, Any],
        current_user: Optional[User],
    ) -> ServiceResult[MLModel]:
        """Update metrics or descriptive fields; ``is_active`` goes through :meth:`set_active_model`."""
        denied = self._forbidden_unless_admin(current_user, "edit models")
        if denied is not None:
            return denied
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            return ServiceResult(
                success=False,
                error=f"Fields cannot be edited: {', '.join(sorted(unknown))}.",
                status_code=400,
            )
        try:
            MLModel.model_validate({"version": "", **changes})
        except ValidationError as exc:
            return ServiceResult(success=False, error=f"Invalid model metadata: {exc}", status_code=400)

        try:
            updated = self._repo.update(model_id, changes)
        except SafeQRError as exc:
            return self._error_result(exc, "Updating model")
        if updated is None:
            return ServiceResult(success=False, error="Model not found.", status_code=404)

        log_audit_event(
            logger=self._logger,
            action="UPDATE_MODEL",
            entity_type="MLModel",
            entity_id=model_id,
            user_id=current_user.user_id,
            details={key: str(value) for key, value in changes.items()},
        )
        return ServiceResult(success=True, data=updated)

    def delete_model(self, model_id: str, current_user: Optional[User]) -> ServiceResult[dict[str, str]]:
        denied = self._forbidden_unless_admin(current_user, "delete models")
        if denied is not None:
            return denied
        try:
            removed = self._repo.delete(model_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Deleting model")
        if not removed:
            return ServiceResult(success=False, error="Model not found.", status_code=404)

        log_audit_event(
            logger=self._logger,
            action="DELETE_MODEL",
            entity_type="MLModel",
            entity_id=model_id,
            user_id=current_user.user_id,
        )
        return ServiceResult(success=True, data={"message": f"Model {model_id} deleted."})

    def set_active_model(self, model_id: str, current_user: Optional[User]) -> ServiceResult[MLModel]:
        """Mark *model_id* active and every other model inactive."""
        denied = self._forbidden_unless_admin(current_user, "activate models")
        if denied is not None:
            return denied
        try:
            activated = self._repo.update(model_id, {"is_active": True})
            if activated is None:
                return ServiceResult(success=False, error="Model not found.", status_code=404)
            self._repo.deactivate_others(model_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Activating model")

        log_audit_event(
            logger=self._logger,
            action="ACTIVATE_MODEL",
            entity_type="MLModel",
            entity_id=model_id,
            user_id=current_user.user_id,
            details={"version": activated.version},
        )
        return ServiceResult(success=True, data=activated)
