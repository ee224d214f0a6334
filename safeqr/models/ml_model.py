"""
ML Model Metadata.

Metadata rows describing classifier versions.  Training happens
elsewhere; the dashboard only records metrics and picks the active one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class MLModel(BaseModel):
    model_id: Optional[str] = None
    version: str
    storage_path: Optional[str] = None
    trained_by: Optional[str] = None
    created_at: Optional[datetime] = None
    accuracy: Optional[float] = Field(default=None, ge=0, le=1)
    precision: Optional[float] = Field(default=None, ge=0, le=1)
    recall: Optional[float] = Field(default=None, ge=0, le=1)
    f1: Optional[float] = Field(default=None, ge=0, le=1)
    params: Optional[dict[str, Any]] = None
    train_time_seconds: Optional[float] = Field(default=None, ge=0)
    is_active: bool = False

    model_config = {"from_attributes": True, "extra": "ignore", "protected_namespaces": ()}

    @property
    def is_trained(self) -> bool:
        """A model counts as trained once an accuracy has been recorded."""
        return self.accuracy is not None
