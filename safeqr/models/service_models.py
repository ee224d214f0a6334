"""
Service Layer Data Transfer Objects.

Pydantic models for validated output at service boundaries.
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

__all__ = [
    "DashboardStats",
    "ServiceResult",
    "VerificationStats",
]


class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    User-facing service methods return this, providing a consistent
    contract for page handlers and the CLI.  Generic over ``T`` so callers
    can annotate precisely (e.g. ``ServiceResult[list[User]]``).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200


class DashboardStats(BaseModel):
    """Headline counts for the admin landing page."""

    total_users: int = 0
    active_users: int = 0
    suspended_users: int = 0
    total_scans: int = 0
    safe_scans: int = 0
    malicious_scans: int = 0


class VerificationStats(BaseModel):
    """Breakdown of the verified-links list by classification."""

    total: int = 0
    safe: int = 0
    malicious: int = 0
