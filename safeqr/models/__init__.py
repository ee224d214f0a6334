"""
Data Models Package.

Re-exports all Pydantic models:
    from safeqr.models import User, Suspension, VerifiedLink, QRScan, Report, MLModel
    from safeqr.models import UserRole, AccountStatus, SecurityStatus
"""

from safeqr.models.enums import (
    AccountStatus,
    ReportStatus,
    ScanSecurityStatus,
    SecurityStatus,
    UserRole,
    VerifyOutcome,
)
from safeqr.models.ml_model import MLModel
from safeqr.models.scan import QRScan, Report
from safeqr.models.service_models import DashboardStats, ServiceResult, VerificationStats
from safeqr.models.suspension import ExpiredSuspension, Suspension
from safeqr.models.user import User
from safeqr.models.verified_link import VerifiedLink

__all__ = [
    "AccountStatus",
    "DashboardStats",
    "ExpiredSuspension",
    "MLModel",
    "QRScan",
    "Report",
    "ReportStatus",
    "ScanSecurityStatus",
    "SecurityStatus",
    "ServiceResult",
    "Suspension",
    "User",
    "UserRole",
    "VerificationStats",
    "VerifiedLink",
    "VerifyOutcome",
]
