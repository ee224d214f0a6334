"""
Repository Layer Package.

Provides data-access abstractions over the Supabase tables.  All database
operations flow through repositories; services never build PostgREST
queries themselves.

Usage:
    from safeqr.repositories.suspension_repository import SuspensionRepository
    from safeqr.repositories.user_repository import UserRepository
"""

from safeqr.repositories.base_repository import BaseRepository
from safeqr.repositories.ml_model_repository import MLModelRepository
from safeqr.repositories.scan_repository import ReportRepository, ScanRepository
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.repositories.user_repository import UserRepository
from safeqr.repositories.verified_link_repository import VerifiedLinkRepository

__all__ = [
    "BaseRepository",
    "MLModelRepository",
    "ReportRepository",
    "ScanRepository",
    "SuspensionRepository",
    "UserRepository",
    "VerifiedLinkRepository",
]
