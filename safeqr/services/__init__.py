"""
Business Logic Services Package.

Services depend on the Repository layer for data access and on the
``SessionManager`` for the signed-in admin.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the application layer (page handlers / CLI) can
consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from safeqr.auth import SessionManager
from safeqr.config import AppConfig
from safeqr.database import DatabaseManager
from safeqr.logger import StructuredLogger, get_logger
from safeqr.repositories.ml_model_repository import MLModelRepository
from safeqr.repositories.scan_repository import ReportRepository, ScanRepository
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.repositories.user_repository import UserRepository
from safeqr.repositories.verified_link_repository import VerifiedLinkRepository
from safeqr.services.auth_service import AuthService
from safeqr.services.dashboard import DashboardService
from safeqr.services.expiry_sweeper import ExpirySweeper
from safeqr.services.ml_models import MLModelService
from safeqr.services.reports import ReportService, ScanService
from safeqr.services.suspension_lifecycle import SuspensionLifecycleService
from safeqr.services.suspension_query import SuspensionQueryService
from safeqr.services.users import UserService
from safeqr.services.verified_links import VerifiedLinkService
from safeqr.utils.clock import Clock, utcnow


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    # --- Suspension lifecycle ---
    expiry_sweeper: ExpirySweeper
    suspension_query_service: SuspensionQueryService
    suspension_lifecycle_service: SuspensionLifecycleService

    # --- Dashboard pages ---
    auth_service: AuthService
    user_service: UserService
    verified_link_service: VerifiedLinkService
    report_service: ReportService
    scan_service: ScanService
    ml_model_service: MLModelService
    dashboard_service: DashboardService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    clock: Clock = utcnow,
    logger: Optional[StructuredLogger] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    entry point calls this once at startup and passes the returned dict
    to page handlers / commands as needed.

    Args:
        db: Initialised DatabaseManager.
        config: Application configuration (lifecycle flags, page size).
        session: Shared session holding the signed-in admin.
        clock: Source of "now" for every time-dependent component.
        logger: Logger shared by all components; defaults to ``safeqr.services``.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = logger or get_logger("safeqr.services", config)

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    user_repo = UserRepository(db=db, logger=logger, clock=clock)
    suspension_repo = SuspensionRepository(db=db, logger=logger)
    link_repo = VerifiedLinkRepository(db=db, logger=logger, clock=clock)
    scan_repo = ScanRepository(db=db, logger=logger)
    report_repo = ReportRepository(db=db, logger=logger)
    model_repo = MLModelRepository(db=db, logger=logger, clock=clock)

    # ------------------------------------------------------------------
    # 2. Suspension lifecycle
    # ------------------------------------------------------------------
    sweeper = ExpirySweeper(repo=suspension_repo, logger=logger, clock=clock)
    query_service = SuspensionQueryService(
        repo=suspension_repo,
        sweeper=sweeper,
        logger=logger,
        clock=clock,
        fail_closed=config.SUSPENSION_CHECK_FAIL_CLOSED,
    )
    lifecycle_service = SuspensionLifecycleService(
        suspension_repo=suspension_repo,
        user_repo=user_repo,
        query_service=query_service,
        sweeper=sweeper,
        logger=logger,
        clock=clock,
        auto_lift_enabled=config.AUTO_LIFT_ENABLED,
    )

    # ------------------------------------------------------------------
    # 3. Page services
    # ------------------------------------------------------------------
    auth_service = AuthService(db=db, session=session, user_repo=user_repo, logger=logger)
    user_service = UserService(
        repo=user_repo,
        suspension_repo=suspension_repo,
        lifecycle=lifecycle_service,
        db=db,
        logger=logger,
        clock=clock,
    )
    verified_link_service = VerifiedLinkService(
        repo=link_repo,
        report_repo=report_repo,
        logger=logger,
        page_size=config.VERIFIED_LINKS_PAGE_SIZE,
    )
    scan_service = ScanService(repo=scan_repo, logger=logger)
    report_service = ReportService(
        repo=report_repo,
        scans=scan_service,
        link_repo=link_repo,
        logger=logger,
        default_creator_id=config.VERIFIED_LINK_CREATOR_ID,
    )
    ml_model_service = MLModelService(repo=model_repo, logger=logger)
    dashboard_service = DashboardService(user_repo=user_repo, scan_repo=scan_repo, logger=logger)

    return ServiceContainer(
        expiry_sweeper=sweeper,
        suspension_query_service=query_service,
        suspension_lifecycle_service=lifecycle_service,
        auth_service=auth_service,
        user_service=user_service,
        verified_link_service=verified_link_service,
        report_service=report_service,
        scan_service=scan_service,
        ml_model_service=ml_model_service,
        dashboard_service=dashboard_service,
    )
