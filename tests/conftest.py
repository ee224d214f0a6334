from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from safeqr.auth import SessionManager
from safeqr.config import AppConfig
from safeqr.database import DatabaseManager
from safeqr.logger import StructuredLogger
from safeqr.models.enums import AccountStatus, UserRole
from safeqr.models.user import User
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.repositories.user_repository import UserRepository
from safeqr.services import ServiceContainer, create_services
from safeqr.utils.clock import to_iso
from tests.fakes import FakeSupabase

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def logger(tmp_path_factory: pytest.TempPathFactory) -> StructuredLogger:
    log_file = tmp_path_factory.mktemp("logs") / "safeqr-tests.log"
    return StructuredLogger(name="safeqr.tests", level=logging.DEBUG, log_file=str(log_file))


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def fake() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        SUPABASE_URL="https://project.supabase.co",
        SUPABASE_ANON_KEY="anon-key",
        SUPABASE_SERVICE_ROLE_KEY="service-key",
        VERIFIED_LINKS_PAGE_SIZE=2,
        VERIFIED_LINK_CREATOR_ID="creator-1",
    )


@pytest.fixture
def db(fake: FakeSupabase, logger: StructuredLogger) -> DatabaseManager:
    return DatabaseManager(
        supabase_url="https://project.supabase.co",
        anon_key="anon-key",
        service_role_key="service-key",
        logger=logger,
        client_factory=lambda url, key: fake,
    )


@pytest.fixture
def session() -> SessionManager:
    return SessionManager()


@pytest.fixture
def services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    clock: FrozenClock,
    logger: StructuredLogger,
) -> ServiceContainer:
    return create_services(db=db, config=config, session=session, clock=clock, logger=logger)


@pytest.fixture
def suspension_repo(db: DatabaseManager, logger: StructuredLogger) -> SuspensionRepository:
    return SuspensionRepository(db=db, logger=logger)


@pytest.fixture
def user_repo(db: DatabaseManager, logger: StructuredLogger, clock: FrozenClock) -> UserRepository:
    return UserRepository(db=db, logger=logger, clock=clock)


@pytest.fixture
def admin() -> User:
    return User(user_id="admin-1", username="root", email="root@safeqr.app", role=UserRole.ADMIN)


@pytest.fixture
def end_user() -> User:
    return User(user_id="user-9", username="viewer", email="viewer@safeqr.app")


def user_row(user_id: str, status: AccountStatus = AccountStatus.ACTIVE, **extra: object) -> dict[str, object]:
    row: dict[str, object] = {
        "user_id": user_id,
        "username": f"name-{user_id}",
        "email": f"{user_id}@example.com",
        "role": "end_user",
        "account_status": str(status),
        "created_at": to_iso(T0),
        "updated_at": to_iso(T0),
    }
    row.update(extra)
    return row


def suspension_row(user_id: str, start: datetime, end: datetime) -> dict[str, str]:
    return {"user_id": user_id, "start_date": to_iso(start), "end_date": to_iso(end)}
