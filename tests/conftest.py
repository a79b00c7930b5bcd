"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

# Disable rate limiting and write audit events inline in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUDIT_BACKGROUND"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import Actor
from infrastructure.database.models import Base
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork

# Test database URL (SQLite in memory, one shared connection)
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_JWT_SECRET = "test-secret-key"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SQLAlchemyUnitOfWork]:
    """Unit of Work factory bound to the test database."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    return factory


@pytest.fixture
def owner() -> Actor:
    return Actor(id="actor-owner-a1b2", email="lucia@example.com", display_name="Lucia")


@pytest.fixture
def member() -> Actor:
    return Actor(id="actor-member-c3d4", email="mateo@example.com", display_name="Mateo")


@pytest.fixture
def outsider() -> Actor:
    return Actor(id="actor-outsider-e5f6", email="sofia@example.com", display_name="Sofia")


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key=TEST_JWT_SECRET,
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def auth_headers(auth_provider: JWTAuthProvider) -> Callable[[Actor], dict[str, str]]:
    """Build Authorization headers carrying a session token for an actor."""

    def build(actor: Actor) -> dict[str, str]:
        token = auth_provider.issue_session_token(actor)
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
async def client(
    uow_factory: Callable[[], SQLAlchemyUnitOfWork],
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client wired to the in-memory database.

    This client:
    - Verifies real HS256 session tokens with the test secret
    - Builds every service on a Unit of Work bound to the test engine
    - Writes audit events inline so tests can read them right away
    """
    from api.dependencies.auth import get_auth_provider
    from api.v1.dependencies import (
        get_audit_service,
        get_group_service,
        get_invitation_service,
        get_listing_service,
        get_reconciliation_service,
        get_reservation_service,
    )
    from domain.services.audit_service import AuditService
    from domain.services.group_service import GroupService
    from domain.services.invitation_service import InvitationService
    from domain.services.listing_service import ListingService
    from domain.services.reconciliation_service import ReconciliationService
    from domain.services.reservation_service import ReservationService
    from main import create_app

    app = create_app()

    audit_service = AuditService(uow_factory, background=False)
    reconciliation_service = ReconciliationService(uow_factory, batch_size=2)
    group_service = GroupService(
        uow_factory,
        audit_service=audit_service,
        reconciliation_service=reconciliation_service,
    )

    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_audit_service] = lambda: audit_service
    app.dependency_overrides[get_reconciliation_service] = lambda: reconciliation_service
    app.dependency_overrides[get_group_service] = lambda: group_service
    app.dependency_overrides[get_reservation_service] = lambda: ReservationService(
        uow_factory, audit_service=audit_service
    )
    app.dependency_overrides[get_invitation_service] = lambda: InvitationService(
        uow_factory, group_service=group_service
    )
    app.dependency_overrides[get_listing_service] = lambda: ListingService(uow_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
