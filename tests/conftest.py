"""
Pytest configuration and fixtures for miniprobe tests.

This module provides shared fixtures for the database, the HTTP test client,
registered clients and open sessions.
"""

import sys
import time
from typing import AsyncGenerator, Tuple
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path to import package modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from miniprobe.main import app
from miniprobe.database import Base, get_db, configure_engine
from miniprobe.models import Client, Session
from miniprobe.config import Settings, get_settings
from miniprobe.schemas.sample import HostMetadata
from miniprobe.services.identity_service import IdentityService
from miniprobe.services.session_service import SessionService


# ============================================================================
# Test Configuration
# ============================================================================

@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Provide test-specific settings.

    Uses in-memory SQLite database for tests.
    """
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        ENVIRONMENT="test",
        DEBUG=True,
        CLIENT_TOKEN_LENGTH=16,
        SCRAPE_INTERVAL_SECONDS=5,
        LIVENESS_WINDOW_SECONDS=300,
        REAPER_INTERVAL_SECONDS=60,
        REAPER_GRACE_SECONDS=3600,
    )


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def async_engine(test_settings: Settings):
    """
    Create async database engine for tests.

    Uses in-memory SQLite with StaticPool to ensure all connections
    share the same in-memory database. Foreign keys are enforced so
    cascades behave as in production.
    """
    engine = configure_engine(
        create_async_engine(
            test_settings.DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(async_engine) -> async_sessionmaker:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide database session for tests.

    Creates a new session for each test and rolls back after the test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide HTTP test client.

    Overrides the database session dependency to use the test database.
    """
    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    def override_get_settings():
        return test_settings

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = override_get_settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Client and Session Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def probe_client(db_session: AsyncSession) -> Tuple[Client, str]:
    """
    Create a registered probe client and return it with its plain token.
    """
    service = IdentityService(db_session)
    return await service.create_client("probe-01")


@pytest.fixture
def host_metadata() -> HostMetadata:
    """
    Provide host metadata for opening sessions.
    """
    return HostMetadata(
        system_name="Linux",
        kernel_version="6.8.0",
        os_version="Ubuntu 24.04",
        host_name="web-01",
        cpu_arch="x86_64",
    )


@pytest.fixture
def now() -> int:
    """
    Fixed reference time in epoch seconds.
    """
    return int(time.time())


@pytest_asyncio.fixture
async def open_session(
    db_session: AsyncSession,
    probe_client: Tuple[Client, str],
    host_metadata: HostMetadata,
    now: int,
) -> Session:
    """
    Open a session for the probe client at the reference time.
    """
    client_record, _ = probe_client
    service = SessionService(db_session)
    return await service.open_session(client_record.id, host_metadata, now=now)


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """
    Configure pytest markers.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "security: mark test as security-related"
    )
