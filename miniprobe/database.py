"""Database configuration and session management."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from miniprobe.config import get_settings
from miniprobe.exceptions import ConstraintViolationError, StorageUnavailableError

settings = get_settings()
logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Called for each new SQLite connection so FK cascades are enforced."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure_engine(engine: AsyncEngine) -> AsyncEngine:
    """Attach per-connection setup hooks required by the data model."""
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _engine_options(url: str) -> dict:
    if url.startswith("postgresql+asyncpg://"):
        return {
            "pool_size": 20,
            "max_overflow": 50,
            "pool_pre_ping": True,
            # Disable prepared statement caching for pgbouncer compatibility
            "connect_args": {
                "server_settings": {"jit": "off"},
                "prepared_statement_cache_size": 0,
            },
        }
    return {}


engine = configure_engine(
    create_async_engine(
        settings.async_database_url,
        echo=False,  # Disable SQL query logging (too verbose)
        **_engine_options(settings.async_database_url),
    )
)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency for getting database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create all tables and the liveness view."""
    # Import models so every table is registered on Base.metadata
    import miniprobe.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed block as one transaction.

    Commits on success. On any error the transaction is rolled back and
    engine errors are translated into store errors:

    - IntegrityError -> ConstraintViolationError
    - OperationalError / InterfaceError -> StorageUnavailableError

    Domain errors raised inside the block propagate unchanged.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConstraintViolationError(str(e.orig)) from e
    except (OperationalError, InterfaceError) as e:
        await session.rollback()
        logger.warning("Storage unavailable, transaction rolled back: %s", e.orig)
        raise StorageUnavailableError(str(e.orig)) from e
    except BaseException:
        await session.rollback()
        raise


@asynccontextmanager
async def storage_errors(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Translate engine failures raised by read-only queries.

    Nothing is committed. OperationalError / InterfaceError roll the session
    back and become StorageUnavailableError.
    """
    try:
        yield session
    except (OperationalError, InterfaceError) as e:
        await session.rollback()
        logger.warning("Storage unavailable during read: %s", e.orig)
        raise StorageUnavailableError(str(e.orig)) from e
