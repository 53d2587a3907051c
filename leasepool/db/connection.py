"""
Database connection management.
Handles async SQLAlchemy engine and session creation.
"""

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from leasepool.config import get_settings
from leasepool.db.models import Base

logger = logging.getLogger(__name__)

# Connection execution option marking a transaction that never writes
READ_ONLY_OPTION = "leasepool_read_only"

# Global engine instance
_engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def is_sqlite_url(database_url: str) -> bool:
    """Check whether a database URL points at SQLite."""
    return make_url(database_url).get_backend_name() == "sqlite"


def configure_sqlite_locking(engine: AsyncEngine) -> None:
    """
    Make every writing SQLite transaction start with BEGIN IMMEDIATE.

    SQLite has no SELECT ... FOR UPDATE. Taking the write lock when the
    transaction begins gives the same guarantee for lease acquisition:
    a concurrent acquirer blocks until the current one commits, then reads
    the committed state. Connections carrying READ_ONLY_OPTION start a
    deferred transaction instead and do not take the write lock.

    Args:
        engine: The SQLite async engine to configure.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection: Any, connection_record: Any) -> None:
        # SQLAlchemy emits BEGIN itself below
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn: Any) -> None:
        if conn.get_execution_options().get(READ_ONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Returns:
        AsyncEngine: The SQLAlchemy async engine instance.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        if is_sqlite_url(settings.database_url):
            _engine = create_async_engine(
                settings.database_url,
                echo=settings.log_level == "DEBUG",
                connect_args={"timeout": settings.database_busy_timeout_seconds},
            )
            configure_sqlite_locking(_engine)
        else:
            _engine = create_async_engine(
                settings.database_url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                echo=settings.log_level == "DEBUG",
                pool_pre_ping=True,
            )
    return _engine


def get_test_engine(database_url: str, busy_timeout: float = 30.0) -> AsyncEngine:
    """
    Create a test database engine with NullPool.

    Args:
        database_url: The database URL for testing.
        busy_timeout: Seconds a SQLite connection waits for the write lock.

    Returns:
        AsyncEngine: The test SQLAlchemy async engine instance.
    """
    if is_sqlite_url(database_url):
        engine = create_async_engine(
            database_url,
            poolclass=NullPool,
            echo=False,
            connect_args={"timeout": busy_timeout},
        )
        configure_sqlite_locking(engine)
        return engine

    return create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=False,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create a session factory bound to an engine.

    Args:
        engine: The engine sessions should use.

    Returns:
        async_sessionmaker: Factory producing AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """
    Create the lease pool schema if it does not exist.
    Intended for development and tests; production uses the Alembic migration.

    Args:
        engine: The engine to create tables on.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """
    Initialize the database connection and session factory.
    Should be called on application startup.
    """
    global AsyncSessionLocal
    engine = get_engine()
    AsyncSessionLocal = create_session_factory(engine)
    logger.info("Database connection initialized")


async def close_db() -> None:
    """
    Close the database connection.
    Should be called on application shutdown.
    """
    global _engine, AsyncSessionLocal
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        AsyncSessionLocal = None
        logger.info("Database connection closed")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get the initialized session factory.

    Returns:
        async_sessionmaker: The process-wide session factory.

    Raises:
        RuntimeError: If the database is not initialized.
    """
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return AsyncSessionLocal
