"""Database session management.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite, WAL mode) for local
runs and tests.
"""

import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_engine: "AsyncEngine | None" = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_wal(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def _get_engine(database_url: str, echo: bool = False) -> "AsyncEngine":
    """Create async engine with backend-specific settings."""
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url:
            return create_async_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        engine = create_async_engine(database_url, echo=echo)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_wal)
        return engine

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        pool_pre_ping=True,
        connect_args={
            "command_timeout": 30,
            "server_settings": {
                "statement_timeout": "30s",
                "lock_timeout": "10s",
                "application_name": "loginguard",
            },
        },
    )


async def init_db(
    database_url: str, echo: bool = False, create_tables: bool = True
) -> "AsyncEngine":
    """Initialize database connection and optionally create tables.

    Args:
        database_url: Database connection URL
        echo: Enable SQL query logging
        create_tables: Create tables using SQLModel metadata (default True).
    """
    global _engine, _session_factory

    _engine = _get_engine(database_url, echo)
    _session_factory = async_sessionmaker(
        _engine, class_=AsyncSession, expire_on_commit=False
    )

    if create_tables:
        async with _engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    logger.info("Database initialized: %s", database_url.split("@")[-1])
    return _engine


async def close_db() -> None:
    """Close database connection."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connection closed")


def get_engine() -> "AsyncEngine":
    """Get the current database engine."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory bound to the current engine."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session."""
    async with get_session_factory()() as session:
        yield session
