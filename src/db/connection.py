"""
Database Connection Management
Async SQLAlchemy engine and session factory for the SQL storage backend.
Source: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.core.config import get_settings
from src.models.base import Base
from src.utils.logging import get_logger

logger = get_logger(__name__)


# Global engine instance, created once per process
_engine: AsyncEngine | None = None
_async_session_maker: async_sessionmaker[AsyncSession] | None = None


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine with pool settings suited to the dialect.

    SQLite file databases do not benefit from pooling, so they get NullPool;
    server databases keep the default QueuePool with pre-ping.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo, poolclass=NullPool)
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def get_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Get or create the global async engine.

    Args:
        database_url: Overrides the configured DATABASE_URL on first call

    Returns:
        AsyncEngine instance
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        url = database_url or settings.DATABASE_URL
        logger.info(f"Creating database engine: {url.split('@')[-1]}")
        _engine = create_engine_for_url(url, echo=settings.DB_ECHO)
        logger.info("Database engine created successfully")

    return _engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_maker(database_url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    """Get or create the global session maker."""
    global _async_session_maker

    if _async_session_maker is None:
        _async_session_maker = create_session_maker(get_engine(database_url))
        logger.info("Session maker created successfully")

    return _async_session_maker


async def create_tables(engine: AsyncEngine) -> None:
    """
    Create any missing tables.

    Used for development and tests; deployed databases are migrated
    with alembic.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db_connection() -> None:
    """Close database connection pool."""
    global _engine, _async_session_maker

    if _engine is not None:
        logger.info("Closing database connection pool...")
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
        logger.info("Database connection pool closed")


async def check_db_connection(engine: Optional[AsyncEngine] = None) -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        async with (engine or get_engine()).connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
