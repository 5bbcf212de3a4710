"""Database session configuration"""

import logging
from typing import AsyncGenerator, Optional
from sqlalchemy import event
from sqlalchemy.pool import QueuePool
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker

from app.config import (
    DATABASE_URL,
    DB_ECHO,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
)
from app.db.base import Base

logger = logging.getLogger(__name__)


def to_async_url(database_url: str) -> str:
    """
    Convert a database URL to its async driver form.

    postgresql:// and postgresql+asyncpg:// become postgresql+psycopg://,
    sqlite:// becomes sqlite+aiosqlite://.
    """
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    if database_url.startswith("postgresql+psycopg://"):
        return database_url
    if database_url.startswith("postgresql+asyncpg://"):
        # Legacy support: convert asyncpg URLs to psycopg
        return database_url.replace("postgresql+asyncpg://", "postgresql+psycopg://", 1)
    if database_url.startswith("sqlite+aiosqlite://"):
        return database_url
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    raise ValueError(f"Unsupported database URL format: {database_url}")


def build_engine(database_url: str, **overrides) -> AsyncEngine:
    """Create an async engine; pool sizing applies to server databases only"""
    url = to_async_url(database_url)
    options = {"echo": DB_ECHO}

    if not url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,  # Verify connections before using them
            pool_size=DB_POOL_SIZE,
            max_overflow=DB_MAX_OVERFLOW,
            pool_timeout=DB_POOL_TIMEOUT,
            pool_recycle=DB_POOL_RECYCLE,
        )

    options.update(overrides)
    new_engine = create_async_engine(url, **options)
    _register_pool_listeners(new_engine)
    return new_engine


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_pool_listeners(target: AsyncEngine) -> None:
    is_sqlite = target.dialect.name == "sqlite"

    # For async engines, listen on the sync_engine
    @event.listens_for(target.sync_engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        """Log when a new connection is created"""
        if is_sqlite:
            # SQLite's built-in lower() only folds ASCII letters
            dbapi_conn.create_function("lower", 1, _unicode_lower)
        logger.debug("New database connection created")

    @event.listens_for(target.sync_engine, "invalidate")
    def on_invalidate(dbapi_conn, connection_record, exception):
        """Log when a connection is invalidated"""
        logger.warning(
            f"Database connection invalidated: {exception}",
            exc_info=exception
        )


engine = build_engine(DATABASE_URL)

SessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI routes.

    Usage:
        @app.get("/example")
        async def example(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with SessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_models(target: AsyncEngine = engine) -> None:
    """Create all tables that do not exist yet"""
    # Import models so they are registered on Base.metadata
    from app.db import models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


def get_pool_stats(target: AsyncEngine = engine) -> Optional[dict]:
    """
    Get current connection pool statistics.

    SQLite engines have no pool worth reporting (a single file or in-memory
    connection), so None is returned for them and for non-queue pools.

    Returns:
        Dictionary with pool statistics, or None for SQLite:
        - size: Configured pool size
        - checked_in: Connections currently checked in (available)
        - checked_out: Connections currently checked out (in use)
        - overflow: Overflow connections
        - max_overflow: Maximum overflow connections
    """
    if target.dialect.name == "sqlite":
        return None

    sync_pool = target.sync_engine.pool
    if not isinstance(sync_pool, QueuePool):
        return None

    return {
        "size": sync_pool.size(),
        "checked_in": sync_pool.checkedin(),
        "checked_out": sync_pool.checkedout(),
        "overflow": max(0, sync_pool.overflow()),
        "max_overflow": max(0, getattr(sync_pool, "_max_overflow", DB_MAX_OVERFLOW)),
    }
