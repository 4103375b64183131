"""
Database Connection Module

Provides the async SQLAlchemy engine and session factory shared by the
SQL-backed key-value and document stores.
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config import DATABASE_ECHO, DATABASE_URL

logger = logging.getLogger(__name__)

# Singleton engine instance
_engine: Optional[AsyncEngine] = None

# Async session factory
_async_session_factory: Optional[async_sessionmaker] = None


def get_async_engine(url: str = None) -> AsyncEngine:
    """
    Get or create async SQLAlchemy engine.

    Args:
        url: Database URL, defaults to DATABASE_URL from config

    Returns:
        AsyncEngine: SQLAlchemy async engine
    """
    global _engine
    if _engine is None:
        url = url or DATABASE_URL
        _ensure_sqlite_directory(url)
        _engine = create_async_engine(url, echo=DATABASE_ECHO, pool_pre_ping=True)
        logger.info(f"Database engine created: {make_url(url).render_as_string(hide_password=True)}")
    return _engine


def _ensure_sqlite_directory(url: str):
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        from pathlib import Path
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Build a session factory bound to the given engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory() -> async_sessionmaker:
    """Get async session factory (creates if not exists)."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = create_session_factory(get_async_engine())
    return _async_session_factory


async def test_connection() -> bool:
    """
    Test database connection.

    Returns:
        bool: True if connection successful
    """
    try:
        engine = get_async_engine()
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            row = result.fetchone()
            if row and row[0] == 1:
                logger.info("Database connection successful")
                return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
    return False


async def init_database(engine: AsyncEngine = None):
    """
    Initialize database - create tables if not exist.

    Should be called on application startup.
    """
    from .models import Base

    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def close_database():
    """
    Close database engine.

    Should be called on application shutdown.
    """
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection closed")
