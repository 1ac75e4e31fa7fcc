"""
Database engine and session management.

Provides:
- Lazily created async engine bound to settings.database_url
- Session factory shared by the API, Celery tasks and the CLI
- Table creation and health check utilities
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from throne.config import get_settings
from throne.database.base import Base

logger = logging.getLogger(__name__)

_async_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return create_async_engine(database_url)
    return create_async_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def _get_async_engine() -> AsyncEngine:
    """Get or create async engine."""
    global _async_engine
    if _async_engine is None:
        _async_engine = create_engine(get_settings().database_url)
    return _async_engine


def _get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create async session factory."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = create_session_factory(_get_async_engine())
    return _async_session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database sessions outside FastAPI.

    Usage:
        async with get_db_session() as db:
            await settlement_service.settle_payment(db, payment)
    """
    factory = _get_async_session_factory()
    session = factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables that do not exist yet."""
    # Registers the mapped classes on Base.metadata
    import throne.models  # noqa: F401

    engine = engine or _get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Initialize the engine and make sure the schema exists."""
    await create_tables(_get_async_engine())
    logger.info("Database schema ready")


async def close_db() -> None:
    """Dispose the engine and forget the session factory."""
    global _async_engine, _async_session_factory
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _async_session_factory = None


async def check_db_connection() -> bool:
    """Check if the database answers a trivial query."""
    try:
        async with _get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


def get_db_info() -> dict:
    """Database connection information with the password hidden."""
    settings = get_settings()
    return {
        "url": make_url(settings.database_url).render_as_string(hide_password=True),
        "environment": settings.environment,
    }
