"""
Async database session management for the order support chatbot.

Provides async engine, session factory, FastAPI dependency and a
standalone session scope for work that outlives a request.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _normalize_url(database_url: str) -> str:
    # Ensure async driver
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


async def init_db(
    database_url: str, pool_size: int = 5, max_overflow: int = 10
) -> async_sessionmaker[AsyncSession]:
    """
    Initialize the async database engine and create tables.

    Args:
        database_url: PostgreSQL or SQLite connection string
        pool_size: Connection pool size (ignored for SQLite)
        max_overflow: Max overflow connections (ignored for SQLite)

    Returns:
        The session factory bound to the new engine
    """
    global _engine, _session_factory

    database_url = _normalize_url(database_url)

    if database_url.startswith("sqlite"):
        engine_kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            # One shared connection, otherwise every session sees an empty DB
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs = {"pool_size": pool_size, "max_overflow": max_overflow}

    _engine = create_async_engine(database_url, echo=False, **engine_kwargs)

    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Create tables (use Alembic in production)
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized")
    return _session_factory


async def close_db():
    """Close the database engine."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connection closed")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if not _session_factory:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


@asynccontextmanager
async def session_scope(
    factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncIterator[AsyncSession]:
    """Transactional scope: commit on success, roll back and re-raise on error."""
    factory = factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def run_best_effort(
    operation: Callable[[AsyncSession], Awaitable[Any]],
    description: str,
    factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> bool:
    """
    Run a write that must never fail or delay its caller.

    The operation gets its own session and transaction. Any error is logged
    and discarded; the return value only says whether it committed.
    """
    try:
        async with session_scope(factory) as session:
            await operation(session)
        return True
    except Exception as e:
        logger.warning(f"Best-effort {description} failed: {e}")
        return False
