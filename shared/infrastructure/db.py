"""
Database configuration and session management.
Builds the blocking and asyncio engines from settings, using SQLAlchemy 2.0 patterns.
"""

from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager, contextmanager
from functools import lru_cache
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)


def _engine_options(url: str) -> dict[str, Any]:
    """Connection pool options for the given URL (SQLite manages its own pool)."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
    }


@lru_cache
def get_engine() -> Engine:
    """Blocking engine, created on first use."""
    logger.info("Creating database engine", url=settings.database_url.split("@")[-1])
    return create_engine(
        settings.database_url,
        echo=settings.sql_echo,
        **_engine_options(settings.database_url),
    )


@lru_cache
def get_async_engine() -> AsyncEngine:
    """Asyncio engine, created on first use."""
    logger.info("Creating async database engine", url=settings.async_database_url.split("@")[-1])
    return create_async_engine(
        settings.async_database_url,
        echo=settings.sql_echo,
        **_engine_options(settings.async_database_url),
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Session factory bound to an engine.

    Objects stay usable after commit so untracked reads can be handed to callers.
    """
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def make_async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Async session factory bound to an engine."""
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for blocking database sessions.

    Usage:
        with get_db_context() as db:
            uow = UnitOfWork(db, DataContext(actor_id=1))
    """
    db = make_session_factory(get_engine())()
    try:
        yield db
    finally:
        db.close()


@asynccontextmanager
async def get_async_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for asyncio database sessions.

    Usage:
        async with get_async_db_context() as db:
            uow = AsyncUnitOfWork(db, DataContext(actor_id=1))
    """
    db = make_async_session_factory(get_async_engine())()
    try:
        yield db
    finally:
        await db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


async def safe_commit_async(db: AsyncSession) -> None:
    """Async twin of safe_commit()."""
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
