"""Async SQLAlchemy engine, session creation and transaction scope."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from docket.config import settings

logger = logging.getLogger(__name__)


def create_db_engine(url: str | None = None):
    """Create an async SQLAlchemy engine.

    SQLite does not support pool_size / max_overflow, so pooling options are
    only passed for server databases.
    """
    db_url = url or settings.effective_database_url
    engine_kwargs: dict = {"echo": False}
    if "sqlite" not in db_url:
        engine_kwargs.update(pool_size=10, max_overflow=20)
    return create_async_engine(db_url, **engine_kwargs)


def create_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or roll all of it back.

    Each to-do event runs inside exactly one of these so that to-do rows and
    the cached per-user counters are never persisted separately.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        logger.debug("Rolling back to-do transaction")
        await session.rollback()
        raise
