"""
Database connection and session management.

Uses SQLite with aiosqlite for async support by default; any SQLAlchemy
async URL works.
"""

import os
import logging
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from feedvault.db.models import Base
from feedvault.core.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    In-memory SQLite needs a single shared connection (StaticPool), otherwise
    every session would see its own empty database.
    """
    url = make_url(database_url)
    kwargs = {"echo": False}  # Set to True for SQL debugging

    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(database_url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    """
    Initialize the database - create engine and all tables.
    Called on application startup.
    """
    global _engine, _session_factory

    if _session_factory is not None:
        return _session_factory

    url = database_url or settings.database_url
    try:
        _engine = build_engine(url)
        await create_schema(_engine)
        _session_factory = build_session_factory(_engine)
        logger.info(f"Database initialized at: {url}")
        return _session_factory
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """
    Close database connections.
    Called on application shutdown.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None
