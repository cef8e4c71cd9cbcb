"""Async database engine and session management.

Provides an async SQLAlchemy engine, session factory, and helpers for
initializing the schema (for dev/tests) and checking connectivity. This module
does not connect on import; call start_db() from the owning event loop.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from dsptracker.core.config import get_database_url
from dsptracker.models.database import Base

logger = logging.getLogger(__name__)

# Async engine/session globals; initialize on startup to bind to the running loop
engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None
_DB_ENABLED = False

# Detect greenlet availability; SQLAlchemy's asyncio extension relies on it
try:  # pragma: no cover - environment dependent
    import greenlet  # type: ignore  # noqa: F401
    _GREENLET_OK = True
except ImportError:  # pragma: no cover
    _GREENLET_OK = False


def is_db_enabled() -> bool:
    """Return True if the async DB is usable in this process."""
    return bool(_DB_ENABLED and engine is not None and SessionLocal is not None)


def is_sqlite(url: str) -> bool:
    return str(url).startswith("sqlite")


def _engine_kwargs_for(url: str) -> dict:
    """Construct engine kwargs appropriate for a given database URL."""
    from dsptracker.core.config import (
        DB_ECHO,
        DB_POOL_PRE_PING,
        DB_POOL_SIZE,
        DB_MAX_OVERFLOW,
        DB_POOL_TIMEOUT,
        DB_POOL_RECYCLE,
    )
    from sqlalchemy.pool import NullPool

    engine_kwargs = {
        "echo": DB_ECHO,
        "pool_pre_ping": DB_POOL_PRE_PING,
    }
    if is_sqlite(url):
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs.update({
            "pool_size": DB_POOL_SIZE,
            "max_overflow": DB_MAX_OVERFLOW,
            "pool_timeout": DB_POOL_TIMEOUT,
            "pool_recycle": DB_POOL_RECYCLE,
        })
    return engine_kwargs


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores REFERENCES/ON DELETE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency-style session generator."""
    if not is_db_enabled():
        raise RuntimeError("Database disabled")
    async with SessionLocal() as session:  # type: ignore[misc]
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Yield a session inside one transaction: commit on success, roll back on error."""
    if not is_db_enabled():
        raise RuntimeError("Database disabled")
    async with SessionLocal() as session:  # type: ignore[misc]
        async with session.begin():
            yield session


async def init_db() -> None:
    """Create the schema from ORM metadata (dev/test only).

    For production, run the Alembic migrations instead of create_all.
    """
    if not is_db_enabled():
        logger.warning("init_db called but database is disabled")
        return
    async with engine.begin() as conn:  # type: ignore[union-attr]
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured via metadata.create_all")


async def check_database() -> bool:
    """Perform a simple health check against the database connection."""
    if not is_db_enabled():
        return False
    try:
        async with engine.connect() as conn:  # type: ignore[union-attr]
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning("DB health check failed: %s", exc)
        return False


async def start_db(url: Optional[str] = None) -> None:
    """Initialize the async engine/sessionmaker within the current event loop.

    Safe to call multiple times; a no-op if already started.
    """
    global engine, SessionLocal, _DB_ENABLED
    if not _GREENLET_OK:
        logger.warning("greenlet not available; database layer will remain disabled")
        _DB_ENABLED = False
        return
    if engine is not None and SessionLocal is not None:
        _DB_ENABLED = True
        return
    url = url or get_database_url()
    engine = create_async_engine(url, **_engine_kwargs_for(url))
    if is_sqlite(url):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    _DB_ENABLED = True
    logger.info("Database engine started (%s)", engine.url.render_as_string(hide_password=True))

    from dsptracker.core.config import get_db_create_all
    if get_db_create_all():
        await init_db()


async def shutdown_db() -> None:
    """Dispose the async engine within the running event loop.

    Connections must be closed on the loop that opened them, so call this from
    the same loop as start_db().
    """
    global engine, SessionLocal, _DB_ENABLED
    try:
        if engine is not None:
            try:
                await engine.dispose()
            except Exception as exc:
                logger.warning("Error disposing DB engine: %s", exc)
    finally:
        engine = None
        SessionLocal = None
        _DB_ENABLED = False
