"""Lazily created async engine and session factory, shared process-wide.

Pool size comes from ``PG_POOL_SIZE`` / ``PG_MAX_OVERFLOW``.  Call
``dispose_engine()`` from the app's shutdown hook.
"""

import logging
import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from onboarding_db.config import get_async_url, redact_url

logger = logging.getLogger(__name__)

_POOL_SIZE = int(os.getenv("PG_POOL_SIZE", "5"))
_MAX_OVERFLOW = int(os.getenv("PG_MAX_OVERFLOW", "10"))

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the async engine, creating it on first use."""
    global _engine
    if _engine is None:
        url = get_async_url()
        _engine = create_async_engine(
            url,
            echo=False,
            pool_size=_POOL_SIZE,
            max_overflow=_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
        logger.info(
            "Created database engine for %s (pool_size=%d, max_overflow=%d)",
            redact_url(url), _POOL_SIZE, _MAX_OVERFLOW,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory bound to :func:`get_engine`."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def dispose_engine() -> None:
    """Close the pool and forget the engine and factory."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
