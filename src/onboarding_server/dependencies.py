"""FastAPI dependencies: DB sessions, shared objects from ``app.state``, caller identity.

``get_db()`` owns the transaction: the repository only flushes, and the
session is committed when the request succeeds or rolled back when it
raises.
"""

import hmac
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_db.engine import get_session_factory
from onboarding_db.repository import ResultRepository
from onboarding_engine.content import YamlContentStore

from onboarding_server.config import ServerSettings
from onboarding_server.registry import FlowRegistry


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for one request; commit on success, rollback on error."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()


# --- Objects created by the lifespan handler ---

def get_settings(request: Request) -> ServerSettings:
    return request.app.state.settings


def get_store(request: Request) -> YamlContentStore:
    return request.app.state.store


def get_registry(request: Request) -> FlowRegistry:
    return request.app.state.registry


def get_repository(request: Request) -> ResultRepository:
    return request.app.state.repository


# --- Caller identity ---

def _verify_proxy_secret(expected: str, provided: str | None) -> None:
    if not provided:
        raise HTTPException(status_code=403, detail="X-Proxy-Secret header is required")
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=403, detail="Invalid proxy secret")


async def get_user_id(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> str:
    """The caller's id from ``X-User-ID``; 401 when absent.

    Flows and results are always scoped to this id.  With
    ``TRUSTED_PROXY_SECRET`` configured, the gateway must also send the
    shared secret in ``X-Proxy-Secret`` (403 when missing or wrong).
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    settings: ServerSettings = request.app.state.settings
    if settings.trusted_proxy_secret:
        _verify_proxy_secret(settings.trusted_proxy_secret, x_proxy_secret)
    return x_user_id
