"""Application factory and CLI entry point.

``create_app()`` wires together:
  - a lifespan handler that loads ``v1/`` content once and creates the
    in-memory flow registry and the result repository
  - CORS middleware
  - exception handlers mapping :class:`QuestionnaireError` subclasses to
    404/400/409/422
  - the flow, result, and reference routers under ``/api/v1``
  - ``/health``, which reports database reachability and the live flow count

``cli()`` backs the ``onboarding-server`` console script.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from onboarding_db.engine import dispose_engine, get_engine
from onboarding_db.repository import ResultRepository
from onboarding_engine.content import YamlContentStore
from onboarding_engine.errors import QuestionnaireError

from onboarding_server.config import ServerSettings, load_settings
from onboarding_server.errors import (
    generic_error_handler,
    key_error_handler,
    questionnaire_error_handler,
    value_error_handler,
)
from onboarding_server.registry import FlowRegistry
from onboarding_server.routes import register_routes

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load content and build the shared objects; release the DB pool on exit.

    Content errors propagate and abort startup.
    """
    settings: ServerSettings = app.state.settings

    store = YamlContentStore(content_dir=settings.content_dir)
    store.load()

    app.state.store = store
    app.state.registry = FlowRegistry(ttl_seconds=settings.flow_ttl_minutes * 60)
    app.state.repository = ResultRepository()
    logger.info(
        "Serving %d partitions and %d chains (strict_routing=%s)",
        len(store.list_partitions()), len(store.chains), settings.strict_routing,
    )

    yield

    live = len(app.state.registry)
    if live:
        logger.info("Shutting down with %d unfinished flow(s) in memory", live)
    await dispose_engine()


def _add_exception_handlers(app: FastAPI) -> None:
    # Resolved by MRO: QuestionnaireError handlers win over the ValueError one
    app.add_exception_handler(QuestionnaireError, questionnaire_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)


async def health(request: Request) -> JSONResponse:
    """Readiness probe: database round-trip plus the number of live flows.

    Responds 503 when the database is unreachable.
    """
    registry: FlowRegistry | None = getattr(request.app.state, "registry", None)
    report = {"live_flows": len(registry) if registry is not None else 0}
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Health check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "unavailable", **report},
        )
    return JSONResponse(content={"status": "ok", "database": "ok", **report})


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build the FastAPI application from ``settings`` (environment if omitted)."""
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )

    app = FastAPI(
        title="Onboarding API Server",
        description="REST API for the branching onboarding questionnaire engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _add_exception_handlers(app)

    app.add_api_route("/health", health, methods=["GET"], tags=["health"])
    register_routes(app)
    return app


# ASGI export for ``uvicorn onboarding_server.app:app``
app = create_app()


def cli() -> None:
    """Run the server with uvicorn using ``SERVER_*`` settings."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "onboarding_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
