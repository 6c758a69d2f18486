"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from onboarding_server.routes.flows import router as flows_router
from onboarding_server.routes.reference import router as reference_router
from onboarding_server.routes.results import router as results_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    app.include_router(flows_router, prefix=API_PREFIX)
    app.include_router(results_router, prefix=API_PREFIX)
    app.include_router(reference_router, prefix=API_PREFIX)
