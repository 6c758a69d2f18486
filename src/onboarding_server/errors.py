"""Global exception handlers — map SDK exceptions to HTTP status codes.

Every SDK failure is a :class:`QuestionnaireError`; the subclass decides the
status code, so route handlers only implement the happy path.  The full
message (which may name users, sessions, or question ids) is logged
server-side; the client gets a generic description.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from onboarding_engine.errors import (
    ChainError,
    ContentError,
    DuplicateFlowError,
    EngineStateError,
    InvalidAnswerError,
    NotFoundError,
    QuestionnaireError,
    UnresolvableSuccessorError,
)

logger = logging.getLogger(__name__)

# Checked in order; first isinstance match wins
_STATUS_BY_ERROR: list[tuple[type[QuestionnaireError], int]] = [
    (NotFoundError, 404),
    (InvalidAnswerError, 400),
    (DuplicateFlowError, 409),
    (EngineStateError, 409),
    (ChainError, 409),
    (ContentError, 422),
    (UnresolvableSuccessorError, 422),
]

_SAFE_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    404: "Resource not found",
    409: "Request conflicts with the current flow state",
    422: "Questionnaire content cannot be completed",
}


def status_for(exc: Exception) -> int:
    """HTTP status for an SDK exception; 400 for anything unrecognised."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


async def questionnaire_error_handler(request: Request, exc: QuestionnaireError) -> JSONResponse:
    status = status_for(exc)
    logger.warning("%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc)
    return JSONResponse(status_code=status, content={"detail": _SAFE_MESSAGES[status]})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Plain ``ValueError`` from outside the SDK taxonomy → 400."""
    logger.warning("ValueError at %s: %s", request.url, exc)
    return JSONResponse(status_code=400, content={"detail": _SAFE_MESSAGES[400]})


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map ``KeyError`` (e.g. unknown program or level id) to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": _SAFE_MESSAGES[404]})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log the traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
