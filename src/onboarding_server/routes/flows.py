"""Flow endpoints — create a flow, read its current step, answer, go back, discard.

All endpoints require the ``X-User-ID`` header.  A flow is identified by
the (user_id, session_id) pair.  Live flows are held in the in-memory
registry; when a flow completes its aggregated result is written to the
database in the same request.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_db.models.enums import FlowMode
from onboarding_db.repository import ResultRepository
from onboarding_engine.constants import DEFAULT_GENDER, DEFAULT_LANGUAGE
from onboarding_engine.content import YamlContentStore
from onboarding_engine.errors import DuplicateFlowError, NotFoundError
from onboarding_engine.flow import OnboardingFlow
from onboarding_engine.models.flow import CompletedStep, FlowInfo, FlowStep

from onboarding_server.config import ServerSettings
from onboarding_server.dependencies import (
    get_db,
    get_registry,
    get_repository,
    get_settings,
    get_store,
    get_user_id,
)
from onboarding_server.registry import FlowRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flows", tags=["flows"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateFlowRequest(BaseModel):
    """Body for POST /flows.  Exactly one of ``chain_id`` / ``partition``."""

    session_id: str = Field(min_length=1)
    chain_id: Optional[str] = None
    partition: Optional[str] = None
    language: Optional[Literal["he", "en", "ru"]] = None
    gender: Optional[Literal["male", "female", "neutral"]] = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "CreateFlowRequest":
        if (self.chain_id is None) == (self.partition is None):
            raise ValueError("Exactly one of chain_id or partition must be given")
        return self


class AnswerRequest(BaseModel):
    """Body for POST /flows/{session_id}/answer."""

    answer_id: str = Field(min_length=1)


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("", status_code=201)
async def create_flow(
    body: CreateFlowRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    store: YamlContentStore = Depends(get_store),
    registry: FlowRegistry = Depends(get_registry),
    repo: ResultRepository = Depends(get_repository),
    settings: ServerSettings = Depends(get_settings),
) -> FlowStep:
    """Start a flow and return its first question.

    Returns 409 if the session already has a live flow or a stored result,
    404 if the chain or partition is unknown.
    """
    if registry.exists(user_id, body.session_id) or (
        await repo.get_by_user_and_session(db, user_id, body.session_id) is not None
    ):
        raise DuplicateFlowError(
            f"Flow already exists: user_id={user_id}, session_id={body.session_id}"
        )

    chain = None
    if body.chain_id is not None:
        chain = await store.get_chain(body.chain_id)
        if chain is None:
            raise NotFoundError(f"Chain not found: {body.chain_id}")

    flow = OnboardingFlow(
        store,
        user_id=user_id,
        session_id=body.session_id,
        chain=chain,
        partition=body.partition,
        language=body.language or DEFAULT_LANGUAGE,
        gender=body.gender or DEFAULT_GENDER,
        strict_routing=settings.strict_routing,
    )
    step = await flow.start()
    registry.add(flow)
    return step


@router.get("/{session_id}")
async def get_current_step(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: FlowRegistry = Depends(get_registry),
) -> FlowStep:
    """Return the current question, or the result once the flow is complete."""
    async with registry.checkout(user_id, session_id) as flow:
        return flow.current_step()


@router.get("/{session_id}/info")
async def get_flow_info(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: FlowRegistry = Depends(get_registry),
) -> FlowInfo:
    return registry.get(user_id, session_id).info()


@router.post("/{session_id}/answer")
async def submit_answer(
    session_id: str,
    body: AnswerRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    registry: FlowRegistry = Depends(get_registry),
    repo: ResultRepository = Depends(get_repository),
) -> FlowStep:
    """Answer the current question.

    Returns the next question, or the completed result.  The result is
    persisted when the flow completes; if that fails the flow is dropped
    from the registry so the session can be started again.
    """
    async with registry.checkout(user_id, session_id) as flow:
        step = await flow.submit(body.answer_id)
        if isinstance(step, CompletedStep):
            try:
                await _save_result(db, repo, flow)
            except Exception:
                registry.remove(user_id, session_id)
                logger.error(
                    "Could not store result for user=%s session=%s; flow discarded",
                    user_id, session_id,
                )
                raise
        return step


@router.post("/{session_id}/back")
async def go_back(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: FlowRegistry = Depends(get_registry),
) -> FlowStep:
    """Return to the previous question of the current questionnaire."""
    async with registry.checkout(user_id, session_id) as flow:
        return await flow.back()


@router.delete("/{session_id}", status_code=204)
async def discard_flow(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: FlowRegistry = Depends(get_registry),
) -> None:
    """Drop a live flow.  A stored result, if any, is kept."""
    registry.remove(user_id, session_id)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

async def _save_result(db: AsyncSession, repo: ResultRepository, flow: OnboardingFlow) -> None:
    mode = FlowMode.CHAIN if flow.chain_id is not None else FlowMode.PARTITION
    await repo.save_result(
        db,
        user_id=flow.user_id,
        session_id=flow.session_id,
        mode=mode,
        chain_id=flow.chain_id,
        partition=flow.partition,
        language=flow.language,
        gender=flow.gender,
        result=flow.result.model_dump(mode="json"),
    )
    logger.info("Stored result for user=%s session=%s", flow.user_id, flow.session_id)
