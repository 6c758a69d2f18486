"""Result history endpoints — completed flows stored in the database."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_db.repository import ResultRepository
from onboarding_engine.errors import NotFoundError
from onboarding_engine.models.question import AnswerResult

from onboarding_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from onboarding_server.dependencies import get_db, get_repository, get_user_id

router = APIRouter(prefix="/results", tags=["results"])


class ResultResponse(BaseModel):
    """One stored result, as returned to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    session_id: str
    mode: str
    chain_id: Optional[str] = None
    partition: Optional[str] = None
    language: str
    gender: str
    all_assigned_results: list[AnswerResult]
    merged_child_levels: dict[str, int]
    all_answers: dict[str, str]
    steps_completed: int
    total_steps: int
    created_at: datetime


class ResultPage(BaseModel):
    total: int
    items: list[ResultResponse]


@router.get("")
async def list_results(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    repo: ResultRepository = Depends(get_repository),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
) -> ResultPage:
    """List the caller's stored results, most recent first."""
    rows = await repo.list_by_user(db, user_id, limit=limit, offset=offset)
    total = await repo.count_by_user(db, user_id)
    return ResultPage(
        total=total,
        items=[ResultResponse.model_validate(row) for row in rows],
    )


@router.get("/{session_id}")
async def get_result(
    session_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    repo: ResultRepository = Depends(get_repository),
) -> ResultResponse:
    row = await repo.get_by_user_and_session(db, user_id, session_id)
    if row is None:
        raise NotFoundError(f"Result not found: user_id={user_id}, session_id={session_id}")
    return ResultResponse.model_validate(row)
