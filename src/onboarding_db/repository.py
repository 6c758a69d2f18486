"""Async repository for OnboardingResult.

Every method takes the caller's ``AsyncSession`` and only flushes; the
caller owns the transaction and commits.  The repository stores plain
dicts and knows nothing about the SDK's models.
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_db.models.enums import FlowMode
from onboarding_db.models.result import OnboardingResult


class ResultRepository:
    """Read/write operations on the ``onboarding_results`` table."""

    async def save_result(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        session_id: str,
        mode: FlowMode,
        language: str,
        gender: str,
        result: dict[str, Any],
        chain_id: str | None = None,
        partition: str | None = None,
    ) -> OnboardingResult:
        """Insert the aggregated result of a completed flow.

        ``result`` is a dumped ``ChainAggregatedResult``.  The caller must
        ``await db.commit()`` to persist.
        """
        row = OnboardingResult(
            user_id=user_id,
            session_id=session_id,
            mode=mode.value,
            chain_id=chain_id,
            partition=partition,
            language=language,
            gender=gender,
            all_assigned_results=result.get("all_assigned_results", []),
            merged_child_levels=result.get("merged_child_levels", {}),
            all_answers=result.get("all_answers", {}),
            steps_completed=result.get("steps_completed", 0),
            total_steps=result.get("total_steps", 0),
        )
        db.add(row)
        await db.flush()
        return row

    async def get_by_user_and_session(
        self, db: AsyncSession, user_id: str, session_id: str
    ) -> OnboardingResult | None:
        stmt = select(OnboardingResult).where(
            OnboardingResult.user_id == user_id,
            OnboardingResult.session_id == session_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[OnboardingResult]:
        """List a user's results, most recent first."""
        stmt = (
            select(OnboardingResult)
            .where(OnboardingResult.user_id == user_id)
            .order_by(OnboardingResult.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_user(self, db: AsyncSession, user_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(OnboardingResult)
            .where(OnboardingResult.user_id == user_id)
        )
        result = await db.execute(stmt)
        return result.scalar_one()
