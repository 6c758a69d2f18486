"""Merges per-step chain results into one :class:`ChainAggregatedResult`.

Merge rules, applied to the recorded steps in order:

  - assigned results are concatenated
  - sub-level maps are merged per region; the higher level wins
  - answers are namespaced as ``{questionnaire_id}__{question_id}`` so the
    same raw question id in two questionnaires never collides
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from onboarding_engine.constants import ANSWER_NAMESPACE_SEPARATOR
from onboarding_engine.models.chain import ChainAggregatedResult, ChainStepResult
from onboarding_engine.models.question import AnswerResult
from onboarding_engine.models.session import QuestionnaireProgress


def snapshot_step(
    progress: QuestionnaireProgress,
    *,
    questionnaire_id: str,
    step_index: int,
    label: Optional[str] = None,
) -> ChainStepResult:
    """Freeze one engine's progress into a :class:`ChainStepResult`.

    Legacy content assigns a single program / level without
    ``assigned_results``; that pair is recorded as a one-entry result list.
    """
    results = list(progress.assigned_results)
    if not results and progress.assigned_program_id and progress.assigned_level_id:
        results = [
            AnswerResult(
                program_id=progress.assigned_program_id,
                level_id=progress.assigned_level_id,
                master_program_sub_levels=progress.master_program_sub_levels,
            )
        ]

    return ChainStepResult(
        questionnaire_id=questionnaire_id,
        step_index=step_index,
        label=label,
        assigned_results=results,
        answers=dict(progress.answers),
        completed_at=datetime.now(timezone.utc),
    )


def namespace_answer_key(questionnaire_id: str, question_id: str) -> str:
    return f"{questionnaire_id}{ANSWER_NAMESPACE_SEPARATOR}{question_id}"


def merge_child_levels(target: dict[str, int], sub_levels: dict[str, int] | None) -> None:
    """Merge ``sub_levels`` into ``target`` in place, keeping the higher level per region."""
    if not sub_levels:
        return
    for region, level in sub_levels.items():
        current = target.get(region)
        if current is None or level > current:
            target[region] = level


def aggregate_results(
    step_results: Iterable[ChainStepResult],
    total_steps: int,
) -> ChainAggregatedResult:
    """Combine every recorded step into one result.

    Args:
        step_results: recorded step snapshots, in the order they were recorded
        total_steps: number of steps in the chain (after any splices)
    """
    all_results: list[AnswerResult] = []
    merged: dict[str, int] = {}
    all_answers: dict[str, str] = {}
    steps_completed = 0

    for step in step_results:
        steps_completed += 1
        all_results.extend(step.assigned_results)
        for result in step.assigned_results:
            merge_child_levels(merged, result.master_program_sub_levels)
        for question_id, answer_id in step.answers.items():
            all_answers[namespace_answer_key(step.questionnaire_id, question_id)] = answer_id

    return ChainAggregatedResult(
        all_assigned_results=all_results,
        merged_child_levels=merged,
        all_answers=all_answers,
        steps_completed=steps_completed,
        total_steps=total_steps,
    )
