"""Chain models — definitions, per-step snapshots, and aggregated results.

A chain is an ordered sequence of questionnaires (e.g. Push Quiz → Pull
Quiz → Legs Quiz).  Each step runs in its own engine; the orchestrator
records a :class:`ChainStepResult` per finished step and merges them into a
:class:`ChainAggregatedResult` when the chain ends.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .question import AnswerResult


class StepCondition(BaseModel):
    """Run a step only if step ``step_index`` assigned ``required_program_id``."""

    model_config = ConfigDict(frozen=True)

    step_index: int
    required_program_id: str


class ChainStep(BaseModel):
    """One questionnaire in a chain."""

    model_config = ConfigDict(frozen=True)

    # Content partition the step's questions live under (e.g. "push_assessment")
    questionnaire_id: str
    start_question_id: Optional[str] = None
    # Human-readable label for progress display
    label: Optional[str] = None
    condition: Optional[StepCondition] = None


class ChainDefinition(BaseModel):
    """A named chain of steps, as authored in ``v1/rules/chains.yaml``."""

    id: str
    name: str
    steps: List[ChainStep]


class ChainStepResult(BaseModel):
    """Snapshot of one finished (or abandoned) step.  Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    questionnaire_id: str
    # Position of the step in the chain when it was recorded
    step_index: int
    label: Optional[str] = None
    assigned_results: List[AnswerResult] = []
    answers: dict[str, str] = {}
    completed_at: datetime


class ChainAggregatedResult(BaseModel):
    """Unified result of a whole chain."""

    # All assigned results from all steps, in step order
    all_assigned_results: List[AnswerResult] = []
    # Per-region levels merged across steps; the higher level wins
    merged_child_levels: dict[str, int] = {}
    # All answers, keyed "{questionnaire_id}__{question_id}"
    all_answers: dict[str, str] = {}
    steps_completed: int = 0
    total_steps: int = 0


class ChainProgress(BaseModel):
    """Progress-bar view of a chain."""

    # 1-indexed
    current_step: int
    total_steps: int
    current_label: Optional[str] = None
    completed_labels: List[str] = []
