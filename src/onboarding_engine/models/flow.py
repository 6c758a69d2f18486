"""Flow step models — what a rendering layer receives at each step of a flow.

Step types:
  - QuestionStep: render ``question`` and wait for an answer id
  - CompletedStep: the flow ended; ``result`` holds the aggregated outcome

The ``FlowStep`` union covers both cases so callers can dispatch on ``type``.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from .chain import ChainAggregatedResult, ChainProgress
from .question import QuestionNode


class QuestionStep(BaseModel):
    """Flow step: present one question."""

    type: Literal["question"] = "question"
    question: QuestionNode
    # Only set for chain flows
    chain_progress: Optional[ChainProgress] = None


class CompletedStep(BaseModel):
    """Flow step: the flow finished and produced ``result``."""

    type: Literal["completed"] = "completed"
    result: ChainAggregatedResult


FlowStep = QuestionStep | CompletedStep


class FlowInfo(BaseModel):
    """Public view of a flow for API consumers."""

    user_id: str
    session_id: str
    # Exactly one of chain_id / partition is set
    chain_id: Optional[str] = None
    partition: Optional[str] = None
    language: str
    gender: str
    is_complete: bool
    created_at: datetime
