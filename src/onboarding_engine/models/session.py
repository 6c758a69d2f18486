"""Engine state and outcome models — the contract between the engine and callers.

Outcome types returned by ``QuestionnaireEngine.answer()``:
  - ContinueOutcome: the next question was loaded
  - TerminalOutcome: the questionnaire ended (with or without a result payload)
  - HandoffOutcome: the answer hands off to a different questionnaire

The ``AnswerOutcome`` union covers all three so callers can dispatch on ``type``.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from .question import AnswerResult, QuestionNode
from .routing import ChainTrigger


class EngineState(str, enum.Enum):
    """Lifecycle states of a single questionnaire engine.

    Transitions:
        uninitialized -> active      (initialize)
        active -> active             (answer with a resolvable successor)
        active -> terminal           (result assigned, or no successor)
        active -> handed_off         (answer carries a chain trigger)
        any -> uninitialized         (reset)
    """

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    TERMINAL = "terminal"
    HANDED_OFF = "handed_off"


class QuestionnaireProgress(BaseModel):
    """Running state of one engine.

    ``answers`` maps visited question id to chosen answer id; one answer per
    question, later answers overwrite earlier ones.
    """

    current_question_id: Optional[str] = None
    answers: dict[str, str] = {}
    # Set when this questionnaire reached a terminal answer
    is_result_reached: bool = False
    # Set by the caller once every later phase of the flow is done as well
    is_complete: bool = False

    # --- Terminal payload (populated once a result is reached) ---
    assigned_level: Optional[int] = None
    assigned_level_id: Optional[str] = None
    assigned_program_id: Optional[str] = None
    assigned_results: list[AnswerResult] = []
    master_program_sub_levels: Optional[dict[str, int]] = None


class AssignedValues(BaseModel):
    """The legacy single-assignment view of a terminal payload."""

    level: Optional[int] = None
    level_id: Optional[str] = None
    program_id: Optional[str] = None
    master_program_sub_levels: Optional[dict[str, int]] = None


class ContinueOutcome(BaseModel):
    """Answer accepted; ``next_question`` is now the current question."""

    type: Literal["continue"] = "continue"
    next_question: QuestionNode


class TerminalOutcome(BaseModel):
    """The questionnaire ended.

    ``reason`` is "result_assigned" when the chosen answer carried a terminal
    payload, or "no_successor" when nothing further could be resolved (the
    payload fields are then empty).
    """

    type: Literal["terminal"] = "terminal"
    reason: Literal["result_assigned", "no_successor"]
    assigned_level: Optional[int] = None
    assigned_level_id: Optional[str] = None
    assigned_program_id: Optional[str] = None
    assigned_results: list[AnswerResult] = []
    master_program_sub_levels: Optional[dict[str, int]] = None


class HandoffOutcome(BaseModel):
    """The answer asks the orchestrator to switch to another questionnaire."""

    type: Literal["handoff"] = "handoff"
    trigger: ChainTrigger


AnswerOutcome = Annotated[
    Union[ContinueOutcome, TerminalOutcome, HandoffOutcome],
    Field(discriminator="type"),
]
