"""Question and answer models as the engine sees them.

  - AnswerResult: one program + level assignment (optionally with per-region sub-levels)
  - AnswerRouting: routing metadata and terminal payload shared by every answer shape
  - AnswerOption: a selectable answer on a loaded question
  - QuestionNode: immutable snapshot of one loaded question

Text on these models is already resolved to the active language and gender
by the content store.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from .routing import ChainTrigger, ConditionalRoute

QuestionType = Literal["choice", "input"]
LayoutType = Literal["large-card", "horizontal-list"]


class AnswerResult(BaseModel):
    """A program + level assignment produced by a terminal answer.

    ``master_program_sub_levels`` maps child program / body-region ids to an
    initial level, e.g. ``{"push": 3, "pull": 2, "legs": 4}``.
    """

    model_config = ConfigDict(frozen=True)

    program_id: str
    level_id: str
    master_program_sub_levels: Optional[dict[str, int]] = None


class AnswerRouting(BaseModel):
    """Routing metadata and terminal payload carried by an answer."""

    model_config = ConfigDict(frozen=True)

    # --- Routing ---
    next_question_id: Optional[str] = None
    conditional_routes: List[ConditionalRoute] = []
    chain_trigger: Optional[ChainTrigger] = None

    # --- Terminal payload ---
    assigned_level: Optional[int] = None
    assigned_level_id: Optional[str] = None
    assigned_program_id: Optional[str] = None
    assigned_results: List[AnswerResult] = []
    master_program_sub_levels: Optional[dict[str, int]] = None

    @property
    def has_terminal_payload(self) -> bool:
        """True if choosing this answer ends the questionnaire with a result."""
        return (
            len(self.assigned_results) > 0
            or bool(self.assigned_level_id)
            or self.assigned_level is not None
        )


class AnswerOption(AnswerRouting):
    """One selectable answer on a :class:`QuestionNode`."""

    id: str
    text: str
    image_url: Optional[str] = None


class QuestionNode(BaseModel):
    """Immutable snapshot of one question, built fresh on every load."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None
    type: QuestionType = "choice"
    # Which questionnaire / phase of the flow the question belongs to
    partition: str
    layout_type: LayoutType = "large-card"
    progress_icon: Optional[str] = None
    answers: List[AnswerOption]

    def find_answer(self, answer_id: str) -> AnswerOption | None:
        """Return the option with ``answer_id``, or None."""
        for option in self.answers:
            if option.id == answer_id:
                return option
        return None
