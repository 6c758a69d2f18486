"""Routing models for questionnaire answer graphs.

Routing decides where an answer leads when it does not end the
questionnaire with a result:

  - ConditionalRoute: override successor guarded by a condition on prior answers
  - ChainTrigger: abandon the current graph and hand off to another questionnaire

The discriminated ``RouteCondition`` union uses the ``type`` field as its
discriminator so Pydantic can deserialise YAML dicts directly into the
correct condition class.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class AnswerEquals(BaseModel):
    """True when the stored answer id for ``question_id`` equals ``value``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["answer_equals"] = "answer_equals"
    question_id: str
    value: str


class AnswerIncludes(BaseModel):
    """True when ``value`` is a substring of the stored answer id for ``question_id``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["answer_includes"] = "answer_includes"
    question_id: str
    value: str


class AnswerCountGte(BaseModel):
    """True when at least ``value`` answers have been recorded so far.

    ``question_id`` is accepted for content compatibility but ignored.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["answer_count_gte"] = "answer_count_gte"
    question_id: Optional[str] = None
    value: int


# Discriminated union: Pydantic picks the right type based on the "type" field.
RouteCondition = Annotated[
    Union[AnswerEquals, AnswerIncludes, AnswerCountGte],
    Field(discriminator="type"),
]


class ConditionalRoute(BaseModel):
    """Route to ``target_question_id`` when ``condition`` holds."""

    model_config = ConfigDict(frozen=True)

    condition: RouteCondition
    target_question_id: str


class ChainTrigger(BaseModel):
    """Instruction to hand off to a different questionnaire."""

    model_config = ConfigDict(frozen=True)

    next_questionnaire_id: str
    # Optional question to start from in the next questionnaire
    start_question_id: Optional[str] = None
