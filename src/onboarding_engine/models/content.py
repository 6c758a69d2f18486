"""Content-store models — raw YAML documents and resolved records.

Documents mirror the YAML files under ``v1/rules/questionnaires.yaml``.  Their text
fields are *localized*: either a plain string or a mapping of language to
gender variants::

    title:
      he: {neutral: "כמה שכיבות סמיכה?", female: "כמה שכיבות סמיכה את עושה?"}
      en: {neutral: "How many push-ups can you do?"}

Records are what the content store hands to the engine: the same data with
text already resolved to one language / gender variant.
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel

from .question import AnswerOption, AnswerRouting, QuestionType


class TextVariants(BaseModel):
    """Gender variants of one language's text."""

    neutral: str
    female: Optional[str] = None


# A plain string is legacy content and is treated as the default language.
LocalizedText = Union[str, dict[str, TextVariants]]


# --- Raw documents (YAML) ---

class AnswerDocument(AnswerRouting):
    """An answer as authored in YAML."""

    id: str
    text: LocalizedText
    image_url: Optional[str] = None
    order: int = 0


class QuestionDocument(BaseModel):
    """A question as authored in YAML, with its answers inline."""

    id: str
    title: LocalizedText
    description: Optional[LocalizedText] = None
    type: QuestionType = "choice"
    is_first_question: bool = False
    order: int = 0
    # Raw value; the engine normalises aliases when it builds a node
    layout_type: Optional[str] = None
    progress_icon: Optional[str] = None
    answers: List[AnswerDocument] = []


# --- Resolved records (returned by the content store) ---

class QuestionRecord(BaseModel):
    """A question with text resolved to a single language / gender."""

    id: str
    title: str
    description: Optional[str] = None
    type: QuestionType = "choice"
    partition: str
    is_first_question: bool = False
    order: int = 0
    layout_type: Optional[str] = None
    progress_icon: Optional[str] = None


class AnswerRecord(AnswerOption):
    """An answer with resolved text, carrying routing fields verbatim."""

    question_id: str
    order: int = 0


class QuestionWithAnswers(QuestionRecord):
    """A question record plus its answers, sorted by ``order``."""

    answers: List[AnswerRecord] = []
