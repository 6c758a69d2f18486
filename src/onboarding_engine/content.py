"""YamlContentStore — loads questionnaire content from ``v1/`` into typed models.

This is the SDK's bundled implementation of :class:`ContentStore`.  The
store is loaded once at startup and then serves question, answer, and chain
lookups from memory.

Layout::

    v1/
      const/programs.yaml         — training programs (results target these)
      const/levels.yaml           — fitness levels
      rules/questionnaires.yaml   — {partition: [question, ...]}
      rules/chains.yaml           — [chain definition, ...]

Usage::

    store = YamlContentStore()      # defaults to v1/ relative to repo root
    store.load()                    # parse all YAML files

    first = await store.get_first_question("assessment", "en", "neutral")
    node = await store.get_question_with_answers(first.id, "en", "neutral")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from onboarding_engine.constants import DEFAULT_GENDER, DEFAULT_LANGUAGE
from onboarding_engine.errors import ContentError
from onboarding_engine.interfaces import ContentStore
from onboarding_engine.models.chain import ChainDefinition
from onboarding_engine.models.content import (
    AnswerDocument,
    AnswerRecord,
    LocalizedText,
    QuestionDocument,
    QuestionRecord,
    QuestionWithAnswers,
)
from onboarding_engine.models.schema import LevelConst, ProgramConst

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def has_language(text: LocalizedText, language: str) -> bool:
    """True if ``text`` can be shown in ``language``.

    Plain strings are legacy default-language content.  Text that lacks the
    requested language but has the default language is still shown.
    """
    if isinstance(text, str):
        return language == DEFAULT_LANGUAGE
    return language in text or DEFAULT_LANGUAGE in text


def resolve_text(text: LocalizedText | None, language: str, gender: str) -> str | None:
    """Pick one language / gender variant out of localized text.

    Falls back to the default language, then to any language present.  The
    female variant is used only when the gender is female and one exists.
    """
    if text is None:
        return None
    if isinstance(text, str):
        return text
    variants = text.get(language) or text.get(DEFAULT_LANGUAGE)
    if variants is None:
        if not text:
            return ""
        variants = next(iter(text.values()))
    if gender == "female" and variants.female:
        return variants.female
    return variants.neutral


# ---------------------------------------------------------------------------
# YamlContentStore
# ---------------------------------------------------------------------------

class YamlContentStore(ContentStore):
    """Loads all YAML from ``v1/`` and serves the :class:`ContentStore` API.

    Attributes populated after :meth:`load`:

        programs      — dict[id, ProgramConst]
        levels        — dict[id, LevelConst]
        questions     — dict[question_id, QuestionDocument]
        chains        — dict[chain_id, ChainDefinition]

    Question ids are global: the same id may not appear in two partitions,
    since lookups by id carry no partition (loading raises
    :class:`ContentError`).  This store therefore never yields two steps
    sharing a raw question id; chain answers are still keyed
    ``{questionnaire_id}__{question_id}`` so other ContentStore
    implementations with per-questionnaire ids aggregate without collisions.
    """

    def __init__(self, content_dir: str | Path | None = None) -> None:
        if content_dir is None:
            content_dir = find_repo_root() / "v1"
        self._base = Path(content_dir)

        # Populated by load()
        self.programs: dict[str, ProgramConst] = {}
        self.levels: dict[str, LevelConst] = {}
        self.questions: dict[str, QuestionDocument] = {}
        self.chains: dict[str, ChainDefinition] = {}

        # question_id -> partition, and ordered qid lists per partition
        self._partition_of: dict[str, str] = {}
        self._partition_order: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse all YAML files under the content directory into typed models.

        Call this once at startup.  Raises ``FileNotFoundError`` if expected
        YAML files are missing, and :class:`ContentError` on duplicate ids.
        """
        self._load_constants()
        self._load_questionnaires()
        self._load_chains()
        logger.info(
            "YamlContentStore loaded: %d programs, %d levels, %d partitions, %d questions, %d chains",
            len(self.programs),
            len(self.levels),
            len(self._partition_order),
            len(self.questions),
            len(self.chains),
        )

    def _load_constants(self) -> None:
        """Load v1/const/*.yaml into typed model dicts."""
        const_dir = self._base / "const"

        for raw in load_yaml(const_dir / "programs.yaml"):
            program = ProgramConst(**raw)
            self.programs[program.id] = program

        for raw in load_yaml(const_dir / "levels.yaml"):
            level = LevelConst(**raw)
            self.levels[level.id] = level

    def _load_questionnaires(self) -> None:
        """Load v1/rules/questionnaires.yaml, keyed by partition.

        Questions keep YAML order within a partition; ``order`` fields, when
        present, take precedence.
        """
        raw = load_yaml(self._base / "rules" / "questionnaires.yaml")
        for partition, questions in raw.items():
            parsed: list[QuestionDocument] = []
            for q_dict in questions:
                q = QuestionDocument(**q_dict)
                if q.id in self.questions:
                    raise ContentError(
                        f"Duplicate question id '{q.id}' in partition '{partition}' "
                        f"(already defined in '{self._partition_of[q.id]}')"
                    )
                self.questions[q.id] = q
                self._partition_of[q.id] = partition
                parsed.append(q)
            # sorted() is stable, so equal orders keep YAML order
            parsed = sorted(parsed, key=lambda doc: doc.order)
            self._partition_order[partition] = [q.id for q in parsed]

    def _load_chains(self) -> None:
        """Load v1/rules/chains.yaml into ChainDefinition models."""
        for raw in load_yaml(self._base / "rules" / "chains.yaml"):
            chain = ChainDefinition(**raw)
            if chain.id in self.chains:
                raise ContentError(f"Duplicate chain id '{chain.id}'")
            self.chains[chain.id] = chain

    # ------------------------------------------------------------------
    # ContentStore API
    # ------------------------------------------------------------------

    async def get_first_question(
        self, partition: str, language: str, gender: str
    ) -> QuestionRecord | None:
        for qid in self._partition_order.get(partition, []):
            doc = self.questions[qid]
            if doc.is_first_question and has_language(doc.title, language):
                return self._to_record(doc, language, gender)
        return None

    async def get_question(self, question_id: str) -> QuestionRecord | None:
        doc = self.questions.get(question_id)
        if doc is None:
            return None
        return self._to_record(doc, DEFAULT_LANGUAGE, DEFAULT_GENDER)

    async def get_question_with_answers(
        self, question_id: str, language: str, gender: str
    ) -> QuestionWithAnswers | None:
        doc = self.questions.get(question_id)
        if doc is None:
            return None

        answers = [
            self._to_answer_record(a, doc.id, language, gender)
            for a in sorted(doc.answers, key=lambda a: a.order)
            if has_language(a.text, language)
        ]
        record = self._to_record(doc, language, gender)
        return QuestionWithAnswers(**record.model_dump(), answers=answers)

    async def get_chain(self, chain_id: str) -> ChainDefinition | None:
        return self.chains.get(chain_id)

    def list_partitions(self) -> list[str]:
        return list(self._partition_order)

    def question_ids(self, partition: str) -> list[str]:
        """Question ids of ``partition`` in display order (empty if unknown)."""
        return list(self._partition_order.get(partition, []))

    # ------------------------------------------------------------------
    # Reference helpers
    # ------------------------------------------------------------------

    def resolve_program(self, program_id: str) -> dict:
        """Look up a program by ID and return a dict for API responses.

        Raises ``KeyError`` if the program is unknown.
        """
        program = self.programs[program_id]
        return {"id": program.id, "name": program.name, "name_he": program.name_he}

    def resolve_level(self, level_id: str) -> dict:
        """Look up a level by ID and return a dict for API responses.

        Raises ``KeyError`` if the level is unknown.
        """
        level = self.levels[level_id]
        return {"id": level.id, "order": level.order, "name": level.name, "name_he": level.name_he}

    # ------------------------------------------------------------------
    # Internal: document -> record conversion
    # ------------------------------------------------------------------

    def _to_record(self, doc: QuestionDocument, language: str, gender: str) -> QuestionRecord:
        return QuestionRecord(
            id=doc.id,
            title=resolve_text(doc.title, language, gender) or "",
            description=resolve_text(doc.description, language, gender),
            type=doc.type,
            partition=self._partition_of[doc.id],
            is_first_question=doc.is_first_question,
            order=doc.order,
            layout_type=doc.layout_type,
            progress_icon=doc.progress_icon,
        )

    @staticmethod
    def _to_answer_record(
        doc: AnswerDocument, question_id: str, language: str, gender: str
    ) -> AnswerRecord:
        # Routing / payload fields are copied verbatim
        fields = doc.model_dump(exclude={"id", "text", "image_url", "order"})
        return AnswerRecord(
            id=doc.id,
            question_id=question_id,
            text=resolve_text(doc.text, language, gender) or "",
            image_url=doc.image_url,
            order=doc.order,
            **fields,
        )
