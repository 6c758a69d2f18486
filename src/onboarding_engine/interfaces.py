"""Abstract interface for the content store the engine reads from.

The engine and orchestrator never touch storage directly; they await the
methods below.  The SDK ships :class:`~onboarding_engine.content.YamlContentStore`;
other backends (a document database, an HTTP content service) implement the
same contract.

Typical integration flow::

    store = YamlContentStore()
    store.load()

    engine = QuestionnaireEngine(store)
    question = await engine.initialize("assessment", language="en")
    outcome = await engine.answer(question.answers[0].id)
"""

from abc import ABC, abstractmethod

from onboarding_engine.models.chain import ChainDefinition
from onboarding_engine.models.content import QuestionRecord, QuestionWithAnswers


class ContentStore(ABC):
    """Read API over question, answer, and chain content.

    Every method returns ``None`` when the requested item does not exist;
    deciding whether that is fatal is the caller's job.  Transport errors
    (network, permissions) propagate unchanged — the engine adds no retry.
    """

    @abstractmethod
    async def get_first_question(
        self, partition: str, language: str, gender: str
    ) -> QuestionRecord | None:
        """Return the entry question of ``partition`` that has content for ``language``.

        Parameters
        ----------
        partition:
            Questionnaire / phase key, e.g. ``"assessment"`` or ``"push_assessment"``.
        language, gender:
            Variant to resolve the question text to.
        """
        ...

    @abstractmethod
    async def get_question(self, question_id: str) -> QuestionRecord | None:
        """Return a question by id, text resolved to the default language."""
        ...

    @abstractmethod
    async def get_question_with_answers(
        self, question_id: str, language: str, gender: str
    ) -> QuestionWithAnswers | None:
        """Return a question plus its answers, all text resolved.

        Answers are sorted by their ``order`` field and carry routing and
        terminal-payload fields verbatim.
        """
        ...

    @abstractmethod
    async def get_chain(self, chain_id: str) -> ChainDefinition | None:
        """Return a chain definition by id."""
        ...

    @abstractmethod
    def list_partitions(self) -> list[str]:
        """Return every partition (questionnaire id) the store can serve."""
        ...
