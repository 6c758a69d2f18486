"""QuestionnaireEngine — drives traversal of a single question graph.

Stateful engine pattern: one instance per user run of one questionnaire.
Each ``answer()`` call records the choice, resolves what happens next, and
returns an outcome.  Content is fetched from a :class:`ContentStore`; those
awaits are the only suspension points, and callers must not overlap calls on
the same instance.

Resolution cascade for a chosen answer (highest priority first):

    1  Terminal payload   — assigned_results / assigned_level_id / assigned_level
    2  Chain trigger      — hand off to another questionnaire (orchestrator's job)
    3  Conditional routes — first matching rule, in authored order
    4  Static successor   — next_question_id
    5  Nothing resolvable — terminal without result (or an error in strict mode)
"""

from __future__ import annotations

import logging

from onboarding_engine.constants import (
    DEFAULT_GENDER,
    DEFAULT_LANGUAGE,
    DEFAULT_LAYOUT_TYPE,
    DEFAULT_PARTITION,
    LAYOUT_TYPE_ALIASES,
    STRICT_ROUTING,
)
from onboarding_engine.errors import (
    ContentError,
    EngineStateError,
    InvalidAnswerError,
    NotFoundError,
    UnresolvableSuccessorError,
)
from onboarding_engine.evaluator import RouteEvaluator
from onboarding_engine.interfaces import ContentStore
from onboarding_engine.models.content import QuestionWithAnswers
from onboarding_engine.models.question import AnswerOption, QuestionNode
from onboarding_engine.models.session import (
    AnswerOutcome,
    AssignedValues,
    ContinueOutcome,
    EngineState,
    HandoffOutcome,
    QuestionnaireProgress,
    TerminalOutcome,
)

logger = logging.getLogger(__name__)


class QuestionnaireEngine:
    """Walks one questionnaire from its entry question to a terminal outcome.

    Args:
        store: the content store questions are loaded from
        strict_routing: raise :class:`UnresolvableSuccessorError` instead of
            ending silently when an answer leads nowhere
    """

    def __init__(self, store: ContentStore, *, strict_routing: bool = STRICT_ROUTING) -> None:
        self._store = store
        self._evaluator = RouteEvaluator()
        self._strict_routing = strict_routing

        self._language = DEFAULT_LANGUAGE
        self._gender = DEFAULT_GENDER
        self._partition: str | None = None

        self._state = EngineState.UNINITIALIZED
        self._progress = QuestionnaireProgress()
        self._current: QuestionNode | None = None
        # Question ids visited before the current one, oldest first
        self._history: list[str] = []

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def partition(self) -> str | None:
        return self._partition

    @property
    def language(self) -> str:
        return self._language

    @property
    def gender(self) -> str:
        return self._gender

    # ==================================================================
    # Lifecycle
    # ==================================================================

    async def initialize(
        self,
        partition: str = DEFAULT_PARTITION,
        start_question_id: str | None = None,
        language: str | None = None,
        gender: str | None = None,
    ) -> QuestionNode:
        """Load the entry question of ``partition``, or ``start_question_id`` if given.

        Language and gender are kept for every later question load.

        Returns:
            The first question node, which is now the current question.

        Raises:
            EngineStateError: if the engine was already initialized (call
                :meth:`reset` first).
            NotFoundError: if the content store has no matching question.
                This is fatal for the flow — a missing entry question is a
                content-authoring defect, not a transient fault.
        """
        if self._state != EngineState.UNINITIALIZED:
            raise EngineStateError(
                f"Cannot initialize: engine state is '{self._state.value}', "
                f"expected 'uninitialized'"
            )

        if language:
            self._language = language
        if gender:
            self._gender = gender

        if start_question_id is not None:
            record = await self._store.get_question(start_question_id)
            if record is None:
                raise NotFoundError(f"Question {start_question_id} not found")
        else:
            record = await self._store.get_first_question(partition, self._language, self._gender)
            if record is None:
                raise NotFoundError(
                    f"No first question found for partition '{partition}' "
                    f"(language={self._language}, gender={self._gender})"
                )

        self._partition = partition
        node = await self._load_question(record.id)
        self._state = EngineState.ACTIVE
        logger.info(
            "Engine initialized: partition=%s first_question=%s language=%s gender=%s",
            partition, node.id, self._language, self._gender,
        )
        return node

    def reset(self) -> None:
        """Clear all state; the engine must be initialized again before use."""
        self._state = EngineState.UNINITIALIZED
        self._progress = QuestionnaireProgress()
        self._current = None
        self._history = []
        self._partition = None

    # ==================================================================
    # Read API
    # ==================================================================

    def get_current_question(self) -> QuestionNode | None:
        """Return the active question, or None if terminal / never initialized."""
        return self._current

    def get_progress(self) -> QuestionnaireProgress:
        """Return a snapshot of the running state."""
        return self._progress.model_copy(deep=True)

    def get_all_answers(self) -> dict[str, str]:
        """Return a copy of the question-id → answer-id map."""
        return dict(self._progress.answers)

    def get_assigned_values(self) -> AssignedValues:
        """Return the legacy single-assignment view of the terminal payload."""
        return AssignedValues(
            level=self._progress.assigned_level,
            level_id=self._progress.assigned_level_id,
            program_id=self._progress.assigned_program_id,
            master_program_sub_levels=self._progress.master_program_sub_levels,
        )

    def complete_flow(self) -> None:
        """Mark the whole flow complete, e.g. after a later personal-details phase."""
        self._progress.is_complete = True

    # ==================================================================
    # Transitions
    # ==================================================================

    async def answer(self, answer_id: str) -> AnswerOutcome:
        """Answer the current question and resolve what comes next.

        Returns:
            ContinueOutcome with the newly loaded question, TerminalOutcome
            when the questionnaire ended, or HandoffOutcome when the answer
            hands off to a different questionnaire.

        Raises:
            EngineStateError: if there is no current question.
            InvalidAnswerError: if ``answer_id`` is not an option of the
                current question.
            NotFoundError: if the resolved successor does not exist.
        """
        question = self._current
        if question is None:
            raise EngineStateError(
                f"No current question: engine state is '{self._state.value}'"
            )

        option = question.find_answer(answer_id)
        if option is None:
            raise InvalidAnswerError(f"Answer {answer_id} not found on question {question.id}")

        # Record first: conditional routes see the answer just given
        self._progress.answers[question.id] = answer_id

        if option.has_terminal_payload:
            return self._finish_with_result(question, option)

        if option.chain_trigger is not None:
            logger.info(
                "Chain trigger on %s=%s -> questionnaire %s",
                question.id, answer_id, option.chain_trigger.next_questionnaire_id,
            )
            self._leave_question()
            self._state = EngineState.HANDED_OFF
            return HandoffOutcome(trigger=option.chain_trigger)

        next_id = self._resolve_next_question_id(option)
        if next_id is not None:
            node = await self._load_question(next_id)
            self._history.append(question.id)
            return ContinueOutcome(next_question=node)

        return self._finish_without_result(question, option)

    async def go_back(self) -> QuestionNode:
        """Return to the previously visited question.

        The answer previously given there stays recorded until it is
        overwritten; the answer of the question being left is dropped.

        Raises:
            EngineStateError: if the engine is not active or is already at
                the first question.
        """
        if self._state != EngineState.ACTIVE or self._current is None:
            raise EngineStateError(
                f"Cannot go back: engine state is '{self._state.value}', expected 'active'"
            )
        if not self._history:
            raise EngineStateError("Cannot go back: already at the first question")

        leaving = self._current.id
        node = await self._load_question(self._history[-1])
        self._history.pop()
        self._progress.answers.pop(leaving, None)
        return node

    # ==================================================================
    # Internal: resolution
    # ==================================================================

    def _resolve_next_question_id(self, option: AnswerOption) -> str | None:
        """Conditional routes first (first match wins), then the static successor."""
        if option.conditional_routes:
            target = self._evaluator.resolve(option.conditional_routes, self._progress.answers)
            if target is not None:
                logger.debug("Conditional route matched on answer %s -> %s", option.id, target)
                return target
        return option.next_question_id or None

    def _finish_with_result(self, question: QuestionNode, option: AnswerOption) -> TerminalOutcome:
        """End the questionnaire with the option's terminal payload.

        When ``assigned_results`` is non-empty it is the canonical output and
        the singular level / program fields are derived from its first entry.
        Otherwise the singular fields are used as authored.
        """
        if option.assigned_results:
            first = option.assigned_results[0]
            level_id = first.level_id
            program_id = first.program_id
            sub_levels = first.master_program_sub_levels
            results = list(option.assigned_results)
        else:
            level_id = option.assigned_level_id or None
            program_id = option.assigned_program_id or None
            sub_levels = option.master_program_sub_levels
            results = []

        progress = self._progress
        progress.assigned_level = option.assigned_level
        progress.assigned_level_id = level_id
        progress.assigned_program_id = program_id
        progress.assigned_results = results
        progress.master_program_sub_levels = sub_levels
        progress.is_result_reached = True

        self._leave_question()
        self._state = EngineState.TERMINAL
        logger.info(
            "Result reached on %s=%s: program=%s level=%s (%d result(s))",
            question.id, option.id, program_id, level_id, len(results),
        )
        return TerminalOutcome(
            reason="result_assigned",
            assigned_level=option.assigned_level,
            assigned_level_id=level_id,
            assigned_program_id=program_id,
            assigned_results=results,
            master_program_sub_levels=sub_levels,
        )

    def _finish_without_result(self, question: QuestionNode, option: AnswerOption) -> TerminalOutcome:
        """End the questionnaire because the answer leads nowhere."""
        if self._strict_routing:
            raise UnresolvableSuccessorError(
                f"Answer {option.id} on question {question.id} has no result, "
                f"no chain trigger, and no resolvable successor"
            )

        logger.warning(
            "No successor for %s=%s and no result assigned; ending questionnaire without result",
            question.id, option.id,
        )
        self._progress.is_result_reached = True
        self._leave_question()
        self._state = EngineState.TERMINAL
        return TerminalOutcome(reason="no_successor")

    def _leave_question(self) -> None:
        self._current = None
        self._progress.current_question_id = None

    # ==================================================================
    # Internal: loading
    # ==================================================================

    async def _load_question(self, question_id: str) -> QuestionNode:
        """Fetch a question with its answers and make it the current question."""
        record = await self._store.get_question_with_answers(
            question_id, self._language, self._gender,
        )
        if record is None:
            raise NotFoundError(f"Question {question_id} not found")
        if not record.answers:
            raise ContentError(
                f"Question {question_id} has no answers for "
                f"language={self._language}, gender={self._gender}"
            )

        node = self._to_node(record)
        self._current = node
        self._progress.current_question_id = node.id
        return node

    @staticmethod
    def _to_node(record: QuestionWithAnswers) -> QuestionNode:
        """Convert a content record into an immutable question node."""
        layout = LAYOUT_TYPE_ALIASES.get(record.layout_type or "", DEFAULT_LAYOUT_TYPE)
        return QuestionNode(
            id=record.id,
            title=record.title,
            description=record.description,
            type=record.type,
            partition=record.partition,
            layout_type=layout,
            progress_icon=record.progress_icon,
            answers=[
                AnswerOption(**a.model_dump(exclude={"question_id", "order"}))
                for a in record.answers
            ],
        )
