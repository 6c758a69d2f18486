"""ChainOrchestrator — runs a sequence of questionnaires and merges their results.

Each chain step runs in its own :class:`QuestionnaireEngine`.  The caller
drives the current engine and reports back:

  - ``handle_chain_trigger()`` when ``answer()`` returned a hand-off
  - ``complete_current_questionnaire()`` when ``answer()`` returned a terminal outcome

Both record a :class:`ChainStepResult` for the step being left and return a
:class:`ChainTransition` naming the next engine, or, once no eligible step
remains, the aggregated result.

Usage::

    orchestrator = ChainOrchestrator(store)
    engine = await orchestrator.start_chain(chain, language="en")
    # ... user answers until a terminal outcome ...
    transition = await orchestrator.complete_current_questionnaire(engine)
    if transition.has_next:
        engine = transition.engine
    else:
        result = transition.aggregated_result
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from onboarding_engine.aggregation import aggregate_results, snapshot_step
from onboarding_engine.constants import DEFAULT_GENDER, DEFAULT_LANGUAGE, STRICT_ROUTING
from onboarding_engine.engine import QuestionnaireEngine
from onboarding_engine.errors import ChainError
from onboarding_engine.interfaces import ContentStore
from onboarding_engine.models.chain import (
    ChainAggregatedResult,
    ChainDefinition,
    ChainProgress,
    ChainStep,
    ChainStepResult,
    StepCondition,
)
from onboarding_engine.models.routing import ChainTrigger
from onboarding_engine.models.session import EngineState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainTransition:
    """What the caller should do after a step ended.

    ``has_next`` → render ``engine``; otherwise the chain is complete and
    ``aggregated_result`` holds the merged outcome.
    """

    has_next: bool
    engine: QuestionnaireEngine | None = None
    step_label: str | None = None
    aggregated_result: ChainAggregatedResult | None = None


class ChainOrchestrator:
    """Owns the step list, the step cursor, and the recorded step results."""

    def __init__(self, store: ContentStore, *, strict_routing: bool = STRICT_ROUTING) -> None:
        self._store = store
        self._strict_routing = strict_routing

        self._chain: ChainDefinition | None = None
        # Rebuilt as a new tuple on every splice
        self._steps: tuple[ChainStep, ...] = ()
        self._cursor = 0
        self._step_results: list[ChainStepResult] = []
        self._complete = False

        self._language = DEFAULT_LANGUAGE
        self._gender = DEFAULT_GENDER

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def chain(self) -> ChainDefinition | None:
        return self._chain

    @property
    def steps(self) -> tuple[ChainStep, ...]:
        return self._steps

    @property
    def current_step_index(self) -> int:
        return self._cursor

    @property
    def step_results(self) -> tuple[ChainStepResult, ...]:
        return tuple(self._step_results)

    @property
    def is_complete(self) -> bool:
        return self._complete

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start_chain(
        self,
        chain: ChainDefinition,
        language: str | None = None,
        gender: str | None = None,
    ) -> QuestionnaireEngine:
        """Start ``chain`` from its first step and return that step's engine."""
        if not chain.steps:
            raise ChainError(f"Chain '{chain.id}' has no steps")

        self._chain = chain
        self._steps = tuple(chain.steps)
        self._cursor = 0
        self._step_results = []
        self._complete = False
        if language:
            self._language = language
        if gender:
            self._gender = gender

        logger.info("Starting chain %s (%d steps)", chain.id, len(self._steps))
        return await self._load_step_engine(0)

    async def handle_chain_trigger(
        self,
        trigger: ChainTrigger,
        current_engine: QuestionnaireEngine,
    ) -> ChainTransition:
        """Record the abandoned step and switch to the hand-off target.

        A step for ``trigger.next_questionnaire_id`` is spliced in right after
        the current step unless the chain already has one.  If the existing
        step lies ahead the cursor jumps to it; if it already ran, the chain
        simply advances to the following step.
        """
        self._ensure_running()
        self._save_step_results(current_engine)

        target = trigger.next_questionnaire_id
        existing = self._index_of(target)

        if existing is None:
            insert_at = self._cursor + 1
            new_step = ChainStep(
                questionnaire_id=target,
                start_question_id=trigger.start_question_id,
                label=target.replace("_", " "),
            )
            self._steps = self._steps[:insert_at] + (new_step,) + self._steps[insert_at:]
            next_index = insert_at
            logger.info("Spliced step %s into chain at index %d", target, insert_at)
        elif existing > self._cursor:
            # Steps between the cursor and the target are not evaluated and
            # not recorded; the target keeps its own start question.
            next_index = existing
            logger.info("Jumping from step %d to existing step %s at %d", self._cursor, target, existing)
        else:
            next_index = self._cursor + 1
            logger.warning(
                "Hand-off target %s already ran at step %d; advancing to step %d",
                target, existing, next_index,
            )

        engine = await self._load_step_engine(next_index)
        self._cursor = next_index
        return ChainTransition(
            has_next=True,
            engine=engine,
            step_label=self._steps[next_index].label,
        )

    async def complete_current_questionnaire(
        self,
        current_engine: QuestionnaireEngine,
    ) -> ChainTransition:
        """Record the finished step and move to the next eligible one.

        Steps whose condition is not met are skipped: they are neither run
        nor recorded.  When no eligible step is left the chain is complete.
        """
        self._ensure_running()
        if current_engine.state == EngineState.ACTIVE:
            logger.warning(
                "Completing step %d while its engine is still on question %s",
                self._cursor,
                current_engine.get_progress().current_question_id,
            )
        self._save_step_results(current_engine)

        next_index = self._find_next_eligible_step(self._cursor + 1)
        if next_index is not None:
            engine = await self._load_step_engine(next_index)
            self._cursor = next_index
            return ChainTransition(
                has_next=True,
                engine=engine,
                step_label=self._steps[next_index].label,
            )

        self._complete = True
        result = self.aggregate_results()
        logger.info(
            "Chain %s complete: %d/%d steps, %d result(s)",
            self._chain.id if self._chain else None,
            result.steps_completed,
            result.total_steps,
            len(result.all_assigned_results),
        )
        return ChainTransition(has_next=False, aggregated_result=result)

    # ------------------------------------------------------------------
    # Results & progress
    # ------------------------------------------------------------------

    def aggregate_results(self) -> ChainAggregatedResult:
        """Merge every recorded step into one result."""
        return aggregate_results(self._step_results, len(self._steps))

    def get_chain_progress(self) -> ChainProgress:
        current_label = None
        if self._cursor < len(self._steps):
            current_label = self._steps[self._cursor].label
        return ChainProgress(
            current_step=self._cursor + 1,
            total_steps=len(self._steps) or 1,
            current_label=current_label,
            completed_labels=[
                r.label or f"Step {r.step_index + 1}" for r in self._step_results
            ],
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_running(self) -> None:
        if self._chain is None:
            raise ChainError("No chain started")
        if self._complete:
            raise ChainError(f"Chain '{self._chain.id}' is already complete")

    def _index_of(self, questionnaire_id: str) -> int | None:
        for index, step in enumerate(self._steps):
            if step.questionnaire_id == questionnaire_id:
                return index
        return None

    async def _load_step_engine(self, step_index: int) -> QuestionnaireEngine:
        if step_index < 0 or step_index >= len(self._steps):
            raise ChainError(
                f"Chain step {step_index} out of bounds ({len(self._steps)} steps)"
            )

        step = self._steps[step_index]
        engine = QuestionnaireEngine(self._store, strict_routing=self._strict_routing)
        await engine.initialize(
            step.questionnaire_id,
            step.start_question_id,
            self._language,
            self._gender,
        )
        logger.info(
            "Loaded chain step %d/%d: %s", step_index + 1, len(self._steps), step.questionnaire_id,
        )
        return engine

    def _save_step_results(self, engine: QuestionnaireEngine) -> None:
        """Snapshot the current step's results, including abandoned steps."""
        step = self._steps[self._cursor]
        self._step_results.append(
            snapshot_step(
                engine.get_progress(),
                questionnaire_id=step.questionnaire_id,
                step_index=self._cursor,
                label=step.label,
            )
        )

    def _find_next_eligible_step(self, from_index: int) -> int | None:
        for index in range(from_index, len(self._steps)):
            step = self._steps[index]
            if step.condition is not None and not self._condition_met(step.condition):
                logger.info(
                    "Skipping step %d (%s): step %d did not assign program %s",
                    index,
                    step.questionnaire_id,
                    step.condition.step_index,
                    step.condition.required_program_id,
                )
                continue
            return index
        return None

    def _condition_met(self, condition: StepCondition) -> bool:
        """True if the recorded result of chain step ``step_index`` assigned the program."""
        recorded = [r for r in self._step_results if r.step_index == condition.step_index]
        if not recorded:
            return False
        return any(
            result.program_id == condition.required_program_id
            for result in recorded[-1].assigned_results
        )
