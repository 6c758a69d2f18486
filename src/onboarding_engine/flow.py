"""OnboardingFlow — one user's run through a questionnaire or a chain.

The flow is the caller-side state container: it owns the current engine and,
in chain mode, the orchestrator, and turns raw engine outcomes into
renderable :data:`FlowStep` values.  Nothing here is global; whoever creates
a flow holds it (the server keeps one per user and session).

Two modes:

  - **partition**: a single questionnaire; a terminal outcome completes the
    flow with a one-step aggregated result
  - **chain**: a :class:`ChainDefinition` driven by :class:`ChainOrchestrator`
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from onboarding_engine.aggregation import aggregate_results, snapshot_step
from onboarding_engine.constants import DEFAULT_GENDER, DEFAULT_LANGUAGE, STRICT_ROUTING
from onboarding_engine.engine import QuestionnaireEngine
from onboarding_engine.errors import ChainError, EngineStateError
from onboarding_engine.interfaces import ContentStore
from onboarding_engine.models.chain import ChainAggregatedResult, ChainDefinition
from onboarding_engine.models.flow import CompletedStep, FlowInfo, FlowStep, QuestionStep
from onboarding_engine.models.session import ContinueOutcome, HandoffOutcome
from onboarding_engine.orchestrator import ChainOrchestrator, ChainTransition

logger = logging.getLogger(__name__)


class OnboardingFlow:
    """Drives one flow from its first question to a completed result.

    Exactly one of ``chain`` / ``partition`` must be given.
    """

    def __init__(
        self,
        store: ContentStore,
        *,
        user_id: str,
        session_id: str,
        chain: ChainDefinition | None = None,
        partition: str | None = None,
        language: str = DEFAULT_LANGUAGE,
        gender: str = DEFAULT_GENDER,
        strict_routing: bool = STRICT_ROUTING,
    ) -> None:
        if (chain is None) == (partition is None):
            raise ValueError("Exactly one of chain or partition must be given")

        self.user_id = user_id
        self.session_id = session_id
        self.language = language
        self.gender = gender
        self.created_at = datetime.now(timezone.utc)

        self._store = store
        self._strict_routing = strict_routing
        self._chain = chain
        self._partition = partition
        self._orchestrator = (
            ChainOrchestrator(store, strict_routing=strict_routing) if chain is not None else None
        )
        self._engine: QuestionnaireEngine | None = None
        self._result: ChainAggregatedResult | None = None

    @property
    def chain_id(self) -> str | None:
        return self._chain.id if self._chain is not None else None

    @property
    def partition(self) -> str | None:
        return self._partition

    @property
    def is_complete(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> ChainAggregatedResult | None:
        return self._result

    @property
    def engine(self) -> QuestionnaireEngine | None:
        return self._engine

    @property
    def orchestrator(self) -> ChainOrchestrator | None:
        return self._orchestrator

    def info(self) -> FlowInfo:
        return FlowInfo(
            user_id=self.user_id,
            session_id=self.session_id,
            chain_id=self.chain_id,
            partition=self._partition,
            language=self.language,
            gender=self.gender,
            is_complete=self.is_complete,
            created_at=self.created_at,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> FlowStep:
        """Load the first question of the flow."""
        if self._engine is not None or self._result is not None:
            raise EngineStateError(f"Flow {self.session_id} already started")

        if self._orchestrator is not None:
            self._engine = await self._orchestrator.start_chain(
                self._chain, self.language, self.gender,
            )
        else:
            engine = QuestionnaireEngine(self._store, strict_routing=self._strict_routing)
            await engine.initialize(self._partition, language=self.language, gender=self.gender)
            self._engine = engine

        logger.info(
            "Flow started: user=%s session=%s chain=%s partition=%s",
            self.user_id, self.session_id, self.chain_id, self._partition,
        )
        return self.current_step()

    def current_step(self) -> FlowStep:
        """Return what the rendering layer should show now."""
        if self._result is not None:
            return CompletedStep(result=self._result)

        engine = self._require_engine()
        question = engine.get_current_question()
        if question is None:
            raise EngineStateError(
                f"Flow {self.session_id} has no current question "
                f"(engine state: {engine.state.value})"
            )

        progress = None
        if self._orchestrator is not None:
            progress = self._orchestrator.get_chain_progress()
        return QuestionStep(question=question, chain_progress=progress)

    async def submit(self, answer_id: str) -> FlowStep:
        """Answer the current question and return the next step."""
        engine = self._require_engine()
        outcome = await engine.answer(answer_id)

        if isinstance(outcome, ContinueOutcome):
            return self.current_step()

        if isinstance(outcome, HandoffOutcome):
            if self._orchestrator is None:
                raise ChainError(
                    f"Answer {answer_id} hands off to "
                    f"'{outcome.trigger.next_questionnaire_id}' but flow "
                    f"{self.session_id} is not running a chain"
                )
            transition = await self._orchestrator.handle_chain_trigger(outcome.trigger, engine)
            return self._apply(transition)

        if self._orchestrator is not None:
            transition = await self._orchestrator.complete_current_questionnaire(engine)
            return self._apply(transition)

        step = snapshot_step(
            engine.get_progress(), questionnaire_id=self._partition, step_index=0,
        )
        return self._finish(aggregate_results([step], total_steps=1))

    async def back(self) -> FlowStep:
        """Return to the previous question of the current questionnaire."""
        engine = self._require_engine()
        await engine.go_back()
        return self.current_step()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_engine(self) -> QuestionnaireEngine:
        if self._result is not None:
            raise EngineStateError(f"Flow {self.session_id} is already complete")
        if self._engine is None:
            raise EngineStateError(f"Flow {self.session_id} has not been started")
        return self._engine

    def _apply(self, transition: ChainTransition) -> FlowStep:
        if transition.has_next:
            self._engine = transition.engine
            return self.current_step()
        return self._finish(transition.aggregated_result)

    def _finish(self, result: ChainAggregatedResult) -> FlowStep:
        self._result = result
        self._engine = None
        logger.info(
            "Flow complete: user=%s session=%s steps=%d/%d results=%d",
            self.user_id, self.session_id,
            result.steps_completed, result.total_steps, len(result.all_assigned_results),
        )
        return CompletedStep(result=result)
