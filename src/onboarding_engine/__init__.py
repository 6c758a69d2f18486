"""onboarding_engine — Branching questionnaire SDK for fitness onboarding.

Public API:
    QuestionnaireEngine — walks one question graph to a terminal outcome
    ChainOrchestrator   — runs a sequence of questionnaires and merges results
    ChainTransition     — what to do after a chain step ended
    OnboardingFlow      — one user's run, in partition or chain mode
    YamlContentStore    — loads v1/ YAML content and serves the ContentStore API
    ContentStore        — ABC the engine reads questions and chains from
    RouteEvaluator      — resolves conditional routes against prior answers

Results:
    aggregate_results   — merge chain step results (higher level wins per region)

Errors:
    QuestionnaireError and its subclasses, all ``ValueError``s
"""

from onboarding_engine.aggregation import aggregate_results
from onboarding_engine.content import YamlContentStore
from onboarding_engine.engine import QuestionnaireEngine
from onboarding_engine.errors import (
    ChainError,
    ContentError,
    DuplicateFlowError,
    EngineStateError,
    InvalidAnswerError,
    NotFoundError,
    QuestionnaireError,
    UnresolvableSuccessorError,
)
from onboarding_engine.evaluator import RouteEvaluator
from onboarding_engine.flow import OnboardingFlow
from onboarding_engine.interfaces import ContentStore
from onboarding_engine.models.chain import ChainAggregatedResult, ChainDefinition, ChainProgress
from onboarding_engine.models.flow import CompletedStep, FlowInfo, FlowStep, QuestionStep
from onboarding_engine.models.session import AnswerOutcome, EngineState
from onboarding_engine.orchestrator import ChainOrchestrator, ChainTransition

__all__ = [
    # Engine, orchestration & store
    "ChainOrchestrator",
    "ChainTransition",
    "ContentStore",
    "OnboardingFlow",
    "QuestionnaireEngine",
    "RouteEvaluator",
    "YamlContentStore",
    "aggregate_results",
    # Outcomes & steps
    "AnswerOutcome",
    "CompletedStep",
    "EngineState",
    "FlowInfo",
    "FlowStep",
    "QuestionStep",
    # Chains
    "ChainAggregatedResult",
    "ChainDefinition",
    "ChainProgress",
    # Errors
    "ChainError",
    "ContentError",
    "DuplicateFlowError",
    "EngineStateError",
    "InvalidAnswerError",
    "NotFoundError",
    "QuestionnaireError",
    "UnresolvableSuccessorError",
]
