"""Public model re-exports for onboarding_engine.

Consumers should import from ``onboarding_engine.models`` rather than
reaching into sub-modules directly.
"""

# --- Routing ---
from onboarding_engine.models.routing import (
    AnswerCountGte,
    AnswerEquals,
    AnswerIncludes,
    ChainTrigger,
    ConditionalRoute,
    RouteCondition,
)

# --- Questions ---
from onboarding_engine.models.question import (
    AnswerOption,
    AnswerResult,
    AnswerRouting,
    QuestionNode,
)

# --- Content store records ---
from onboarding_engine.models.content import (
    AnswerDocument,
    AnswerRecord,
    LocalizedText,
    QuestionDocument,
    QuestionRecord,
    QuestionWithAnswers,
    TextVariants,
)

# --- Reference constants ---
from onboarding_engine.models.schema import LevelConst, ProgramConst

# --- Engine state / outcomes ---
from onboarding_engine.models.session import (
    AnswerOutcome,
    AssignedValues,
    ContinueOutcome,
    EngineState,
    HandoffOutcome,
    QuestionnaireProgress,
    TerminalOutcome,
)

# --- Chains ---
from onboarding_engine.models.chain import (
    ChainAggregatedResult,
    ChainDefinition,
    ChainProgress,
    ChainStep,
    ChainStepResult,
    StepCondition,
)

# --- Flow steps ---
from onboarding_engine.models.flow import (
    CompletedStep,
    FlowInfo,
    FlowStep,
    QuestionStep,
)

__all__ = [
    # Routing
    "AnswerCountGte",
    "AnswerEquals",
    "AnswerIncludes",
    "ChainTrigger",
    "ConditionalRoute",
    "RouteCondition",
    # Questions
    "AnswerOption",
    "AnswerResult",
    "AnswerRouting",
    "QuestionNode",
    # Content
    "AnswerDocument",
    "AnswerRecord",
    "LocalizedText",
    "QuestionDocument",
    "QuestionRecord",
    "QuestionWithAnswers",
    "TextVariants",
    # Schema
    "LevelConst",
    "ProgramConst",
    # Engine
    "AnswerOutcome",
    "AssignedValues",
    "ContinueOutcome",
    "EngineState",
    "HandoffOutcome",
    "QuestionnaireProgress",
    "TerminalOutcome",
    # Chains
    "ChainAggregatedResult",
    "ChainDefinition",
    "ChainProgress",
    "ChainStep",
    "ChainStepResult",
    "StepCondition",
    # Flow
    "CompletedStep",
    "FlowInfo",
    "FlowStep",
    "QuestionStep",
]
