"""Database-level enumerations for onboarding results."""

import enum


class FlowMode(str, enum.Enum):
    """How the flow that produced a result was driven.

    ``chain`` flows ran a chain definition through the orchestrator;
    ``partition`` flows ran a single questionnaire.
    """

    CHAIN = "chain"
    PARTITION = "partition"
