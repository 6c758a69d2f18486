"""onboarding_db — PostgreSQL persistence for completed onboarding flows.

Provides the ORM model, the async engine factory, and the repository the
server uses to store and list aggregated results.
"""

from onboarding_db.engine import dispose_engine, get_engine, get_session_factory
from onboarding_db.models.enums import FlowMode
from onboarding_db.models.result import OnboardingResult
from onboarding_db.repository import ResultRepository

__all__ = [
    "FlowMode",
    "OnboardingResult",
    "ResultRepository",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
]
