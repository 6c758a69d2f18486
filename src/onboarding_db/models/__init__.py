"""ORM models for onboarding_db."""

from onboarding_db.models.base import Base
from onboarding_db.models.enums import FlowMode
from onboarding_db.models.result import OnboardingResult

__all__ = ["Base", "FlowMode", "OnboardingResult"]
