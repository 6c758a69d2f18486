"""OnboardingResult ORM model — one row per completed onboarding flow.

The aggregated chain result is stored as JSONB so a single row is enough to
show a user their assigned programs, per-region levels, and answers.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, SmallInteger, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_db.models.base import Base
from onboarding_db.models.enums import FlowMode


class OnboardingResult(Base):
    """The aggregated outcome of one user's flow.

    Unique per (user_id, session_id): a session produces at most one result.
    """

    __tablename__ = "onboarding_results"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Identity ---
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(Text, nullable=False)

    # --- What was run ---
    mode: Mapped[str] = mapped_column(String(20), nullable=False, default=FlowMode.CHAIN)
    # Set for chain flows only
    chain_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Set for single-questionnaire flows only
    partition: Mapped[str | None] = mapped_column(Text, nullable=True)
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)

    # --- Aggregated result ---
    # [{"program_id": ..., "level_id": ..., "master_program_sub_levels": {...}}, ...]
    all_assigned_results: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )
    # {"push": 3, "pull": 2, ...}
    merged_child_levels: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    # {"push_assessment__push_q1": "push_q1_a2", ...}
    all_answers: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    steps_completed: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    total_steps: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "session_id", name="uq_result_user_session"),
        CheckConstraint(
            "steps_completed <= total_steps",
            name="ck_steps_within_total",
        ),
        # Chain flows name their chain; partition flows name their partition
        CheckConstraint(
            "(mode = 'chain' AND chain_id IS NOT NULL) "
            "OR (mode = 'partition' AND partition IS NOT NULL)",
            name="ck_mode_has_source",
        ),
        # History listing: newest results per user
        Index("ix_result_user_created", "user_id", "created_at"),
        Index("ix_result_child_levels_gin", "merged_child_levels", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return (
            f"<OnboardingResult(id={self.id!s}, user={self.user_id!r}, "
            f"session={self.session_id!r}, mode={self.mode!r}, "
            f"steps={self.steps_completed}/{self.total_steps})>"
        )
