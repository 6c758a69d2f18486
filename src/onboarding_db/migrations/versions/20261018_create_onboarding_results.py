"""Create the onboarding_results table.

One row per completed flow, holding the aggregated chain result as JSONB.

Revision ID: 20261018_results
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261018_results"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "onboarding_results",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("session_id", sa.Text(), nullable=False),
        sa.Column("mode", sa.String(20), nullable=False),
        sa.Column("chain_id", sa.Text(), nullable=True),
        sa.Column("partition", sa.Text(), nullable=True),
        sa.Column("language", sa.String(8), nullable=False),
        sa.Column("gender", sa.String(16), nullable=False),
        sa.Column(
            "all_assigned_results", JSONB, nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "merged_child_levels", JSONB, nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "all_answers", JSONB, nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("steps_completed", sa.SmallInteger(), nullable=False),
        sa.Column("total_steps", sa.SmallInteger(), nullable=False),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "session_id", name="uq_result_user_session"),
        sa.CheckConstraint("steps_completed <= total_steps", name="ck_steps_within_total"),
        sa.CheckConstraint(
            "(mode = 'chain' AND chain_id IS NOT NULL) "
            "OR (mode = 'partition' AND partition IS NOT NULL)",
            name="ck_mode_has_source",
        ),
    )

    op.create_index("ix_onboarding_results_user_id", "onboarding_results", ["user_id"])
    op.create_index(
        "ix_result_user_created", "onboarding_results", ["user_id", "created_at"],
    )
    op.create_index(
        "ix_result_child_levels_gin",
        "onboarding_results",
        ["merged_child_levels"],
        postgresql_using="gin",
    )


def downgrade() -> None:
    op.drop_index("ix_result_child_levels_gin", table_name="onboarding_results")
    op.drop_index("ix_result_user_created", table_name="onboarding_results")
    op.drop_index("ix_onboarding_results_user_id", table_name="onboarding_results")
    op.drop_table("onboarding_results")
