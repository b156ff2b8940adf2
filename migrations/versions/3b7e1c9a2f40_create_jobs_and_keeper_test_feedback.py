"""create jobs and keeper_test_feedback tables

Revision ID: 3b7e1c9a2f40
Revises:
Create Date: 2026-10-19 09:12:31.402118

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b7e1c9a2f40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "jobs",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "created",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "scheduled",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment="Earliest time the job may be claimed",
        ),
        sa.Column("queue_name", sa.Text, nullable=False, comment="Handler tag"),
        sa.Column(
            "state",
            sa.Text,
            nullable=False,
            server_default="available",
            comment="available|running|dead_letter|completed",
        ),
        sa.Column(
            "lock_id",
            sa.UUID(as_uuid=True),
            nullable=True,
            comment="Token of the claiming invocation",
        ),
        sa.Column(
            "last_heartbeat",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="Last state touch",
        ),
        sa.Column(
            "data",
            sa.JSON,
            nullable=False,
            server_default="{}",
            comment="Queue-specific payload",
        ),
        sa.Column("failure_count", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint(
            "state IN ('available', 'running', 'dead_letter', 'completed')",
            name="jobs_state_check",
        ),
        sa.CheckConstraint("failure_count >= 0", name="jobs_failure_count_check"),
    )

    # Claim scans available rows by due time
    op.create_index("ix_jobs_state_scheduled", "jobs", ["state", "scheduled"])
    op.create_index("ix_jobs_last_heartbeat", "jobs", ["last_heartbeat"])

    op.create_table(
        "keeper_test_feedback",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "job_id",
            sa.UUID(as_uuid=True),
            nullable=True,
            comment="Job that sent the keeper test",
        ),
        sa.Column("employee_id", sa.Text, nullable=False),
        sa.Column("manager_id", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("would_you_try_to_keep_them", sa.Boolean, nullable=False),
        sa.Column("what_makes_them_valuable", sa.Text, nullable=True),
        sa.Column("driver_or_passenger", sa.Text, nullable=False),
        sa.Column("proactive_today", sa.Boolean, nullable=False),
        sa.Column("optimistic_by_default", sa.Boolean, nullable=False),
        sa.Column("areas_to_watch", sa.Text, nullable=True),
        sa.Column("recommendation", sa.Text, nullable=True),
        sa.Column("shared_with_team_member", sa.Boolean, nullable=False),
    )
    op.create_index(
        "ix_keeper_test_feedback_employee_id", "keeper_test_feedback", ["employee_id"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("keeper_test_feedback")
    op.drop_table("jobs")
