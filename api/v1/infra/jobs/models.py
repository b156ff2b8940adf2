"""
Job queue models.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, TIMESTAMP, CheckConstraint, Index, Integer, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from api.infra.database import Base


class JobState(str, Enum):
    """Job state enumeration."""

    AVAILABLE = "available"
    RUNNING = "running"
    DEAD_LETTER = "dead_letter"
    COMPLETED = "completed"


class QueueName(str, Enum):
    """Queue tags. Each live tag has exactly one registered handler."""

    SEND_KEEPER_TEST = "send_keeper_test"
    RECEIVE_KEEPER_TEST_RESULTS = "receive_keeper_test_results"
    DEAD_LETTER = "dead_letter"


class Job(Base):
    """
    A unit of background work.

    A job is claimable only while ``state`` is available and ``scheduled``
    has passed. ``lock_id`` is set by the claim that moved it to running and
    is the guard every later write for that claim must match.
    """

    __tablename__ = "jobs"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    created: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )
    scheduled: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
        comment="Earliest time the job may be claimed",
    )
    queue_name: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Handler tag"
    )
    state: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=JobState.AVAILABLE.value,
        comment="available|running|dead_letter|completed",
    )
    lock_id: Mapped[UUID | None] = mapped_column(
        PG_UUID, nullable=True, comment="Token of the claiming invocation"
    )
    last_heartbeat: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, comment="Last state touch"
    )
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default="{}",
        comment="Queue-specific payload",
    )
    failure_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    __table_args__ = (
        CheckConstraint(
            "state IN ('available', 'running', 'dead_letter', 'completed')",
            name="jobs_state_check",
        ),
        CheckConstraint("failure_count >= 0", name="jobs_failure_count_check"),
        Index("ix_jobs_state_scheduled", "state", "scheduled"),
        Index("ix_jobs_last_heartbeat", "last_heartbeat"),
    )

    def is_claimable(self, now: datetime) -> bool:
        """Check if the job would be picked up by a claim at ``now``."""
        return self.state == JobState.AVAILABLE.value and self.scheduled <= now

    def is_stale(self, visibility_timeout_s: int, now: datetime | None = None) -> bool:
        """Check if a running job has gone without a heartbeat for too long."""
        if self.state != JobState.RUNNING.value or self.last_heartbeat is None:
            return False
        now = now or datetime.now(UTC)
        return (now - self.last_heartbeat).total_seconds() > visibility_timeout_s
