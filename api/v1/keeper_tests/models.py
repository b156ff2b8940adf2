from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, Boolean, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from api.infra.database import Base


class DriverOrPassenger(str, Enum):
    DRIVER = "DRIVER"
    PASSENGER = "PASSENGER"


class Recommendation(str, Enum):
    STRONG_HIRE_ON_TRACK_TO_PASS_PROBATION = "STRONG_HIRE_ON_TRACK_TO_PASS_PROBATION"
    AVERAGE_HIRE_NEED_TO_SEE_IMPROVEMENTS = "AVERAGE_HIRE_NEED_TO_SEE_IMPROVEMENTS"
    NOT_A_FIT_NEEDS_ESCALATING = "NOT_A_FIT_NEEDS_ESCALATING"


class KeeperTestFeedback(Base):
    """A manager's answers to one keeper test."""

    __tablename__ = "keeper_test_feedback"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )
    job_id: Mapped[UUID | None] = mapped_column(
        PG_UUID, nullable=True, comment="Job that sent the keeper test"
    )
    employee_id: Mapped[str] = mapped_column(Text, nullable=False)
    manager_id: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)

    would_you_try_to_keep_them: Mapped[bool] = mapped_column(Boolean, nullable=False)
    what_makes_them_valuable: Mapped[str | None] = mapped_column(Text, nullable=True)
    driver_or_passenger: Mapped[str] = mapped_column(Text, nullable=False)
    proactive_today: Mapped[bool] = mapped_column(Boolean, nullable=False)
    optimistic_by_default: Mapped[bool] = mapped_column(Boolean, nullable=False)
    areas_to_watch: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommendation: Mapped[str | None] = mapped_column(Text, nullable=True)
    shared_with_team_member: Mapped[bool] = mapped_column(Boolean, nullable=False)
