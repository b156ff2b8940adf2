"""
Job queue Pydantic schemas.

Payloads are keyed by queue name: ``parse_job_data`` picks the model for a
job's queue before any field is read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from api.v1.infra.jobs.models import JobState, QueueName


class JobPayloadError(ValueError):
    """Raised when a job's data does not match its queue's payload schema."""


class Person(BaseModel):
    """Employee or manager reference carried in keeper test payloads."""

    id: str
    email: str
    name: str


class KeeperTestPayload(BaseModel):
    """Data for ``send_keeper_test`` jobs."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    employee: Person
    manager: Person


class KeeperTestReminderPayload(KeeperTestPayload):
    """Data for ``receive_keeper_test_results`` jobs."""

    thread_id: str = Field(..., alias="threadId", min_length=1)


PAYLOAD_SCHEMAS: dict[str, type[BaseModel]] = {
    QueueName.SEND_KEEPER_TEST.value: KeeperTestPayload,
    QueueName.RECEIVE_KEEPER_TEST_RESULTS.value: KeeperTestReminderPayload,
}


def parse_job_data(queue_name: str, data: dict[str, Any] | None) -> BaseModel:
    """Validate ``data`` against the payload model registered for ``queue_name``."""
    schema = PAYLOAD_SCHEMAS.get(queue_name)
    if schema is None:
        raise JobPayloadError(f"No payload schema for queue: {queue_name}")
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise JobPayloadError(
            f"Invalid {queue_name} payload: {', '.join(missing)}"
        ) from e


def dump_payload(payload: BaseModel) -> dict[str, Any]:
    """Serialize a payload for the ``data`` column, using wire field names."""
    return payload.model_dump(mode="json", by_alias=True)


@dataclass
class JobOutcome:
    """What a handler decided for one claimed job.

    On success any of ``queue_name``, ``scheduled`` and ``data`` may be set;
    unset fields leave the stored value alone. A failure carries only the
    error text; the failure count is derived by the committer.
    """

    success: bool
    queue_name: str | None = None
    scheduled: datetime | None = None
    data: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def succeeded(
        cls,
        *,
        queue_name: str | None = None,
        scheduled: datetime | None = None,
        data: dict[str, Any] | None = None,
    ) -> "JobOutcome":
        return cls(success=True, queue_name=queue_name, scheduled=scheduled, data=data)

    @classmethod
    def failed(cls, error: str) -> "JobOutcome":
        return cls(success=False, error=error)


@dataclass
class JobCommit:
    """Column values the committer writes for one job, plus its verdict."""

    values: dict[str, Any] = field(default_factory=dict)
    dead_lettered: bool = False


class JobResult(BaseModel):
    """Per-job entry in the trigger response."""

    id: UUID
    success: bool
    data: dict[str, Any] | None = None


class RunJobsResponse(BaseModel):
    """Trigger response body."""

    success: bool = True
    results: list[JobResult] = Field(default_factory=list)


class JobEnqueueRequest(BaseModel):
    """Schema for enqueueing jobs via API."""

    queue_name: QueueName = Field(..., description="Queue tag")
    data: dict[str, Any] = Field(default_factory=dict, description="Job payload")
    scheduled: datetime | None = Field(
        default=None, description="Earliest time to run job"
    )


class JobEnqueueResponse(BaseModel):
    """Schema for job enqueue response."""

    job_id: UUID
    state: str
    scheduled: datetime


class JobResponse(BaseModel):
    """Schema for job API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created: datetime
    scheduled: datetime
    queue_name: str
    state: str
    lock_id: UUID | None = None
    last_heartbeat: datetime | None = None
    data: dict[str, Any]
    failure_count: int


class JobListResponse(BaseModel):
    """Schema for job list API response."""

    jobs: list[JobResponse]
    total: int
    limit: int
    offset: int


class JobStatsResponse(BaseModel):
    """Schema for job statistics."""

    total_jobs: int
    by_state: dict[str, int]
    by_queue: dict[str, int]
    queue_depth: int  # available + running
    due_now: int
    dead_letter: int
    stale_running: int


class JobListFilters(BaseModel):
    """Schema for job listing filters."""

    state: list[JobState] | None = Field(default=None, description="Filter by state")
    queue_name: str | None = Field(default=None, description="Filter by queue")
    limit: int = Field(default=50, ge=1, le=1000, description="Maximum results")
    offset: int = Field(default=0, ge=0, description="Results offset")
