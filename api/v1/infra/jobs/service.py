"""
Job service for enqueueing and inspecting jobs.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Update, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.config.settings import Settings
from api.v1.infra.jobs.models import Job, JobState, QueueName
from api.v1.infra.jobs.schemas import (
    JobEnqueueResponse,
    JobListFilters,
    JobStatsResponse,
    dump_payload,
    parse_job_data,
)

logger = logging.getLogger(__name__)

# Queues a keeper test job can be in when its feedback arrives
KEEPER_TEST_QUEUES = (
    QueueName.SEND_KEEPER_TEST.value,
    QueueName.RECEIVE_KEEPER_TEST_RESULTS.value,
)


def complete_job_statement(job_id: UUID, now: datetime) -> Update:
    """UPDATE marking a live keeper test job completed and releasing its lock."""
    return (
        update(Job)
        .where(
            Job.id == job_id,
            Job.queue_name.in_(KEEPER_TEST_QUEUES),
            Job.state.in_([JobState.AVAILABLE.value, JobState.RUNNING.value]),
        )
        .values(
            state=JobState.COMPLETED.value,
            lock_id=None,
            last_heartbeat=now,
        )
        .execution_options(synchronize_session=False)
    )


class JobService:
    """Service for managing jobs outside the poll cycle."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def enqueue_job(
        self,
        session: AsyncSession,
        queue_name: str,
        data: dict[str, Any],
        scheduled: datetime | None = None,
    ) -> JobEnqueueResponse:
        """
        Insert an available job after validating its payload.

        Raises:
            JobPayloadError: if ``data`` does not fit ``queue_name``
        """
        payload = parse_job_data(queue_name, data)
        now = datetime.now(UTC)

        job = Job(
            id=uuid.uuid4(),
            created=now,
            scheduled=scheduled or now,
            queue_name=queue_name,
            state=JobState.AVAILABLE.value,
            data=dump_payload(payload),
            failure_count=0,
        )
        session.add(job)
        await session.commit()

        logger.info(
            "Job enqueued",
            extra={
                "job_id": str(job.id),
                "queue_name": queue_name,
                "scheduled": job.scheduled.isoformat(),
            },
        )
        return JobEnqueueResponse(
            job_id=job.id, state=job.state, scheduled=job.scheduled
        )

    async def get_job_by_id(self, session: AsyncSession, job_id: UUID) -> Job | None:
        result = await session.execute(select(Job).where(Job.id == job_id))
        return result.scalar_one_or_none()

    async def list_jobs(
        self, session: AsyncSession, filters: JobListFilters
    ) -> tuple[list[Job], int]:
        """List jobs newest first, with the total matching count."""
        query = select(Job)
        if filters.state:
            query = query.where(Job.state.in_([s.value for s in filters.state]))
        if filters.queue_name:
            query = query.where(Job.queue_name == filters.queue_name)

        total_result = await session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = total_result.scalar() or 0

        result = await session.execute(
            query.order_by(desc(Job.created)).offset(filters.offset).limit(filters.limit)
        )
        return list(result.scalars().all()), total

    async def get_job_stats(self, session: AsyncSession) -> JobStatsResponse:
        """Counts by state and queue plus queue health indicators."""
        now = datetime.now(UTC)

        total_result = await session.execute(select(func.count(Job.id)))
        total_jobs = total_result.scalar() or 0

        state_result = await session.execute(
            select(Job.state, func.count(Job.id)).group_by(Job.state)
        )
        by_state = dict(state_result.all())

        queue_result = await session.execute(
            select(Job.queue_name, func.count(Job.id)).group_by(Job.queue_name)
        )
        by_queue = dict(queue_result.all())

        due_result = await session.execute(
            select(func.count(Job.id)).where(
                Job.state == JobState.AVAILABLE.value, Job.scheduled <= now
            )
        )

        stale_cutoff = datetime.fromtimestamp(
            now.timestamp() - self.settings.job_visibility_timeout_s, UTC
        )
        stale_result = await session.execute(
            select(func.count(Job.id)).where(
                Job.state == JobState.RUNNING.value,
                Job.last_heartbeat < stale_cutoff,
            )
        )

        return JobStatsResponse(
            total_jobs=total_jobs,
            by_state=by_state,
            by_queue=by_queue,
            queue_depth=by_state.get(JobState.AVAILABLE.value, 0)
            + by_state.get(JobState.RUNNING.value, 0),
            due_now=due_result.scalar() or 0,
            dead_letter=by_state.get(JobState.DEAD_LETTER.value, 0),
            stale_running=stale_result.scalar() or 0,
        )

    async def complete_job(self, session: AsyncSession, job_id: UUID) -> bool:
        """
        Retire a keeper test job once its feedback has arrived.

        Matches the job in either keeper test queue. Clearing ``lock_id``
        makes the commit of a send or reminder that is in flight right now
        a no-op. The caller commits the session.
        """
        result = await session.execute(
            complete_job_statement(job_id, datetime.now(UTC))
        )
        completed = result.rowcount > 0
        if completed:
            logger.info("Job completed", extra={"job_id": str(job_id)})
        return completed
