"""
Postgres job store: atomic claim, guarded commit and stale-job reclaim.

Every method runs in its own short transaction so that one job's commit can
never roll back another's. The statements are built by the module-level
functions below so they can be compiled and inspected without a database.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Update, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.v1.infra.jobs.models import Job, JobState

logger = logging.getLogger(__name__)


def claim_statement(lock_id: UUID, batch_size: int, now: datetime) -> Update:
    """
    UPDATE moving up to ``batch_size`` due jobs to running under ``lock_id``.

    The row set comes from SELECT ... FOR UPDATE SKIP LOCKED, so concurrent
    claimers never see the same row.
    """
    due = (
        select(Job.id)
        .where(Job.state == JobState.AVAILABLE.value, Job.scheduled <= now)
        .order_by(Job.scheduled)
        .limit(batch_size)
        .with_for_update(skip_locked=True)
    )
    return (
        update(Job)
        .where(Job.id.in_(due.scalar_subquery()))
        .values(
            state=JobState.RUNNING.value,
            lock_id=lock_id,
            last_heartbeat=now,
        )
        .returning(Job)
        .execution_options(synchronize_session=False)
    )


def commit_statement(job_id: UUID, lock_id: UUID, values: dict[str, Any]) -> Update:
    """UPDATE writing ``values`` only while ``lock_id`` still holds the job."""
    return (
        update(Job)
        .where(Job.id == job_id, Job.lock_id == lock_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def reclaim_statement(cutoff: datetime, now: datetime) -> Update:
    """UPDATE returning running jobs with a heartbeat older than ``cutoff``."""
    return (
        update(Job)
        .where(
            Job.state == JobState.RUNNING.value,
            Job.last_heartbeat < cutoff,
        )
        .values(
            state=JobState.AVAILABLE.value,
            lock_id=None,
            last_heartbeat=now,
        )
        .execution_options(synchronize_session=False)
    )


class JobStore:
    """Shared, concurrency-safe access to the ``jobs`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def claim_jobs(
        self, lock_id: UUID, batch_size: int, now: datetime | None = None
    ) -> list[Job]:
        """Claim up to ``batch_size`` due jobs for ``lock_id``, oldest-due first."""
        now = now or datetime.now(UTC)

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    claim_statement(lock_id, batch_size, now)
                )
                jobs = list(result.scalars().all())

        # RETURNING order is unspecified
        jobs.sort(key=lambda job: job.scheduled)

        if jobs:
            logger.info(
                "Claimed jobs",
                extra={
                    "lock_id": str(lock_id),
                    "job_count": len(jobs),
                    "job_ids": [str(job.id) for job in jobs],
                },
            )
        return jobs

    async def commit(self, job_id: UUID, lock_id: UUID, values: dict[str, Any]) -> bool:
        """
        Write ``values`` to the job only if ``lock_id`` still holds it.

        Returns False, without raising, when the job was reclaimed,
        re-claimed or completed by someone else in the meantime.
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    commit_statement(job_id, lock_id, values)
                )

        return result.rowcount > 0

    async def reclaim_stale_jobs(
        self, visibility_timeout_s: int, now: datetime | None = None
    ) -> int:
        """Return running jobs with a stale heartbeat to available."""
        now = now or datetime.now(UTC)
        cutoff = datetime.fromtimestamp(now.timestamp() - visibility_timeout_s, UTC)

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(reclaim_statement(cutoff, now))

        reclaimed = result.rowcount or 0
        if reclaimed:
            logger.warning(
                "Reclaimed stale jobs",
                extra={
                    "reclaimed_count": reclaimed,
                    "visibility_timeout_s": visibility_timeout_s,
                },
            )
        return reclaimed
