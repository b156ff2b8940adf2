from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from api.config.settings import Settings, SettingsDep
from api.infra.database import get_session
from api.v1.core.exceptions import create_success_response
from api.v1.infra.jobs.models import Job, JobState

router = APIRouter()


class DatabaseHealth(BaseModel):
    """Database health status."""

    connected: bool
    response_time_ms: float | None = None
    error: str | None = None


class QueueHealth(BaseModel):
    """Job queue health status."""

    queue_depth: int = 0
    running_jobs: int = 0
    stale_jobs_count: int = 0
    dead_letter_count: int = 0
    oldest_due_age_seconds: int | None = None


@router.get("/healthz", response_model=dict)
async def health_check(
    settings: Settings = SettingsDep, session: AsyncSession = Depends(get_session)
):
    """Health check endpoint with database and job queue status."""

    timestamp = datetime.now(UTC).isoformat()

    db_health = await _check_database_health(session)

    queue_health = None
    if db_health.connected:
        try:
            queue_health = await _check_queue_health(session, settings)
        except Exception:
            # Missing tables (fresh database) should not fail liveness
            queue_health = None

    health_data = {
        "ok": db_health.connected,
        "version": settings.version,
        "environment": settings.environment,
        "timestamp": timestamp,
        "database": db_health.model_dump(),
        "queue": queue_health.model_dump() if queue_health else None,
    }

    return create_success_response(data=health_data)


async def _check_database_health(session: AsyncSession) -> DatabaseHealth:
    """Check database connectivity and response time."""
    start_time = datetime.now(UTC)

    try:
        await session.execute(text("SELECT 1"))

        response_time_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
        return DatabaseHealth(
            connected=True, response_time_ms=round(response_time_ms, 2)
        )

    except Exception as e:
        return DatabaseHealth(connected=False, error=str(e))


async def _check_queue_health(session: AsyncSession, settings: Settings) -> QueueHealth:
    """Summarize the job queue."""
    now = datetime.now(UTC)

    counts_result = await session.execute(
        select(Job.state, func.count(Job.id)).group_by(Job.state)
    )
    counts = dict(counts_result.all())

    stale_cutoff = datetime.fromtimestamp(
        now.timestamp() - settings.job_visibility_timeout_s, UTC
    )
    stale_result = await session.execute(
        select(func.count(Job.id)).where(
            Job.state == JobState.RUNNING.value, Job.last_heartbeat < stale_cutoff
        )
    )

    oldest_due_result = await session.execute(
        select(func.min(Job.scheduled)).where(
            Job.state == JobState.AVAILABLE.value, Job.scheduled <= now
        )
    )
    oldest_due = oldest_due_result.scalar()

    return QueueHealth(
        queue_depth=counts.get(JobState.AVAILABLE.value, 0)
        + counts.get(JobState.RUNNING.value, 0),
        running_jobs=counts.get(JobState.RUNNING.value, 0),
        stale_jobs_count=stale_result.scalar() or 0,
        dead_letter_count=counts.get(JobState.DEAD_LETTER.value, 0),
        oldest_due_age_seconds=(
            int((now - oldest_due).total_seconds()) if oldest_due else None
        ),
    )
