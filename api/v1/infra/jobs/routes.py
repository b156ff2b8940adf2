"""
Job queue API endpoints.

``POST /jobs/run`` is the trigger that runs one poll cycle; the rest are
operator endpoints for enqueueing and inspecting jobs.
"""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.config.settings import Settings, SettingsDep, get_settings
from api.infra.database import Database, get_database, get_session
from api.v1.core.exceptions import (
    JobStoreUnavailableError,
    NotFoundError,
    ValidationError,
    create_success_response,
)
from api.v1.core.registries import job_registry
from api.v1.core.security import SyncTokenDep
from api.v1.infra.jobs.models import JobState
from api.v1.infra.jobs.schemas import (
    JobEnqueueRequest,
    JobListFilters,
    JobListResponse,
    JobPayloadError,
    JobResponse,
)
from api.v1.infra.jobs.service import JobService
from api.v1.infra.jobs.store import JobStore
from api.v1.infra.jobs.worker import JobWorker

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[SyncTokenDep])


_job_worker: JobWorker | None = None


def get_job_worker(
    settings: Settings = Depends(get_settings),
    database: Database = Depends(get_database),
) -> JobWorker:
    """Get or create the poll-cycle worker shared by every trigger request."""
    global _job_worker
    if (
        _job_worker is None
        or _job_worker.store.session_factory is not database.SessionLocal
    ):
        _job_worker = JobWorker(settings, JobStore(database.SessionLocal), job_registry)
    return _job_worker


@router.post("/run")
async def run_scheduled_jobs(
    worker: JobWorker = Depends(get_job_worker),
) -> dict[str, Any]:
    """Claim due jobs, run their handlers and commit the outcomes."""
    try:
        response = await worker.run_cycle()
    except (SQLAlchemyError, OSError) as e:
        # Commits already written stay; the rest are reclaimed later
        raise JobStoreUnavailableError(details={"error": str(e)}) from e

    logger.info(
        "Scheduled jobs run",
        extra={
            "processed": len(response.results),
            "failed": sum(1 for r in response.results if not r.success),
        },
    )
    return response.model_dump(mode="json", exclude_none=True)


@router.post("", response_model=dict)
async def enqueue_job(
    job_request: JobEnqueueRequest,
    session: AsyncSession = Depends(get_session),
    settings: Settings = SettingsDep,
) -> dict[str, Any]:
    """Enqueue a new job."""
    job_service = JobService(settings)
    try:
        result = await job_service.enqueue_job(
            session,
            job_request.queue_name.value,
            job_request.data,
            scheduled=job_request.scheduled,
        )
    except JobPayloadError as e:
        raise ValidationError(str(e)) from e

    return create_success_response(data=result.model_dump(mode="json"))


@router.get("", response_model=dict)
async def list_jobs(
    state: list[JobState] | None = Query(default=None, description="Filter by state"),
    queue_name: str | None = Query(default=None, description="Filter by queue"),
    limit: int = Query(default=50, ge=1, le=1000, description="Maximum results"),
    offset: int = Query(default=0, ge=0, description="Results offset"),
    session: AsyncSession = Depends(get_session),
    settings: Settings = SettingsDep,
) -> dict[str, Any]:
    """List jobs with filtering and pagination."""
    filters = JobListFilters(
        state=state, queue_name=queue_name, limit=limit, offset=offset
    )
    jobs, total = await JobService(settings).list_jobs(session, filters)

    response_data = JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )
    return create_success_response(data=response_data.model_dump(mode="json"))


@router.get("/stats/overview", response_model=dict)
async def get_job_stats(
    session: AsyncSession = Depends(get_session),
    settings: Settings = SettingsDep,
) -> dict[str, Any]:
    """Get job statistics."""
    stats = await JobService(settings).get_job_stats(session)
    return create_success_response(data=stats.model_dump())


@router.get("/{job_id}", response_model=dict)
async def get_job(
    job_id: UUID,
    session: AsyncSession = Depends(get_session),
    settings: Settings = SettingsDep,
) -> dict[str, Any]:
    """Get a specific job by ID."""
    job = await JobService(settings).get_job_by_id(session, job_id)
    if not job:
        raise NotFoundError("Job not found", details={"job_id": str(job_id)})

    return create_success_response(
        data=JobResponse.model_validate(job).model_dump(mode="json")
    )
