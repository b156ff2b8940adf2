"""
Poll cycle: reclaim, claim, dispatch and commit.
"""

import asyncio
from collections import Counter
from datetime import UTC, datetime
from typing import Any, Callable
from uuid import UUID, uuid4

from api.config.logging import get_logger
from api.config.settings import Settings
from api.v1.core.registries import JobRegistry, job_registry
from api.v1.infra.jobs.models import Job
from api.v1.infra.jobs.retry import resolve_commit
from api.v1.infra.jobs.schemas import JobOutcome, JobResult, RunJobsResponse
from api.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class JobWorker:
    """
    Runs poll cycles against a ``JobStore``.

    One cycle claims a batch under a fresh lock token, runs every claimed
    job's handler concurrently and commits each outcome on its own. A
    handler exception only fails its own job. Store errors fail the whole
    cycle, once every job in the batch has finished.
    """

    def __init__(
        self,
        settings: Settings,
        store: JobStore,
        registry: JobRegistry = job_registry,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.store = store
        self.registry = registry
        self.clock = clock
        self.running = False
        self.skipped_queues: Counter[str] = Counter()

    async def run_cycle(self) -> RunJobsResponse:
        """Run one reclaim + claim→dispatch→commit cycle."""
        await self.store.reclaim_stale_jobs(
            self.settings.job_visibility_timeout_s, now=self.clock()
        )

        lock_id = uuid4()
        jobs = await self.store.claim_jobs(
            lock_id, self.settings.job_batch_size, now=self.clock()
        )
        if not jobs:
            return RunJobsResponse(results=[])

        # Every job's commit is attempted before a store error fails the cycle
        results = await asyncio.gather(
            *(self._process_job(job, lock_id) for job in jobs),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.error(
                "Poll cycle failed writing outcomes",
                lock_id=str(lock_id),
                failed_jobs=len(errors),
                claimed_jobs=len(jobs),
            )
            raise errors[0]
        return RunJobsResponse(results=[r for r in results if r is not None])

    async def _process_job(self, job: Job, lock_id: UUID) -> JobResult | None:
        job_logger = logger.bind(job_id=str(job.id), queue_name=job.queue_name)

        handler = self.registry.find(job.queue_name)
        if handler is None:
            # No outcome is committed; the reclaim sweep frees the row later
            self.skipped_queues[job.queue_name] += 1
            job_logger.warning(
                "No handler for queue, job left running",
                skipped_total=self.skipped_queues[job.queue_name],
            )
            return None

        job_logger.info("Processing job started")
        try:
            outcome = await handler.handle(job)
        except Exception as e:
            job_logger.exception("Job processing failed", error=str(e))
            outcome = JobOutcome.failed(str(e) or e.__class__.__name__)

        commit = resolve_commit(
            job.failure_count,
            outcome,
            self.clock(),
            self.settings.job_failure_threshold,
        )
        committed = await self.store.commit(job.id, lock_id, commit.values)

        if not committed:
            job_logger.warning("Outcome dropped, job no longer held by this claim")
        elif commit.dead_lettered:
            job_logger.error(
                "Job moved to dead letter",
                failure_count=commit.values["failure_count"],
                error=outcome.error,
            )
        elif outcome.success:
            job_logger.info("Processing job completed successfully")
        else:
            job_logger.info(
                "Job will be retried",
                failure_count=commit.values["failure_count"],
            )

        return JobResult(
            id=job.id,
            success=outcome.success,
            data=self._result_data(outcome, commit.values, committed),
        )

    @staticmethod
    def _result_data(
        outcome: JobOutcome, values: dict[str, Any], committed: bool
    ) -> dict[str, Any] | None:
        data: dict[str, Any] = {}
        if outcome.success:
            for key in ("queue_name", "scheduled", "data"):
                if key in values:
                    data[key] = values[key]
        else:
            data["failure_count"] = values["failure_count"]
            data["state"] = values["state"]
            data["error"] = outcome.error
        if not committed:
            data["committed"] = False
        if isinstance(data.get("scheduled"), datetime):
            data["scheduled"] = data["scheduled"].isoformat()
        return data or None

    async def start(self) -> None:
        """Poll until ``stop`` is called; a failed cycle is logged and retried."""
        if self.running:
            raise RuntimeError("Worker is already running")

        self.running = True
        logger.info(
            "Starting job worker",
            poll_interval_ms=self.settings.job_poll_interval_ms,
            batch_size=self.settings.job_batch_size,
        )
        try:
            while self.running:
                try:
                    response = await self.run_cycle()
                    if response.results:
                        logger.info("Poll cycle finished", jobs=len(response.results))
                except Exception:
                    logger.exception("Error in poll cycle")
                await asyncio.sleep(self.settings.job_poll_interval_ms / 1000)
        finally:
            self.running = False

    def stop(self) -> None:
        """Ask the polling loop to exit after the current cycle."""
        logger.info("Stopping job worker")
        self.running = False
