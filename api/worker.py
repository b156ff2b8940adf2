"""
Standalone polling worker: ``python -m api.worker``.

Runs the same cycle as ``POST /v1/jobs/run`` on a fixed interval, for
deployments without an external scheduler hitting the trigger.
"""

import asyncio
import signal

from api.config.logging import get_logger, setup_logging
from api.config.settings import settings
from api.infra.database import Database
from api.v1.core.registries import job_registry
from api.v1.infra.jobs.registry_init import register_job_handlers
from api.v1.infra.jobs.store import JobStore
from api.v1.infra.jobs.worker import JobWorker

logger = get_logger(__name__)


async def main() -> None:
    setup_logging()
    register_job_handlers(settings)

    database = Database(settings)
    worker = JobWorker(settings, JobStore(database.SessionLocal), job_registry)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.start()
    finally:
        await database.close()
        logger.info("Job worker exited")


if __name__ == "__main__":
    asyncio.run(main())
