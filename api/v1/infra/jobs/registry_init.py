"""
Registers the job handlers with the global job registry.
"""

import logging

from api.config.settings import Settings
from api.infra.slack import MessagingClient, get_slack_client
from api.v1.core.registries import JobRegistry, job_registry
from api.v1.infra.jobs.handlers import KeeperTestReminderHandler, SendKeeperTestHandler
from api.v1.infra.jobs.models import QueueName

logger = logging.getLogger(__name__)


def register_job_handlers(
    settings: Settings,
    messaging: MessagingClient | None = None,
    registry: JobRegistry = job_registry,
) -> None:
    """Register one handler per live queue name.

    ``dead_letter`` deliberately gets no handler.
    """
    messaging = messaging or get_slack_client(settings)

    registry.register(
        QueueName.SEND_KEEPER_TEST.value, SendKeeperTestHandler(settings, messaging)
    )
    registry.register(
        QueueName.RECEIVE_KEEPER_TEST_RESULTS.value,
        KeeperTestReminderHandler(settings, messaging),
    )

    logger.info(
        "Job handlers registered", extra={"registered_handlers": registry.list()}
    )
