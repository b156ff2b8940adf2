"""
Keeper test job handlers.

``send_keeper_test`` posts the form and turns the job into a
``receive_keeper_test_results`` job carrying the message thread id.
``receive_keeper_test_results`` nudges the manager in that thread and
reschedules itself until the feedback arrives.
"""

from datetime import UTC, datetime, timedelta
from typing import Callable

from api.config.logging import get_logger
from api.config.settings import Settings
from api.infra.slack import MessagingClient
from api.v1.infra.jobs.models import Job, QueueName
from api.v1.infra.jobs.schemas import (
    JobOutcome,
    KeeperTestReminderPayload,
    dump_payload,
    parse_job_data,
)
from api.v1.keeper_tests.messages import (
    build_keeper_test_message,
    build_reminder_message,
)

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SendKeeperTestHandler:
    """
    Job handler for the initial keeper test message.

    Payload expected:
    {
        "title": "30 Day check-in",
        "employee": {"id": "...", "email": "...", "name": "..."},
        "manager": {"id": "...", "email": "...", "name": "..."}
    }
    """

    def __init__(
        self,
        settings: Settings,
        messaging: MessagingClient,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.messaging = messaging
        self.clock = clock

    async def handle(self, job: Job) -> JobOutcome:
        payload = parse_job_data(QueueName.SEND_KEEPER_TEST.value, job.data)

        user_id = await self.messaging.lookup_user_by_email(payload.manager.email)
        message = build_keeper_test_message(
            payload, job.id, self.settings.keeper_test_handbook_url
        )
        thread_id = await self.messaging.post_message(user_id, message)

        logger.info(
            "Keeper test sent",
            job_id=str(job.id),
            employee_id=payload.employee.id,
            manager_id=payload.manager.id,
            thread_id=thread_id,
        )

        follow_up = KeeperTestReminderPayload(
            **payload.model_dump(), thread_id=thread_id
        )
        return JobOutcome.succeeded(
            queue_name=QueueName.RECEIVE_KEEPER_TEST_RESULTS.value,
            scheduled=self.clock()
            + timedelta(hours=self.settings.keeper_test_followup_hours),
            data=dump_payload(follow_up),
        )


class KeeperTestReminderHandler:
    """Job handler that re-pings a manager in the keeper test thread."""

    def __init__(
        self,
        settings: Settings,
        messaging: MessagingClient,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.messaging = messaging
        self.clock = clock

    async def handle(self, job: Job) -> JobOutcome:
        # A missing threadId fails here, before any network call
        payload = parse_job_data(QueueName.RECEIVE_KEEPER_TEST_RESULTS.value, job.data)

        user_id = await self.messaging.lookup_user_by_email(payload.manager.email)
        await self.messaging.post_message(
            user_id, build_reminder_message(payload), thread_id=payload.thread_id
        )

        return JobOutcome.succeeded(
            scheduled=self.clock()
            + timedelta(hours=self.settings.keeper_test_reminder_hours)
        )
