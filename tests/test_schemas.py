"""
Tests for queue payload parsing.
"""

import pytest

from api.v1.infra.jobs.models import QueueName
from api.v1.infra.jobs.schemas import (
    JobEnqueueRequest,
    JobPayloadError,
    KeeperTestPayload,
    KeeperTestReminderPayload,
    dump_payload,
    parse_job_data,
)
from tests.factories import keeper_test_data


def test_parse_send_payload():
    payload = parse_job_data(QueueName.SEND_KEEPER_TEST.value, keeper_test_data())

    assert isinstance(payload, KeeperTestPayload)
    assert payload.title == "30 Day check-in"
    assert payload.manager.email == "grace@example.com"


def test_parse_reminder_payload_reads_thread_id():
    payload = parse_job_data(
        QueueName.RECEIVE_KEEPER_TEST_RESULTS.value, keeper_test_data(thread_id="111.222")
    )

    assert isinstance(payload, KeeperTestReminderPayload)
    assert payload.thread_id == "111.222"


def test_reminder_payload_requires_thread_id():
    with pytest.raises(JobPayloadError, match="threadId"):
        parse_job_data(QueueName.RECEIVE_KEEPER_TEST_RESULTS.value, keeper_test_data())


def test_reminder_payload_rejects_empty_thread_id():
    with pytest.raises(JobPayloadError):
        parse_job_data(
            QueueName.RECEIVE_KEEPER_TEST_RESULTS.value, keeper_test_data(thread_id="")
        )


def test_missing_manager_is_rejected():
    data = keeper_test_data()
    del data["manager"]

    with pytest.raises(JobPayloadError, match="manager"):
        parse_job_data(QueueName.SEND_KEEPER_TEST.value, data)


def test_dead_letter_queue_has_no_payload_schema():
    with pytest.raises(JobPayloadError, match="No payload schema"):
        parse_job_data(QueueName.DEAD_LETTER.value, keeper_test_data())


def test_unknown_queue_is_rejected():
    with pytest.raises(JobPayloadError):
        parse_job_data("send_birthday_card", {})


def test_none_data_is_treated_as_empty():
    with pytest.raises(JobPayloadError):
        parse_job_data(QueueName.SEND_KEEPER_TEST.value, None)


def test_dump_uses_wire_names():
    """The stored payload carries threadId, not the Python attribute name."""
    payload = KeeperTestReminderPayload(**keeper_test_data(), thread_id="111.222")

    dumped = dump_payload(payload)

    assert dumped["threadId"] == "111.222"
    assert "thread_id" not in dumped
    assert dumped["employee"]["name"] == "Ada Lovelace"


def test_enqueue_request_rejects_unknown_queue():
    with pytest.raises(ValueError):
        JobEnqueueRequest(queue_name="nope", data={})
