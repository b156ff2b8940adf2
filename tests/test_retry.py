"""
Tests for failure accounting and the dead-letter policy.
"""

from datetime import UTC, datetime, timedelta

import pytest

from api.v1.infra.jobs.models import JobState, QueueName
from api.v1.infra.jobs.retry import resolve_commit
from api.v1.infra.jobs.schemas import JobOutcome

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)
THRESHOLD = 5


class TestSuccess:
    def test_success_keeps_failure_count(self):
        """A successful run never touches failure_count."""
        commit = resolve_commit(3, JobOutcome.succeeded(), NOW, THRESHOLD)

        assert "failure_count" not in commit.values
        assert commit.dead_lettered is False

    def test_success_releases_lock(self):
        commit = resolve_commit(0, JobOutcome.succeeded(), NOW, THRESHOLD)

        assert commit.values["state"] == JobState.AVAILABLE.value
        assert commit.values["lock_id"] is None
        assert commit.values["last_heartbeat"] == NOW

    def test_success_applies_handler_updates(self):
        """queue_name, scheduled and data come from the outcome when set."""
        later = NOW + timedelta(hours=24)
        outcome = JobOutcome.succeeded(
            queue_name=QueueName.RECEIVE_KEEPER_TEST_RESULTS.value,
            scheduled=later,
            data={"threadId": "123.456"},
        )

        commit = resolve_commit(0, outcome, NOW, THRESHOLD)

        assert commit.values["queue_name"] == QueueName.RECEIVE_KEEPER_TEST_RESULTS.value
        assert commit.values["scheduled"] == later
        assert commit.values["data"] == {"threadId": "123.456"}

    def test_success_without_updates_leaves_fields_alone(self):
        commit = resolve_commit(0, JobOutcome.succeeded(), NOW, THRESHOLD)

        assert set(commit.values) == {"state", "lock_id", "last_heartbeat"}


class TestFailure:
    def test_failure_increments_count(self):
        commit = resolve_commit(0, JobOutcome.failed("boom"), NOW, THRESHOLD)

        assert commit.values["failure_count"] == 1
        assert commit.values["state"] == JobState.AVAILABLE.value
        assert commit.values["lock_id"] is None

    def test_failure_does_not_reschedule(self):
        """A failed job stays due, so the next poll retries it."""
        commit = resolve_commit(1, JobOutcome.failed("boom"), NOW, THRESHOLD)

        assert "scheduled" not in commit.values
        assert "queue_name" not in commit.values
        assert "data" not in commit.values

    def test_fourth_failure_is_still_retried(self):
        commit = resolve_commit(3, JobOutcome.failed("boom"), NOW, THRESHOLD)

        assert commit.values["failure_count"] == 4
        assert commit.dead_lettered is False
        assert commit.values["state"] == JobState.AVAILABLE.value

    def test_fifth_failure_dead_letters(self):
        """Exactly the fifth failure moves the job out of circulation."""
        commit = resolve_commit(4, JobOutcome.failed("boom"), NOW, THRESHOLD)

        assert commit.values["failure_count"] == 5
        assert commit.dead_lettered is True
        assert commit.values["state"] == JobState.DEAD_LETTER.value
        assert commit.values["queue_name"] == QueueName.DEAD_LETTER.value
        assert commit.values["lock_id"] is None

    @pytest.mark.parametrize("threshold", [1, 3])
    def test_threshold_is_configurable(self, threshold):
        commit = resolve_commit(threshold - 1, JobOutcome.failed("boom"), NOW, threshold)

        assert commit.dead_lettered is True
