"""
Failure accounting and dead-letter policy.
"""

from datetime import datetime

from api.v1.infra.jobs.models import JobState, QueueName
from api.v1.infra.jobs.schemas import JobCommit, JobOutcome


def resolve_commit(
    failure_count: int,
    outcome: JobOutcome,
    now: datetime,
    failure_threshold: int,
) -> JobCommit:
    """
    Turn a handler outcome into the column values to write for its job.

    Success keeps ``failure_count`` and applies whatever the handler changed.
    Failure increments the count and leaves ``scheduled`` alone, so the job
    is due again on the next poll; once the incremented count reaches
    ``failure_threshold`` the job is moved to the dead-letter queue instead.
    Every branch releases the lock.
    """
    values = {
        "state": JobState.AVAILABLE.value,
        "lock_id": None,
        "last_heartbeat": now,
    }

    if outcome.success:
        if outcome.queue_name is not None:
            values["queue_name"] = outcome.queue_name
        if outcome.scheduled is not None:
            values["scheduled"] = outcome.scheduled
        if outcome.data is not None:
            values["data"] = outcome.data
        return JobCommit(values=values)

    new_count = failure_count + 1
    values["failure_count"] = new_count

    if new_count >= failure_threshold:
        values["state"] = JobState.DEAD_LETTER.value
        values["queue_name"] = QueueName.DEAD_LETTER.value
        return JobCommit(values=values, dead_lettered=True)

    return JobCommit(values=values)
