"""
Keeper test results intake.

Slack posts interactive-form events here (form field ``payload``, JSON).
A completed submission is stored as feedback and retires the reminder job.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from api.config.logging import get_logger
from api.config.settings import Settings, get_settings
from api.infra.database import get_session
from api.infra.slack import MessagingError, SlackClient, get_slack_client
from api.v1.core.security import QueryTokenDep
from api.v1.infra.jobs.service import JobService
from api.v1.keeper_tests.messages import SUBMIT_ACTION_ID, build_feedback_summary
from api.v1.keeper_tests.models import KeeperTestFeedback
from api.v1.keeper_tests.schemas import SlackInteraction, SubmitValue, feedback_fields

logger = get_logger(__name__)
router = APIRouter(prefix="/keeper-tests", tags=["keeper-tests"])


def get_slack(settings: Settings = Depends(get_settings)) -> SlackClient:
    return get_slack_client(settings)


async def _respond(slack: SlackClient, response_url: str | None, body: dict[str, Any]) -> None:
    if not response_url:
        return
    try:
        await slack.respond(response_url, body)
    except MessagingError as e:
        logger.warning("Slack response failed", error=str(e))


@router.post("/results", dependencies=[QueryTokenDep])
async def receive_keeper_test_results(
    payload: str = Form(...),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    slack: SlackClient = Depends(get_slack),
) -> Any:
    """Handle a keeper test form interaction."""
    try:
        interaction = SlackInteraction.model_validate(json.loads(payload))
    except (ValueError, PydanticValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON payload: {e}") from e

    submit = next(
        (a for a in interaction.actions if a.action_id == SUBMIT_ACTION_ID), None
    )
    if submit is None:
        # Radio clicks and text edits also arrive here; nothing to store yet
        return {"success": True}

    try:
        value = SubmitValue.parse(submit.value or "")
    except (ValueError, PydanticValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid submit value: {e}") from e

    invalid_fields = interaction.unanswered_questions()
    if invalid_fields:
        await _respond(
            slack,
            interaction.response_url,
            {
                "thread_ts": interaction.container.get("message_ts"),
                "text": "Please complete all required fields: " + ", ".join(invalid_fields),
                "response_type": "in_channel",
                "replace_original": False,
            },
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "invalidFields": invalid_fields},
        )

    answers = interaction.answers()
    session.add(
        KeeperTestFeedback(
            job_id=value.job_id,
            employee_id=value.employee_id,
            manager_id=value.manager_id,
            title=value.title,
            **feedback_fields(answers),
        )
    )
    completed = await JobService(settings).complete_job(session, value.job_id)
    await session.commit()

    logger.info(
        "Keeper test feedback stored",
        job_id=str(value.job_id),
        employee_id=value.employee_id,
        reminder_job_completed=completed,
    )

    summary = build_feedback_summary(value.title, value.manager_name, answers)
    await _respond(
        slack,
        interaction.response_url,
        {
            "text": (
                f"Successfully submitted keeper test feedback for "
                f"{value.employee_email}\n\nSummary:\n\n{summary}"
            )
        },
    )
    return {"success": True}
