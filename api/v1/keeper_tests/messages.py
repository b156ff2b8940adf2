"""
Slack messages for the keeper test workflow.
"""

from typing import Any
from uuid import UUID

from api.infra.slack import MessageContent
from api.v1.infra.jobs.schemas import KeeperTestPayload

SUBMIT_ACTION_ID = "submit_keeper_test"

# Check-in titles that also ask for a probation recommendation
PROBATION_CHECK_IN_TITLES = ("30 Day check-in", "60 Day check-in", "80 Day check-in")

RECOMMENDATION_OPTIONS = (
    "Strong Hire, on track to pass probation",
    "Average Hire, need to see improvements",
    "Not a fit, needs escalating",
)

QUESTIONS: dict[str, str] = {
    "keeper-test-question-1": (
        "If this team member was leaving for a similar role at another "
        "company, would you try to keep them?"
    ),
    "keeper-test-question-1-text": (
        "If yes, what is it specifically that makes them so valuable to your team?"
    ),
    "keeper-test-question-2": "Are they a driver or a passenger?",
    "keeper-test-question-3": "Do they get things done proactively, today?",
    "keeper-test-question-4": "Are they optimistic by default?",
    "keeper-test-question-4-text": "Areas to watch",
    "keeper-test-question-5": "Recommendation",
    "keeper-test-question-6": "Have you shared this feedback with your team member?",
}


def _plain(text: str) -> dict[str, Any]:
    return {"type": "plain_text", "text": text, "emoji": True}


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _radio(action_id: str, options: list[tuple[str, str]]) -> dict[str, Any]:
    block = _section(QUESTIONS[action_id])
    block["accessory"] = {
        "type": "radio_buttons",
        "options": [{"text": _plain(label), "value": value} for label, value in options],
        "action_id": action_id,
    }
    return block


def _text_input(action_id: str) -> dict[str, Any]:
    return {
        "type": "input",
        "element": {"type": "plain_text_input", "action_id": action_id},
        "label": _plain(QUESTIONS[action_id]),
    }


YES_NO = [("Yes", "Yes"), ("No", "No")]


def _escape_submit_field(field: str) -> str:
    # Percent-escaped, so ``urllib.parse.unquote`` reverses it
    return field.replace("%", "%25").replace("|", "%7C")


def encode_submit_value(payload: KeeperTestPayload, job_id: UUID) -> str:
    """
    Pack what the results intake needs into the submit button value.

    Six ``|``-separated fields; a ``|`` inside a name or title is escaped.
    """
    fields = [
        payload.employee.email,
        payload.employee.id,
        payload.manager.name,
        payload.manager.id,
        str(job_id),
        payload.title,
    ]
    return "|".join(_escape_submit_field(field) for field in fields)


def build_keeper_test_message(
    payload: KeeperTestPayload, job_id: UUID, handbook_url: str
) -> MessageContent:
    """The interactive keeper test form sent to a manager."""
    intro = (
        f"Hey! It's Keeper Test Time! Please submit feedback for "
        f"{payload.employee.email} ({payload.title}). If you get stuck or aren't "
        f"familiar, check out <{handbook_url}|this> section of the Handbook."
    )
    blocks: list[dict[str, Any]] = [
        _section(intro),
        _radio("keeper-test-question-1", YES_NO),
        _text_input("keeper-test-question-1-text"),
        _radio("keeper-test-question-2", [("Driver", "Driver"), ("Passenger", "Passenger")]),
        _radio("keeper-test-question-3", YES_NO),
        _radio("keeper-test-question-4", YES_NO),
        _text_input("keeper-test-question-4-text"),
    ]
    if payload.title in PROBATION_CHECK_IN_TITLES:
        blocks.append(
            _radio(
                "keeper-test-question-5",
                [(option, option) for option in RECOMMENDATION_OPTIONS],
            )
        )
    blocks.append(
        _radio(
            "keeper-test-question-6",
            [("Yes", "Yes"), ("No, but I will do right now!", "No")],
        )
    )
    blocks.append(
        {
            "type": "actions",
            "block_id": "submit_block",
            "elements": [
                {
                    "type": "button",
                    "text": _plain("Submit"),
                    "style": "primary",
                    "action_id": SUBMIT_ACTION_ID,
                    "value": encode_submit_value(payload, job_id),
                }
            ],
        }
    )
    return MessageContent(
        text=f"Keeper test for {payload.employee.name}", blocks=blocks
    )


def build_reminder_message(payload: KeeperTestPayload) -> MessageContent:
    return MessageContent(
        text=(
            f"Friendly reminder: the {payload.title} keeper test for "
            f"{payload.employee.name} ({payload.employee.email}) is still waiting "
            "for your feedback. Please fill out the form above."
        )
    )


def build_feedback_summary(
    title: str, manager_name: str, answers: dict[str, str | None]
) -> str:
    """Markdown summary echoed back to the manager after a submission."""
    lines = [f"### {title} feedback from {manager_name}:"]
    for action_id, question in QUESTIONS.items():
        if action_id == "keeper-test-question-5" and title not in PROBATION_CHECK_IN_TITLES:
            continue
        lines.append(f"- **{question}** {answers.get(action_id) or ''}".rstrip())
    return "\n".join(lines)
