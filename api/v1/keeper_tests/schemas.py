"""
Parsing for Slack interactive-message posts from the keeper test form.
"""

from typing import Any
from urllib.parse import unquote
from uuid import UUID

from pydantic import BaseModel, Field

from api.v1.keeper_tests.messages import RECOMMENDATION_OPTIONS
from api.v1.keeper_tests.models import DriverOrPassenger, Recommendation


class SlackAction(BaseModel):
    action_id: str
    value: str | None = None


class SlackInteraction(BaseModel):
    """The subset of Slack's ``block_actions`` payload the intake reads."""

    actions: list[SlackAction] = Field(default_factory=list)
    state: dict[str, Any] = Field(default_factory=dict)
    response_url: str | None = None
    container: dict[str, Any] = Field(default_factory=dict)

    def elements(self) -> dict[str, dict[str, Any]]:
        """Form elements keyed by action id, across all blocks."""
        flat: dict[str, dict[str, Any]] = {}
        for block in self.state.get("values", {}).values():
            for action_id, element in block.items():
                flat[action_id] = element
        return flat

    def unanswered_questions(self) -> list[str]:
        """Radio questions the manager left blank."""
        return [
            action_id
            for action_id, element in self.elements().items()
            if element.get("type") == "radio_buttons"
            and element.get("selected_option") is None
        ]

    def answers(self) -> dict[str, str | None]:
        """Selected radio values and text input values, keyed by action id."""
        answers: dict[str, str | None] = {}
        for action_id, element in self.elements().items():
            if element.get("type") == "radio_buttons":
                selected = element.get("selected_option") or {}
                answers[action_id] = selected.get("value")
            else:
                answers[action_id] = element.get("value")
        return answers


class SubmitValue(BaseModel):
    """Fields packed into the submit button by ``encode_submit_value``."""

    employee_email: str
    employee_id: str
    manager_name: str
    manager_id: str
    job_id: UUID
    title: str

    @classmethod
    def parse(cls, raw: str) -> "SubmitValue":
        parts = raw.split("|")
        if len(parts) != 6:
            raise ValueError(f"Expected 6 submit fields, got {len(parts)}")
        keys = ("employee_email", "employee_id", "manager_name", "manager_id", "job_id", "title")
        return cls(**{key: unquote(part) for key, part in zip(keys, parts)})


def _yes(value: str | None) -> bool:
    return (value or "").lower() == "yes"


def feedback_fields(answers: dict[str, str | None]) -> dict[str, Any]:
    """Map form answers onto ``KeeperTestFeedback`` columns."""
    recommendation = None
    choice = answers.get("keeper-test-question-5")
    if choice is not None:
        recommendation = {
            RECOMMENDATION_OPTIONS[0]: Recommendation.STRONG_HIRE_ON_TRACK_TO_PASS_PROBATION,
            RECOMMENDATION_OPTIONS[1]: Recommendation.AVERAGE_HIRE_NEED_TO_SEE_IMPROVEMENTS,
        }.get(choice, Recommendation.NOT_A_FIT_NEEDS_ESCALATING).value

    return {
        "would_you_try_to_keep_them": _yes(answers.get("keeper-test-question-1")),
        "what_makes_them_valuable": answers.get("keeper-test-question-1-text"),
        "driver_or_passenger": (
            DriverOrPassenger.DRIVER
            if answers.get("keeper-test-question-2") == "Driver"
            else DriverOrPassenger.PASSENGER
        ).value,
        "proactive_today": _yes(answers.get("keeper-test-question-3")),
        "optimistic_by_default": _yes(answers.get("keeper-test-question-4")),
        "areas_to_watch": answers.get("keeper-test-question-4-text"),
        "recommendation": recommendation,
        "shared_with_team_member": _yes(answers.get("keeper-test-question-6")),
    }
