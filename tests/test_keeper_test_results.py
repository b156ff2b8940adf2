"""
Tests for the keeper test results intake.
"""

import json
from uuid import uuid4

from api.v1.infra.jobs.schemas import KeeperTestPayload
from api.v1.keeper_tests.messages import (
    RECOMMENDATION_OPTIONS,
    SUBMIT_ACTION_ID,
    encode_submit_value,
)
from api.v1.keeper_tests.models import KeeperTestFeedback
from api.v1.keeper_tests.schemas import SubmitValue, feedback_fields
from tests.factories import TEST_KEY, keeper_test_data

RESPONSE_URL = "https://hooks.slack.test/actions/T1/1/abc"


def radio(value):
    return {
        "type": "radio_buttons",
        "selected_option": {"value": value} if value is not None else None,
    }


def text(value):
    return {"type": "plain_text_input", "value": value}


def interaction(job_id, answers=None, action_id=SUBMIT_ACTION_ID, title="30 Day check-in"):
    values = answers if answers is not None else {
        "keeper-test-question-1": radio("Yes"),
        "keeper-test-question-1-text": text("Ships every week"),
        "keeper-test-question-2": radio("Driver"),
        "keeper-test-question-3": radio("Yes"),
        "keeper-test-question-4": radio("No"),
        "keeper-test-question-4-text": text("Scope creep"),
        "keeper-test-question-5": radio(RECOMMENDATION_OPTIONS[0]),
        "keeper-test-question-6": radio("Yes"),
    }
    submit_value = "|".join(
        ["ada@example.com", "emp-1", "Grace Hopper", "mgr-1", str(job_id), title]
    )
    return {
        "type": "block_actions",
        "actions": [{"action_id": action_id, "value": submit_value}],
        # One block per element, as Slack keys state by block id
        "state": {"values": {f"block-{i}": {k: v} for i, (k, v) in enumerate(values.items())}},
        "response_url": RESPONSE_URL,
        "container": {"message_ts": "1730000000.000100"},
    }


def post_results(client, body, token=TEST_KEY):
    return client.post(
        "/v1/keeper-tests/results",
        params={"token": token},
        data={"payload": json.dumps(body)},
    )


class TestAuth:
    def test_missing_token_is_rejected(self, client, fake_session):
        response = client.post(
            "/v1/keeper-tests/results",
            data={"payload": json.dumps(interaction(uuid4()))},
        )

        assert response.status_code == 401
        assert fake_session.added == []

    def test_wrong_token_is_rejected(self, client, fake_session):
        response = post_results(client, interaction(uuid4()), token="wrong")

        assert response.status_code == 401
        assert fake_session.added == []


class TestIntake:
    def test_invalid_json_is_rejected(self, client):
        response = client.post(
            "/v1/keeper-tests/results",
            params={"token": TEST_KEY},
            data={"payload": "{not json"},
        )

        assert response.status_code == 400

    def test_non_submit_action_is_acknowledged(self, client, fake_session, messaging):
        """Radio clicks arrive before the submit and store nothing."""
        body = interaction(uuid4(), action_id="keeper-test-question-1")

        response = post_results(client, body)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert fake_session.added == []
        assert messaging.responses == []

    def test_unanswered_questions_are_reported(self, client, fake_session, messaging):
        answers = {
            "keeper-test-question-1": radio("Yes"),
            "keeper-test-question-2": radio(None),
            "keeper-test-question-3": radio(None),
        }

        response = post_results(client, interaction(uuid4(), answers=answers))

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "invalidFields": ["keeper-test-question-2", "keeper-test-question-3"],
        }
        assert fake_session.added == []
        url, message = messaging.responses[0]
        assert url == RESPONSE_URL
        assert "keeper-test-question-2" in message["text"]
        assert message["thread_ts"] == "1730000000.000100"

    def test_submission_stores_feedback_and_completes_job(
        self, client, fake_session, messaging
    ):
        job_id = uuid4()

        response = post_results(client, interaction(job_id))

        assert response.status_code == 200
        assert response.json() == {"success": True}

        feedback = fake_session.added[0]
        assert isinstance(feedback, KeeperTestFeedback)
        assert feedback.job_id == job_id
        assert feedback.employee_id == "emp-1"
        assert feedback.would_you_try_to_keep_them is True
        assert feedback.driver_or_passenger == "DRIVER"
        assert feedback.optimistic_by_default is False
        assert feedback.areas_to_watch == "Scope creep"

        # complete_job update, then commit
        assert len(fake_session.statements) == 1
        assert fake_session.committed is True

        url, message = messaging.responses[0]
        assert url == RESPONSE_URL
        assert "ada@example.com" in message["text"]
        assert "Ships every week" in message["text"]

    def test_malformed_submit_value_is_rejected(self, client, fake_session):
        body = interaction(uuid4())
        body["actions"][0]["value"] = "only|three|fields"

        response = post_results(client, body)

        assert response.status_code == 400
        assert fake_session.added == []

    def test_pipe_in_title_and_manager_name_is_accepted(
        self, client, fake_session, messaging
    ):
        data = keeper_test_data(title="Keeper Test | Q4")
        data["manager"]["name"] = "Grace | Ops"
        job_id = uuid4()
        body = interaction(job_id)
        body["actions"][0]["value"] = encode_submit_value(
            KeeperTestPayload.model_validate(data), job_id
        )

        response = post_results(client, body)

        assert response.status_code == 200
        feedback = fake_session.added[0]
        assert feedback.job_id == job_id
        assert feedback.title == "Keeper Test | Q4"
        _, message = messaging.responses[0]
        assert "Grace | Ops" in message["text"]


class TestFeedbackFields:
    def test_maps_answers_to_columns(self):
        fields = feedback_fields(
            {
                "keeper-test-question-1": "No",
                "keeper-test-question-2": "Passenger",
                "keeper-test-question-3": "Yes",
                "keeper-test-question-4": "Yes",
                "keeper-test-question-5": RECOMMENDATION_OPTIONS[2],
                "keeper-test-question-6": "No",
            }
        )

        assert fields["would_you_try_to_keep_them"] is False
        assert fields["driver_or_passenger"] == "PASSENGER"
        assert fields["proactive_today"] is True
        assert fields["recommendation"] == "NOT_A_FIT_NEEDS_ESCALATING"
        assert fields["shared_with_team_member"] is False

    def test_recommendation_is_optional(self):
        assert feedback_fields({})["recommendation"] is None

    def test_submit_value_parse(self):
        job_id = uuid4()

        value = SubmitValue.parse(f"ada@example.com|emp-1|Grace Hopper|mgr-1|{job_id}|Keeper Test")

        assert value.job_id == job_id
        assert value.manager_name == "Grace Hopper"
        assert value.title == "Keeper Test"
