"""
Tests for the Slack Web API client, against a mocked transport.
"""

import json

import httpx
import pytest

from api.infra.slack import MessageContent, MessagingError, SlackClient


def make_client(test_settings, handler, **overrides):
    settings = test_settings.model_copy(update=overrides) if overrides else test_settings
    return SlackClient(settings, transport=httpx.MockTransport(handler))


class TestLookupUserByEmail:
    async def test_returns_user_id(self, test_settings):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "user": {"id": "U999"}})

        client = make_client(test_settings, handler)

        assert await client.lookup_user_by_email("grace@example.com") == "U999"
        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/users.lookupByEmail"
        assert request.url.params["email"] == "grace@example.com"
        assert request.headers["Authorization"] == "Bearer xoxb-test"

    async def test_not_ok_raises(self, test_settings):
        def handler(request):
            return httpx.Response(200, json={"ok": False, "error": "users_not_found"})

        client = make_client(test_settings, handler)

        with pytest.raises(MessagingError, match="users_not_found"):
            await client.lookup_user_by_email("nobody@example.com")

    async def test_http_error_status_raises(self, test_settings):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        client = make_client(test_settings, handler)

        with pytest.raises(MessagingError, match="HTTP 503"):
            await client.lookup_user_by_email("grace@example.com")

    async def test_transport_error_raises(self, test_settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(test_settings, handler)

        with pytest.raises(MessagingError, match="request failed"):
            await client.lookup_user_by_email("grace@example.com")

    async def test_missing_user_raises(self, test_settings):
        def handler(request):
            return httpx.Response(200, json={"ok": True})

        client = make_client(test_settings, handler)

        with pytest.raises(MessagingError, match="no user id"):
            await client.lookup_user_by_email("grace@example.com")

    async def test_invalid_json_raises(self, test_settings):
        def handler(request):
            return httpx.Response(200, text="<html>")

        client = make_client(test_settings, handler)

        with pytest.raises(MessagingError, match="invalid JSON"):
            await client.lookup_user_by_email("grace@example.com")


class TestPostMessage:
    async def test_posts_to_user_and_returns_ts(self, test_settings):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True, "ts": "1730000000.000100"})

        client = make_client(test_settings, handler)
        content = MessageContent(text="hello", blocks=[{"type": "divider"}])

        ts = await client.post_message("U123", content)

        assert ts == "1730000000.000100"
        assert bodies[0]["channel"] == "U123"
        assert bodies[0]["text"] == "hello"
        assert bodies[0]["blocks"] == [{"type": "divider"}]
        assert "thread_ts" not in bodies[0]

    async def test_thread_reply_sets_thread_ts(self, test_settings):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True, "ts": "2.0"})

        client = make_client(test_settings, handler)

        await client.post_message("U123", MessageContent(text="reminder"), thread_id="1.0")

        assert bodies[0]["thread_ts"] == "1.0"
        assert "blocks" not in bodies[0]

    async def test_channel_override(self, test_settings):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True, "ts": "2.0"})

        client = make_client(test_settings, handler, slack_channel_override="C-TEST")

        await client.post_message("U123", MessageContent(text="hello"))

        assert bodies[0]["channel"] == "C-TEST"

    async def test_missing_ts_raises(self, test_settings):
        def handler(request):
            return httpx.Response(200, json={"ok": True})

        client = make_client(test_settings, handler)

        with pytest.raises(MessagingError, match="no ts"):
            await client.post_message("U123", MessageContent(text="hello"))


class TestRespond:
    async def test_posts_to_response_url(self, test_settings):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text="ok")

        client = make_client(test_settings, handler)

        await client.respond("https://hooks.slack.test/actions/1", {"text": "done"})

        assert str(requests[0].url) == "https://hooks.slack.test/actions/1"
        assert json.loads(requests[0].content) == {"text": "done"}

    async def test_error_status_raises(self, test_settings):
        def handler(request):
            return httpx.Response(404)

        client = make_client(test_settings, handler)

        with pytest.raises(MessagingError):
            await client.respond("https://hooks.slack.test/actions/1", {"text": "done"})
