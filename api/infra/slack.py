"""
Slack Web API client used by job handlers and the keeper test intake.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from api.config.settings import Settings

logger = logging.getLogger(__name__)


class MessagingError(Exception):
    """Raised when a messaging call fails or returns something unusable."""


@dataclass
class MessageContent:
    """Message body: fallback text plus optional Block Kit blocks."""

    text: str
    blocks: list[dict[str, Any]] | None = None


class MessagingClient(Protocol):
    """What job handlers need from the messaging platform."""

    async def lookup_user_by_email(self, email: str) -> str:
        """Return the platform user id for ``email``."""
        ...

    async def post_message(
        self, user_id: str, content: MessageContent, thread_id: str | None = None
    ) -> str:
        """Send ``content`` to ``user_id`` and return the message id."""
        ...


class SlackClient:
    """Async Slack Web API client.

    Slack reports most failures as HTTP 200 with ``{"ok": false}``; both
    that and non-2xx responses raise ``MessagingError``.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.slack_api_base_url.rstrip("/"),
            timeout=self.settings.slack_timeout_s,
            headers={"Authorization": f"Bearer {self.settings.slack_token}"},
            transport=self.transport,
        )

    async def _call(
        self,
        http_method: str,
        api_method: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(
                    http_method, f"/{api_method}", params=params, json=json
                )
        except httpx.HTTPError as e:
            raise MessagingError(f"Slack {api_method} request failed: {e}") from e

        if response.status_code >= 300:
            raise MessagingError(
                f"Slack {api_method} returned HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError:
            raise MessagingError(f"Slack {api_method} returned invalid JSON") from None

        if not isinstance(body, dict) or not body.get("ok"):
            error = body.get("error", "unknown_error") if isinstance(body, dict) else "unknown_error"
            raise MessagingError(f"Slack {api_method} failed: {error}")

        return body

    async def lookup_user_by_email(self, email: str) -> str:
        """Resolve a workspace user id from an email address."""
        body = await self._call("GET", "users.lookupByEmail", params={"email": email})
        try:
            return body["user"]["id"]
        except (KeyError, TypeError):
            raise MessagingError("Slack users.lookupByEmail returned no user id") from None

    async def post_message(
        self, user_id: str, content: MessageContent, thread_id: str | None = None
    ) -> str:
        """Post to the user's DM (or the override channel); returns the message ts."""
        payload: dict[str, Any] = {
            "channel": self.settings.slack_channel_override or user_id,
            "text": content.text,
        }
        if content.blocks:
            payload["blocks"] = content.blocks
        if thread_id:
            payload["thread_ts"] = thread_id

        body = await self._call("POST", "chat.postMessage", json=payload)
        ts = body.get("ts")
        if not ts:
            raise MessagingError("Slack chat.postMessage returned no ts")

        logger.info(
            "Slack message posted",
            extra={"channel": payload["channel"], "ts": ts, "threaded": bool(thread_id)},
        )
        return ts

    async def respond(self, response_url: str, payload: dict[str, Any]) -> None:
        """Post to an interaction ``response_url``."""
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.slack_timeout_s, transport=self.transport
            ) as client:
                response = await client.post(response_url, json=payload)
        except httpx.HTTPError as e:
            raise MessagingError(f"Slack response_url request failed: {e}") from e

        if response.status_code >= 300:
            raise MessagingError(
                f"Slack response_url returned HTTP {response.status_code}"
            )


_slack_client: SlackClient | None = None


def get_slack_client(settings: Settings) -> SlackClient:
    """Get or create the global Slack client."""
    global _slack_client
    if _slack_client is None:
        _slack_client = SlackClient(settings)
    return _slack_client
