"""LINE Messaging API relay.

Handles LINE webhook deliveries: event extraction and reply delivery through
the reply endpoint. Replies are sent once; LINE owns redelivery.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.config import DEFAULT_REPLY_URL
from src.webhook.models import ANONYMOUS_USER, InboundEvent, ReplyResult

logger = logging.getLogger(__name__)


def extract_event(payload: Any) -> InboundEvent | None:
    """Extract the first event of a webhook payload.

    Returns None when there is no event or the event carries no reply token
    (follow/unfollow, delivery receipts and similar need no answer).
    """
    if not isinstance(payload, dict):
        return None
    events = payload.get("events")
    if not isinstance(events, list) or not events:
        return None
    event = events[0]
    if not isinstance(event, dict):
        return None

    reply_token = event.get("replyToken")
    if not isinstance(reply_token, str) or not reply_token:
        return None

    source = event.get("source") if isinstance(event.get("source"), dict) else {}
    message = event.get("message") if isinstance(event.get("message"), dict) else {}
    user_id = source.get("userId")
    text = message.get("text")
    return InboundEvent(
        reply_token=reply_token,
        source_user_id=user_id if isinstance(user_id, str) and user_id else ANONYMOUS_USER,
        message_text=text if isinstance(text, str) else "",
    )


class LineReplyClient:
    """Sends reply messages through the LINE Messaging API."""

    def __init__(
        self,
        access_token: str,
        reply_url: str = DEFAULT_REPLY_URL,
        timeout: float = 30.0,
    ) -> None:
        self._access_token = access_token
        self._reply_url = reply_url
        self._timeout = timeout

    async def send_reply(
        self, reply_token: str, messages: list[dict[str, Any]],
    ) -> ReplyResult:
        """Submit all messages in one reply call.

        TLS certificate verification enabled. Network failures are reported
        as a failed ReplyResult with status 502.
        """
        payload = {"replyToken": reply_token, "messages": messages}
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.post(
                    self._reply_url, json=payload, headers=headers,
                    timeout=self._timeout,
                )
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.error("LINE reply transport unavailable: %s", exc)
            return ReplyResult(ok=False, status_code=502, body="Reply transport unavailable")

        ok = 200 <= resp.status_code < 300
        if not ok:
            logger.error("LINE error: %s %s", resp.status_code, resp.text)
        return ReplyResult(ok=ok, status_code=resp.status_code, body=resp.text)
