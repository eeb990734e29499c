"""Data models for the LINE webhook pipeline."""

from __future__ import annotations

from dataclasses import dataclass

ANONYMOUS_USER = "anon"


@dataclass
class InboundEvent:
    """The first event of a LINE webhook delivery."""

    reply_token: str
    source_user_id: str = ANONYMOUS_USER
    message_text: str = ""


@dataclass
class ReplyResult:
    """Outcome of one reply-transport call."""

    ok: bool
    status_code: int
    body: str = ""


@dataclass
class WebhookResponse:
    """Pipeline response to return to the messaging platform."""

    text: str
    status_code: int
