"""Shared test fixtures for line-flex-bridge."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from src.audit.logger import AuditLogger
from src.config import BridgeSettings
from src.models import AuditEvent, AuditEventType, ResultRecord, RiskLevel
from src.webhook.signature import compute_signature

CHANNEL_SECRET = "s3cr3t"
DIFY_URL = "https://dify.test/v1/chat-messages"
REPLY_URL = "https://line.test/v2/bot/message/reply"


@pytest.fixture
def settings() -> BridgeSettings:
    return make_settings()


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


class FakeHttp:
    """Stands in for httpx.AsyncClient; answers POSTs by URL."""

    def __init__(self) -> None:
        self.responses: dict[str, httpx.Response | Exception] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def respond(self, url: str, status_code: int = 200, **kwargs: Any) -> None:
        self.responses[url] = httpx.Response(
            status_code, request=httpx.Request("POST", url), **kwargs,
        )

    def fail(self, url: str, exc: Exception) -> None:
        self.responses[url] = exc

    def calls_to(self, url: str) -> list[dict[str, Any]]:
        return [kwargs for called, kwargs in self.calls if called == url]

    async def __aenter__(self) -> FakeHttp:
        return self

    async def __aexit__(self, *exc_info: object) -> bool:
        return False

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        self.calls.append((url, kwargs))
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_http():
    fake = FakeHttp()
    with patch("httpx.AsyncClient", lambda *args, **kwargs: fake):
        yield fake


# --- Factory functions for test data ---


def make_settings(**kwargs: Any) -> BridgeSettings:
    """Factory for fully configured BridgeSettings."""
    defaults: dict[str, Any] = {
        "channel_secret": CHANNEL_SECRET,
        "channel_access_token": "line-token",
        "dify_api_key": "dify-key",
        "dify_api_url": DIFY_URL,
        "reply_url": REPLY_URL,
    }
    defaults.update(kwargs)
    return BridgeSettings(**defaults)


def make_record(**kwargs: Any) -> ResultRecord:
    """Factory for ResultRecord with sensible defaults."""
    defaults: dict[str, Any] = {
        "identifier": "1a2b3c4d-0000-1111-2222-333344445555",
        "code": "PNA0814",
        "price_per_unit": 75,
        "material_tags": ["Cotton", "Polyester"],
        "color_name": "Stripe",
        "remaining_quantity": 120,
    }
    defaults.update(kwargs)
    return ResultRecord(**defaults)


def make_line_payload(
    text: str | None = "hello",
    reply_token: str | None = "reply-token-1",
    user_id: str | None = "U123",
) -> dict[str, Any]:
    event: dict[str, Any] = {"type": "message"}
    if reply_token is not None:
        event["replyToken"] = reply_token
    if user_id is not None:
        event["source"] = {"type": "user", "userId": user_id}
    if text is not None:
        event["message"] = {"type": "text", "id": "m1", "text": text}
    return {"destination": "Uxxx", "events": [event]}


def signed_request(payload: Any, secret: str = CHANNEL_SECRET) -> tuple[bytes, dict[str, str]]:
    """Serialize a payload and sign the exact bytes that will be sent."""
    body = json.dumps(payload).encode()
    headers = {
        "content-type": "application/json",
        "x-line-signature": compute_signature(secret, body),
    }
    return body, headers


def make_audit_event(**kwargs: Any) -> AuditEvent:
    """Factory for AuditEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.SIGNATURE_FAILURE,
        "action": "POST /webhook/line",
        "result": "failure",
        "risk_level": RiskLevel.HIGH,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)
