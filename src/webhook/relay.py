"""LINE reply pipeline.

Orchestrates one inbound event through the backend and back to LINE using
direct function calls.

Pipeline stages:
1. Ask the chat backend
2. Parse the answer (reply text + result records)
3. Render the result records as a flex carousel
4. Assemble the outbound messages
5. Deliver them through the reply transport
6. Audit log
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.answer.parser import parse_answer
from src.backend.dify import BackendError
from src.models import AuditEvent, AuditEventType, ParsedAnswer, RiskLevel
from src.webhook.models import InboundEvent, WebhookResponse

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.backend.dify import DifyClient
    from src.render.carousel import CarouselRenderer
    from src.webhook.line import LineReplyClient

logger = logging.getLogger(__name__)


def assemble_messages(
    parsed: ParsedAnswer,
    carousel: dict[str, Any] | None,
    alt_text: str,
) -> list[dict[str, Any]]:
    """Text message first, then the flex carousel when one was rendered."""
    messages: list[dict[str, Any]] = [{"type": "text", "text": parsed.reply_text}]
    if carousel and carousel.get("contents"):
        messages.append({"type": "flex", "altText": alt_text, "contents": carousel})
    return messages


class LineReplyPipeline:
    """Answers one LINE event with backend text and a result carousel."""

    def __init__(
        self,
        backend: DifyClient,
        renderer: CarouselRenderer,
        reply_client: LineReplyClient,
        alt_text: str = "Search results",
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._backend = backend
        self._renderer = renderer
        self._reply_client = reply_client
        self._alt_text = alt_text
        self._audit = audit_logger

    async def relay(self, event: InboundEvent) -> WebhookResponse:
        """Run the full reply pipeline for one event."""

        # Stage 1: Ask the backend
        try:
            answer = await self._backend.ask(event.message_text, event.source_user_id)
        except BackendError as exc:
            logger.error("Backend call failed: %s", exc)
            self._log(
                AuditEventType.BACKEND_FAILED, event, "failure", RiskLevel.MEDIUM,
                {"error": str(exc), "backend_status": exc.status_code},
            )
            return WebhookResponse(text="Backend unavailable", status_code=502)

        # Stages 2-4: Parse, render, assemble
        parsed = parse_answer(answer)
        carousel = self._renderer.render(parsed.results)
        messages = assemble_messages(parsed, carousel, self._alt_text)

        # Stage 5: Deliver
        result = await self._reply_client.send_reply(event.reply_token, messages)

        # Stage 6: Audit log
        details: dict[str, object] = {
            "messages": len(messages),
            "results": len(parsed.results),
            "intent": parsed.intent,
            "transport_status": result.status_code,
        }
        if not result.ok:
            details["transport_body"] = result.body
            self._log(
                AuditEventType.REPLY_FAILED, event, "failure", RiskLevel.MEDIUM, details,
            )
            return WebhookResponse(text=result.body, status_code=502)

        self._log(AuditEventType.REPLY_SENT, event, "success", RiskLevel.INFO, details)
        return WebhookResponse(text="OK", status_code=200)

    def _log(
        self,
        event_type: AuditEventType,
        event: InboundEvent,
        result: str,
        risk_level: RiskLevel,
        details: dict[str, object],
    ) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=event_type,
                user_id=event.source_user_id,
                action="line_reply",
                result=result,
                risk_level=risk_level,
                details=details,
            ))
