"""FastAPI application exposing the LINE webhook."""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from src.audit.logger import AuditLogger
from src.backend.dify import DifyClient
from src.config import BridgeSettings, ConfigurationError
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.render.carousel import CarouselOptions, CarouselRenderer
from src.webhook.line import LineReplyClient, extract_event
from src.webhook.relay import LineReplyPipeline
from src.webhook.signature import LineSignatureVerifier

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook/line"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = BridgeSettings.from_env()
    audit_logger = (
        AuditLogger(settings.audit_log_path) if settings.audit_log_path else None
    )
    return create_app(settings, audit_logger)


def build_pipeline(
    settings: BridgeSettings, audit_logger: AuditLogger | None = None,
) -> LineReplyPipeline:
    return LineReplyPipeline(
        backend=DifyClient(
            settings.dify_api_url,
            settings.dify_api_key,
            mode=settings.dify_mode,
            timeout=settings.http_timeout,
        ),
        renderer=CarouselRenderer(CarouselOptions.from_settings(settings)),
        reply_client=LineReplyClient(
            settings.channel_access_token,
            reply_url=settings.reply_url,
            timeout=settings.http_timeout,
        ),
        alt_text=settings.alt_text,
        audit_logger=audit_logger,
    )


def create_app(
    settings: BridgeSettings,
    audit_logger: AuditLogger | None = None,
) -> FastAPI:
    """Create the webhook app. Missing configuration surfaces per request as 500."""
    app = FastAPI(docs_url=None, redoc_url=None)
    pipeline = build_pipeline(settings, audit_logger)

    def _audit(
        event_type: AuditEventType,
        request: Request,
        result: str,
        risk_level: RiskLevel,
        details: dict[str, object] | None = None,
    ) -> None:
        if audit_logger:
            audit_logger.log(AuditEvent(
                event_type=event_type,
                source_ip=request.client.host if request.client else None,
                action=f"{request.method} {request.url.path}",
                result=result,
                risk_level=risk_level,
                details=details,
            ))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route(WEBHOOK_PATH, methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
    async def line_webhook(request: Request) -> PlainTextResponse:
        if request.method != "POST":
            return PlainTextResponse("Method Not Allowed", status_code=405)

        try:
            settings.require()

            # Signature is computed over the bytes as received
            body = await request.body()
            verifier = LineSignatureVerifier(settings.channel_secret)
            if not verifier.verify(request.headers, body):
                _audit(AuditEventType.SIGNATURE_FAILURE, request, "failure", RiskLevel.HIGH)
                return PlainTextResponse("invalid signature", status_code=401)

            try:
                payload = json.loads(body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                return PlainTextResponse("invalid payload", status_code=400)

            event = extract_event(payload)
            if event is None:
                return PlainTextResponse("no event", status_code=200)
            if not event.message_text.strip():
                _audit(
                    AuditEventType.EVENT_IGNORED, request, "ignored", RiskLevel.INFO,
                    {"reason": "empty_text"},
                )
                return PlainTextResponse("no text", status_code=200)

            response = await pipeline.relay(event)
            return PlainTextResponse(response.text, status_code=response.status_code)
        except ConfigurationError as exc:
            logger.error("Webhook misconfigured: %s", exc)
            _audit(
                AuditEventType.CONFIG_ERROR, request, "failure", RiskLevel.HIGH,
                {"missing": exc.missing},
            )
            return PlainTextResponse(str(exc), status_code=500)
        except Exception:
            logger.exception("Webhook crash")
            return PlainTextResponse("internal error", status_code=500)

    return app
