"""Environment configuration for the LINE webhook bridge."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_REPLY_URL = "https://api.line.me/v2/bot/message/reply"
DEFAULT_DETAIL_BASE_URL = "https://www.notion.so/"
MAX_CAROUSEL_CARDS = 10  # LINE rejects carousels with more bubbles


class ConfigurationError(Exception):
    """Raised when a required secret, credential or URL is not configured."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing {', '.join(missing)}")


@dataclass(frozen=True)
class BridgeSettings:
    channel_secret: str = ""
    channel_access_token: str = ""
    dify_api_key: str = ""
    dify_api_url: str = ""
    dify_mode: str = "chat"
    reply_url: str = DEFAULT_REPLY_URL
    max_cards: int = MAX_CAROUSEL_CARDS
    alt_text: str = "Search results"
    detail_base_url: str = DEFAULT_DETAIL_BASE_URL
    detail_fallback_url: str = DEFAULT_DETAIL_BASE_URL
    price_currency: str = "THB"
    quantity_unit: str = "yards"
    http_timeout: float = 30.0
    audit_log_path: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BridgeSettings:
        """Read settings from environment variables.

        Required values may be empty here; ``missing()`` reports them so the
        webhook can answer 500 per request instead of refusing to start.
        """
        env = os.environ if environ is None else environ
        max_cards = int(env.get("CAROUSEL_MAX_CARDS", str(MAX_CAROUSEL_CARDS)))
        detail_base = env.get("DETAIL_BASE_URL", DEFAULT_DETAIL_BASE_URL)
        mode = env.get("DIFY_MODE", "chat").strip().lower()
        if mode not in ("chat", "workflow"):
            raise ValueError(f"DIFY_MODE must be 'chat' or 'workflow', got {mode!r}")
        return cls(
            channel_secret=env.get("LINE_CHANNEL_SECRET", ""),
            channel_access_token=env.get("LINE_CHANNEL_ACCESS_TOKEN", ""),
            dify_api_key=env.get("DIFY_API_KEY", ""),
            dify_api_url=env.get("DIFY_API_URL") or env.get("DIFY_WORKFLOW_URL", ""),
            dify_mode=mode,
            reply_url=env.get("LINE_REPLY_URL", DEFAULT_REPLY_URL),
            max_cards=max(1, min(max_cards, MAX_CAROUSEL_CARDS)),
            alt_text=env.get("CAROUSEL_ALT_TEXT", "Search results"),
            detail_base_url=detail_base,
            detail_fallback_url=env.get("DETAIL_FALLBACK_URL", detail_base),
            price_currency=env.get("PRICE_CURRENCY", "THB"),
            quantity_unit=env.get("QUANTITY_UNIT", "yards"),
            http_timeout=float(env.get("HTTP_TIMEOUT_SECONDS", "30")),
            audit_log_path=env.get("AUDIT_LOG_PATH") or None,
        )

    def missing(self) -> list[str]:
        """Names of required environment variables that are unset."""
        required = (
            ("LINE_CHANNEL_SECRET", self.channel_secret),
            ("DIFY_API_URL", self.dify_api_url),
            ("DIFY_API_KEY", self.dify_api_key),
            ("LINE_CHANNEL_ACCESS_TOKEN", self.channel_access_token),
        )
        return [name for name, value in required if not value]

    def require(self) -> None:
        missing = self.missing()
        if missing:
            raise ConfigurationError(missing)
