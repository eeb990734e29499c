"""Shared Pydantic data models for line-flex-bridge."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class AuditEventType(str, Enum):
    SIGNATURE_FAILURE = "signature_failure"
    CONFIG_ERROR = "config_error"
    EVENT_IGNORED = "event_ignored"
    REPLY_SENT = "reply_sent"
    REPLY_FAILED = "reply_failed"
    BACKEND_FAILED = "backend_failed"


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Answer Models ---

_ID_KEYS = ("page_id", "id")
_URL_KEYS = ("url", "detail_url")
_PRICE_KEYS = ("price_per_yard", "price")
_MATERIAL_KEYS = ("material", "materials")
_QUANTITY_KEYS = ("stock", "remaining")
_IMAGE_KEYS = ("image", "image_url")


def _first(
    raw: Mapping[str, Any], keys: tuple[str, ...], convert: Callable[[Any], Any],
) -> Any:
    """Convert the first alias whose value survives ``convert`` non-empty."""
    for key in keys:
        value = convert(raw.get(key))
        if value is not None and value != "" and value != []:
            return value
    return convert(None)


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_number(value: Any) -> float | int | None:
    # bool is an int subclass but never a quantity
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _as_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str) and v]
    return []


class ResultRecord(BaseModel):
    """One catalog entry returned by the backend, rendered as one card."""

    model_config = ConfigDict(frozen=True)

    identifier: str = ""
    detail_url: str = ""
    code: str = ""
    price_per_unit: float | int | None = None
    material_tags: list[str] = Field(default_factory=list)
    color_name: str = ""
    remaining_quantity: float | int | None = None
    image_url: str = ""

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> ResultRecord:
        """Build a record from a loosely typed backend mapping.

        Wrong-typed or missing fields fall back to empty values.
        """
        return cls(
            identifier=_first(raw, _ID_KEYS, _as_str),
            detail_url=_first(raw, _URL_KEYS, _as_str),
            code=_as_str(raw.get("code")),
            price_per_unit=_first(raw, _PRICE_KEYS, _as_number),
            material_tags=_first(raw, _MATERIAL_KEYS, _as_tags),
            color_name=_as_str(raw.get("color")),
            remaining_quantity=_first(raw, _QUANTITY_KEYS, _as_number),
            image_url=_first(raw, _IMAGE_KEYS, _as_str),
        )


class ParsedAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    reply_text: str = ""
    intent: str | None = None
    results: list[ResultRecord] = Field(default_factory=list)


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    user_id: str | None = None
    action: str
    result: str  # "success" | "failure" | "ignored"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
