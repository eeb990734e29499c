"""Flex carousel rendering for backend result records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from src.config import DEFAULT_DETAIL_BASE_URL, MAX_CAROUSEL_CARDS, BridgeSettings
from src.models import ResultRecord


@dataclass(frozen=True)
class CarouselOptions:
    max_cards: int = MAX_CAROUSEL_CARDS
    detail_base_url: str = DEFAULT_DETAIL_BASE_URL
    fallback_url: str = DEFAULT_DETAIL_BASE_URL
    currency: str = "THB"
    quantity_unit: str = "yards"
    button_label: str = "Details"
    price_label: str = "Price/yard"

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> CarouselOptions:
        return cls(
            max_cards=settings.max_cards,
            detail_base_url=settings.detail_base_url,
            fallback_url=settings.detail_fallback_url,
            currency=settings.price_currency,
            quantity_unit=settings.quantity_unit,
        )


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def format_price(value: float | int | None, currency: str) -> str:
    if value is None:
        return ""
    return f"{currency} {value:.2f}"


def format_quantity(value: float | int | None, unit: str) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value} {unit}"


def _text_row(label: str, value: str) -> dict[str, Any]:
    return {
        "type": "text",
        "text": f"{label} : {value}",
        "size": "sm",
        "wrap": True,
    }


class CarouselRenderer:
    """Maps result records to a LINE flex carousel document.

    Rendering is total: any record renders, missing fields show as empty.
    """

    def __init__(self, options: CarouselOptions | None = None) -> None:
        self._options = options or CarouselOptions()

    def action_url(self, record: ResultRecord) -> str:
        """Resolve the button URL: detail link, then identifier, then fallback."""
        if record.detail_url and _is_http_url(record.detail_url):
            return record.detail_url
        compact = "".join(ch for ch in record.identifier if ch.isalnum())
        if compact and _is_http_url(self._options.detail_base_url):
            return f"{self._options.detail_base_url.rstrip('/')}/{compact}"
        if _is_http_url(self._options.fallback_url):
            return self._options.fallback_url
        return DEFAULT_DETAIL_BASE_URL

    def render_bubble(self, record: ResultRecord) -> dict[str, Any]:
        opts = self._options
        rows = [
            _text_row("Fabric Code", record.code),
            _text_row("Color", record.color_name),
            _text_row("Material", ", ".join(record.material_tags)),
            _text_row(opts.price_label, format_price(record.price_per_unit, opts.currency)),
            _text_row("In stock", format_quantity(record.remaining_quantity, opts.quantity_unit)),
        ]
        bubble: dict[str, Any] = {
            "type": "bubble",
            "body": {
                "type": "box",
                "layout": "vertical",
                "spacing": "2px",
                "contents": rows,
            },
            "footer": {
                "type": "box",
                "layout": "vertical",
                "paddingAll": "0px",
                "contents": [
                    {
                        "type": "button",
                        "action": {
                            "type": "uri",
                            "label": opts.button_label,
                            "uri": self.action_url(record),
                        },
                    },
                ],
            },
        }
        if record.image_url and _is_http_url(record.image_url):
            bubble["hero"] = {
                "type": "image",
                "url": record.image_url,
                "size": "full",
                "aspectMode": "cover",
                "aspectRatio": "3:1",
            }
        return bubble

    def render(self, records: Sequence[ResultRecord]) -> dict[str, Any] | None:
        """Return a carousel for the first ``max_cards`` records, or None."""
        selected = list(records)[: self._options.max_cards]
        if not selected:
            return None
        return {
            "type": "carousel",
            "contents": [self.render_bubble(record) for record in selected],
        }
