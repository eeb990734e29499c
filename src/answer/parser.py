"""Backend answer parser.

The backend answer has no fixed shape. It may be missing, a plain string, a
string holding one JSON object, a string holding several JSON objects glued
together, or an already decoded object. Parsing never fails: whatever cannot
be understood degrades to an empty reply and no results.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from src.models import ParsedAnswer, ResultRecord

logger = logging.getLogger(__name__)

META_KEYS = ("intent", "reply", "clarifying_question")


def split_json_blocks(text: str) -> list[str]:
    """Split a string into its top-level ``{...}`` substrings.

    Tracks brace depth and the start index of the current block. Braces
    inside JSON string literals do not change the depth. Text outside any
    block is dropped; an unterminated trailing block is dropped too.
    """
    blocks: list[str] = []
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                blocks.append(text[start:i + 1])
    return blocks


def _decode_blocks(blocks: list[str]) -> list[dict[str, Any]]:
    decoded: list[dict[str, Any]] = []
    for block in blocks:
        try:
            value = json.loads(block)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed answer block: %.80s", block)
            continue
        if isinstance(value, dict):
            decoded.append(value)
    return decoded


def _text_field(meta: dict[str, Any], key: str) -> str:
    value = meta.get(key)
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _records(raw_results: list[Any]) -> list[ResultRecord]:
    return [ResultRecord.from_raw(item) for item in raw_results if isinstance(item, dict)]


def _build(
    meta: dict[str, Any] | None,
    raw_results: list[Any] | None,
    raw_text: str = "",
) -> ParsedAnswer:
    reply = ""
    intent = None
    if meta is not None:
        reply = _text_field(meta, "reply") or _text_field(meta, "clarifying_question")
        intent = _text_field(meta, "intent") or None
    return ParsedAnswer(
        reply_text=reply or raw_text,
        intent=intent,
        results=_records(raw_results or []),
    )


def parse_answer(answer: Any) -> ParsedAnswer:
    """Normalize a backend answer into reply text plus result records.

    For string answers, every decodable block is inspected in order: the last
    block with a list-valued ``results`` supplies the results, the last block
    carrying a meta key supplies the reply. If nothing qualified as meta and
    there was exactly one block, that block is used as meta anyway. A string
    with no decodable block is taken as the literal reply.
    """
    if answer is None:
        return ParsedAnswer()

    if isinstance(answer, dict):
        results = answer.get("results")
        return _build(answer, results if isinstance(results, list) else None)

    if not isinstance(answer, str):
        return ParsedAnswer()

    blocks = _decode_blocks(split_json_blocks(answer))
    if not blocks:
        return ParsedAnswer(reply_text=answer)

    meta: dict[str, Any] | None = None
    raw_results: list[Any] | None = None
    for block in blocks:
        if isinstance(block.get("results"), list):
            raw_results = block["results"]
        if any(key in block for key in META_KEYS):
            meta = block

    if meta is None and len(blocks) == 1:
        meta = blocks[0]

    return _build(meta, raw_results)
