"""Webhook audit trail: append-only JSON Lines with a SHA-256 hash chain.

Each line carries ``prev_hash``, the SHA-256 of the previous line, so a
removed or edited entry breaks the chain. The first line has ``prev_hash``
null. Rotation starts a fresh chain in the new file.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
from dataclasses import dataclass
from pathlib import Path

from src.models import AuditEvent


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None


def _line_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


def validate_audit_chain(log_path: Path) -> ChainValidationResult:
    """Check that every line references the hash of the line before it."""
    text = log_path.read_text(encoding="utf-8").strip()
    if not text:
        return ChainValidationResult(valid=True)

    previous: str | None = None
    for number, line in enumerate(text.split("\n"), start=1):
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            return ChainValidationResult(valid=False, broken_at_line=number)
        expected = _line_hash(previous) if previous is not None else None
        if entry.get("prev_hash") != expected:
            return ChainValidationResult(valid=False, broken_at_line=number)
        previous = line
    return ChainValidationResult(valid=True)


class AuditLogger:
    """Writes AuditEvents for webhook deliveries, one JSON object per line."""

    def __init__(self, log_path: str) -> None:
        self.log_path = Path(log_path)
        self._last_line: str | None = None
        if self.log_path.exists():
            lines = self.log_path.read_text(encoding="utf-8").strip().split("\n")
            self._last_line = lines[-1] or None

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self.log_path.with_name(f".{self.log_path.name}.lock")

        with open(lock_path, "w") as lock:
            fcntl.flock(lock, fcntl.LOCK_EX)
            try:
                data = event.model_dump(mode="json")
                data["prev_hash"] = (
                    _line_hash(self._last_line) if self._last_line is not None else None
                )
                line = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lock, fcntl.LOCK_UN)

        self._last_line = line
