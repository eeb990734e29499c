"""Tests for the developer CLI."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from src.audit.logger import AuditLogger
from src.cli import cli
from src.webhook.signature import compute_signature
from tests.conftest import make_audit_event


def test_sign_prints_signature(tmp_path: Path) -> None:
    body = tmp_path / "body.json"
    body.write_bytes(b'{"events":[]}')
    runner = CliRunner()
    result = runner.invoke(cli, ["sign", "--secret", "s3cr3t", str(body)])
    assert result.exit_code == 0
    assert result.output.strip() == compute_signature("s3cr3t", b'{"events":[]}')


def test_sign_reads_secret_from_env(tmp_path: Path) -> None:
    body = tmp_path / "body.json"
    body.write_bytes(b"{}")
    runner = CliRunner()
    result = runner.invoke(cli, ["sign", str(body)], env={"LINE_CHANNEL_SECRET": "abc"})
    assert result.exit_code == 0
    assert result.output.strip() == compute_signature("abc", b"{}")


def test_parse_outputs_reply_and_carousel() -> None:
    runner = CliRunner()
    answer = '{"reply":"hi"}{"results":[{"code":"X1"},{"code":"X2"}]}'
    result = runner.invoke(cli, ["parse", "--max-cards", "1"], input=answer)
    assert result.exit_code == 0
    output = json.loads(result.output)
    assert output["parsed"]["reply_text"] == "hi"
    assert len(output["parsed"]["results"]) == 2
    assert len(output["carousel"]["contents"]) == 1


def test_parse_plain_text_has_no_carousel(tmp_path: Path) -> None:
    answer_file = tmp_path / "answer.txt"
    answer_file.write_text("nothing found")
    runner = CliRunner()
    result = runner.invoke(cli, ["parse", str(answer_file)])
    assert result.exit_code == 0
    output = json.loads(result.output)
    assert output["parsed"]["reply_text"] == "nothing found"
    assert output["carousel"] is None


def test_verify_audit_valid(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(str(log_file))
    logger.log(make_audit_event())
    logger.log(make_audit_event())
    runner = CliRunner()
    result = runner.invoke(cli, ["verify-audit", str(log_file)])
    assert result.exit_code == 0
    assert "valid" in result.output


def test_verify_audit_broken(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(str(log_file))
    logger.log(make_audit_event())
    logger.log(make_audit_event())
    lines = log_file.read_text().strip().split("\n")
    log_file.write_text(lines[1] + "\n")
    runner = CliRunner()
    result = runner.invoke(cli, ["verify-audit", str(log_file)])
    assert result.exit_code == 1
