"""Click CLI for exercising the bridge offline."""

from __future__ import annotations

import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import TextIO

import click

from src.answer.parser import parse_answer
from src.audit.logger import validate_audit_chain
from src.config import BridgeSettings
from src.render.carousel import CarouselOptions, CarouselRenderer
from src.webhook.signature import compute_signature


@click.group()
def cli() -> None:
    """LINE flex bridge developer tools."""


@cli.command()
@click.option("--secret", envvar="LINE_CHANNEL_SECRET", required=True,
              help="Channel secret (defaults to LINE_CHANNEL_SECRET).")
@click.argument("body_file", type=click.Path(exists=True, dir_okay=False))
def sign(secret: str, body_file: str) -> None:
    """Print the x-line-signature value for a request body file."""
    click.echo(compute_signature(secret, Path(body_file).read_bytes()))


@cli.command()
@click.argument("answer_file", type=click.File("r"), default="-")
@click.option("--max-cards", type=click.IntRange(1, 10), default=None,
              help="Override CAROUSEL_MAX_CARDS.")
def parse(answer_file: TextIO, max_cards: int | None) -> None:
    """Parse a backend answer and print the reply and rendered carousel."""
    settings = BridgeSettings.from_env()
    options = CarouselOptions.from_settings(settings)
    if max_cards:
        options = replace(options, max_cards=max_cards)
    renderer = CarouselRenderer(options)
    parsed = parse_answer(answer_file.read())
    output = {
        "parsed": parsed.model_dump(mode="json"),
        "carousel": renderer.render(parsed.results),
    }
    click.echo(json.dumps(output, indent=2, ensure_ascii=False))


@cli.command("verify-audit")
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False))
def verify_audit(log_file: str) -> None:
    """Validate the hash chain of an audit log."""
    result = validate_audit_chain(Path(log_file))
    if result.valid:
        click.echo("Audit chain valid")
        return
    click.echo(f"Audit chain broken at line {result.broken_at_line}", err=True)
    sys.exit(1)
