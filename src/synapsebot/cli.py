"""Synapse command line."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict

import typer
from loguru import logger

from synapsebot.app.runtime import AppRuntime
from synapsebot.config import load_settings
from synapsebot.errors import ConfigurationError
from synapsebot.logging_utils import configure_logging
from synapsebot.web import ContentExtractor

app = typer.Typer(name="synapsebot", help="Telegram agent gateway with web tools", add_completion=False)


@app.command()
def run(
    model: str | None = typer.Option(None, "--model", help="Override SYNAPSE_MODEL"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override SYNAPSE_LOG_LEVEL"),
) -> None:
    """Start the Telegram bot with long polling."""

    settings = load_settings(model=model, log_level=log_level)
    configure_logging(settings.log_level)
    try:
        runtime = AppRuntime(settings)
    except ConfigurationError as exc:
        logger.error("cli.run.config_error error={}", exc)
        raise typer.Exit(1) from exc

    try:
        asyncio.run(runtime.serve())
    except KeyboardInterrupt:
        logger.info("cli.run.interrupted")


@app.command()
def extract(
    urls: list[str] = typer.Argument(..., help="Pages to fetch"),
    deadline: float | None = typer.Option(None, "--deadline", help="Batch deadline in seconds"),
) -> None:
    """Fetch and parse pages, printing the records as JSON."""

    settings = load_settings()
    configure_logging(settings.log_level)

    async def _extract() -> list[dict[str, str]]:
        extractor = ContentExtractor(
            deadline=settings.extract_deadline_seconds,
            fetch_timeout=settings.fetch_timeout_seconds,
            max_concurrency=settings.max_concurrent_fetches,
        )
        try:
            records = await extractor.extract(urls, deadline=deadline)
        finally:
            await extractor.aclose()
        return [asdict(record) for record in records]

    typer.echo(json.dumps(asyncio.run(_extract()), ensure_ascii=False, indent=2))
