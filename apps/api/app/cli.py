"""Operational entry points for the alert engine (one-shot run and foreground scheduler)."""

from __future__ import annotations

import asyncio

import typer
from loguru import logger

from app.core.config import settings
from app.core.logging import configure_logging
from app.schemas.alert import AlertRunReport
from app.services.runtime import build_runtime

cli = typer.Typer(add_completion=False, help="StroomSlim price alert engine")


@cli.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Log level for the run.", show_default=True),
) -> None:
    configure_logging(log_level)


async def _check() -> AlertRunReport:
    runtime = build_runtime()
    await runtime.start(schedule=False)
    try:
        return await runtime.pipeline.run_once()
    finally:
        await runtime.close()


async def _schedule() -> None:
    runtime = build_runtime()
    await runtime.start(schedule=False)
    try:
        await runtime.scheduler.run_forever()
    finally:
        await runtime.close()


@cli.command()
def check() -> None:
    """Run a single alert pass, print its report and exit."""
    report = asyncio.run(_check())
    if report.aborted:
        logger.warning(f"Alert check aborted: {report.aborted_reason}")
    typer.echo(report.model_dump_json(indent=2))


@cli.command()
def schedule() -> None:
    """Run the hourly alert scheduler in the foreground."""
    if not settings.alerts_enabled:
        logger.warning("Alerts: RESEND_API_KEY not set, email alerts disabled")
        return
    try:
        asyncio.run(_schedule())
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    cli()
