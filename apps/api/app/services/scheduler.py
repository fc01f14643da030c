from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

HOUR_SECONDS = 3600


def seconds_until_next_hour(now: datetime) -> float:
    elapsed = now.minute * 60 + now.second + now.microsecond / 1_000_000
    return HOUR_SECONDS - elapsed


class HourlyScheduler:
    """Runs ``job`` at the next top of the hour, then every ``period_seconds``.

    The period is measured from tick to tick, not re-aligned to the clock, so
    long uptimes may drift by a few seconds. A tick that lands while the
    previous run is still going is skipped.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        tz: str = "Europe/Brussels",
        period_seconds: float = HOUR_SECONDS,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.job = job
        self.tz = ZoneInfo(tz)
        self.period_seconds = period_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep
        self._loop_task: asyncio.Task | None = None
        self._run_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    @property
    def started(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def _run_job(self) -> None:
        try:
            await self.job()
        except Exception:
            logger.exception("Scheduled alert run crashed")

    def tick(self) -> asyncio.Task | None:
        if self.running:
            logger.warning("Previous alert run still in progress, skipping this tick")
            return None
        self._run_task = asyncio.create_task(self._run_job())
        return self._run_task

    async def run_forever(self) -> None:
        delay = seconds_until_next_hour(self._clock().astimezone(self.tz))
        logger.info(f"Alerts: next check in {round(delay / 60)} min")
        await self._sleep(delay)
        while True:
            self.tick()
            await self._sleep(self.period_seconds)

    def start(self) -> None:
        if self.started:
            return
        self._loop_task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if self._run_task is not None:
            await self._run_task
            self._run_task = None
