from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from loguru import logger

from app.core.config import Settings, settings
from app.core.exceptions import NotificationSendError, PreferencesPersistError, UpstreamPriceUnavailable, UserStoreQueryFailure
from app.schemas.alert import AlertCandidate, AlertRunReport
from app.services.alert_selector import AlertSelector
from app.services.email_service import AlertEmailService
from app.services.price_service import PriceService
from app.services.user_store import UserStore


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertPipeline:
    """One hourly pass: price -> candidates -> email -> lastAlertSent.

    Each candidate is its own unit of work. A failed send leaves the user
    eligible for the next pass; a failed write after a send may cause one
    duplicate alert next pass, never a lost one. Only one pass runs at a
    time per pipeline, whichever entry point starts it.
    """

    def __init__(
        self,
        prices: PriceService,
        store: UserStore,
        mailer: AlertEmailService,
        cooldown: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.prices = prices
        self.store = store
        self.mailer = mailer
        self.selector = AlertSelector(store, cooldown=cooldown)
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def _deliver(self, candidate: AlertCandidate, report: AlertRunReport) -> None:
        user_id = candidate.recipient.id
        try:
            await self.mailer.send(candidate)
        except NotificationSendError as exc:
            logger.error(f"Failed to send alert to user {user_id}: {exc.reason}")
            report.failed.append(user_id)
            return
        except Exception:
            logger.exception(f"Failed to send alert to user {user_id}")
            report.failed.append(user_id)
            return

        report.sent.append(user_id)
        logger.info(f"Alert sent to user {user_id} (€{candidate.current_price} < €{candidate.threshold})")
        try:
            await self.store.mark_sent(user_id, self._clock())
        except PreferencesPersistError as exc:
            logger.error(f"Alert sent to user {user_id} but lastAlertSent was not saved: {exc.reason}")
            report.persist_failed.append(user_id)
        except Exception:
            logger.exception(f"Alert sent to user {user_id} but lastAlertSent was not saved")
            report.persist_failed.append(user_id)

    async def run_once(self) -> AlertRunReport:
        if self._lock.locked():
            now = self._clock()
            logger.warning("Alert check already in progress, skipping this run")
            return AlertRunReport(started_at=now, finished_at=now, aborted_reason="already_running")
        async with self._lock:
            return await self._run()

    async def _run(self) -> AlertRunReport:
        now = self._clock()
        report = AlertRunReport(started_at=now)
        logger.info("Checking price alerts...")

        try:
            report.current_price = await self.prices.fetch_current_price(now)
        except UpstreamPriceUnavailable as exc:
            logger.error(f"Alert check aborted, no current price: {exc}")
            report.aborted_reason = "price_unavailable"
            report.finished_at = self._clock()
            return report
        logger.info(f"Current price: €{report.current_price}/MWh")

        try:
            candidates = await self.selector.select(report.current_price, now)
        except UserStoreQueryFailure as exc:
            logger.error(f"Alert check aborted, user store unavailable: {exc}")
            report.aborted_reason = "user_store_unavailable"
            report.finished_at = self._clock()
            return report

        report.candidates = len(candidates)
        for candidate in candidates:
            await self._deliver(candidate, report)

        report.finished_at = self._clock()
        logger.info(
            f"Alert check complete: {len(report.sent)} sent, {len(report.failed)} failed, "
            f"{len(report.persist_failed)} not recorded"
        )
        return report


def build_alert_pipeline(
    prices: PriceService,
    store: UserStore,
    mailer: AlertEmailService,
    config: Settings = settings,
) -> AlertPipeline:
    return AlertPipeline(
        prices=prices,
        store=store,
        mailer=mailer,
        cooldown=timedelta(minutes=config.alert_cooldown_minutes),
    )
