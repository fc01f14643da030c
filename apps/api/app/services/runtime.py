from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, settings
from app.core.database import SessionLocal
from app.services.alert_service import AlertPipeline, build_alert_pipeline
from app.services.email_service import build_email_service
from app.services.price_service import PriceService, build_price_service
from app.services.scheduler import HourlyScheduler
from app.services.user_store import UserStore


@dataclass
class AlertRuntime:
    prices: PriceService
    pipeline: AlertPipeline
    scheduler: HourlyScheduler | None

    async def start(self, schedule: bool = True) -> None:
        await self.prices.cache.connect()
        if not schedule:
            return
        if self.scheduler is None:
            logger.warning("Alerts: RESEND_API_KEY not set, email alerts disabled")
            return
        self.scheduler.start()

    async def close(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()
        await self.prices.cache.close()


def build_runtime(
    session_factory: sessionmaker[Session] = SessionLocal,
    transport: httpx.AsyncBaseTransport | None = None,
    config: Settings = settings,
) -> AlertRuntime:
    prices = build_price_service(config, transport=transport)
    mailer = build_email_service(config, transport=transport)
    pipeline = build_alert_pipeline(prices, UserStore(session_factory), mailer, config)
    scheduler = None
    if config.alerts_enabled:
        scheduler = HourlyScheduler(pipeline.run_once, tz=config.price_timezone)
    return AlertRuntime(prices=prices, pipeline=pipeline, scheduler=scheduler)
