from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import httpx
from loguru import logger
from pydantic import ValidationError

from app.core.cache import CacheClient
from app.core.config import Settings, settings
from app.core.exceptions import PriceDataUnavailable, UpstreamPriceUnavailable
from app.schemas.price import DayStats, EnrichedPricePoint, HistoryDay, HistoryPoint, PricePoint, PriceSeries, PriceStats
from app.services.providers.base import PriceProvider
from app.services.providers.elia_provider import EliaProvider
from app.services.providers.energy_charts_provider import EnergyChartsProvider

PROVIDER_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError, ValidationError)
HISTORY_MAX_DAYS = 30


def price_category(value: float) -> str:
    if value < 0:
        return "negative"
    if value < 50:
        return "very_cheap"
    if value < 90:
        return "cheap"
    if value < 130:
        return "moderate"
    if value < 160:
        return "expensive"
    return "peak"


def compute_stats(points: Sequence[EnrichedPricePoint]) -> PriceStats:
    def calc(day: str) -> DayStats | None:
        values = [p.price_eur_mwh for p in points if p.day == day]
        if not values:
            return None
        return DayStats(
            min=min(values),
            max=max(values),
            avg=round(sum(values) / len(values), 2),
            negative_hours=sum(1 for v in values if v < 0),
        )

    return PriceStats(today=calc("today"), tomorrow=calc("tomorrow"))


class PriceService:
    def __init__(
        self,
        providers: Sequence[PriceProvider],
        cache: CacheClient,
        zone: str = "BE",
        tz: str = "Europe/Brussels",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not providers:
            raise ValueError("At least one price provider is required")
        self.providers = list(providers)
        self.cache = cache
        self.zone = zone
        self.tz = ZoneInfo(tz)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def local_date(self, moment: datetime) -> date:
        return moment.astimezone(self.tz).date()

    def today_and_tomorrow(self, now: datetime | None = None) -> tuple[date, date]:
        today = self.local_date(now or self.now())
        return today, today + timedelta(days=1)

    async def _fetch(self, provider: PriceProvider, start: date, end: date) -> list[PricePoint]:
        key = f"prices:{provider.name}:{self.zone}:{start.isoformat()}:{end.isoformat()}"
        cached = await self.cache.get(key)
        if cached is not None:
            return [PricePoint.model_validate(row) for row in cached]

        points = await provider.get_day_ahead(self.zone, start, end)
        # Unpublished days come back empty; retry them on the next call instead of caching the gap.
        if points:
            await self.cache.set(key, [p.model_dump(mode="json") for p in points])
        return points

    async def get_prices(self, start: date, end: date) -> PriceSeries:
        failures: list[str] = []
        empty: list[str] = []
        for provider in self.providers:
            try:
                points = await self._fetch(provider, start, end)
            except PROVIDER_ERRORS as exc:
                logger.warning(f"Price provider {provider.name} failed for {start}..{end}: {exc!r}")
                failures.append(provider.name)
                continue
            if not points:
                logger.warning(f"Price provider {provider.name} has no data for {start}..{end}")
                empty.append(provider.name)
                continue
            return PriceSeries(source=provider.name, points=points)

        if empty:
            raise PriceDataUnavailable(f"No price data for {start}..{end} (empty: {empty}, failed: {failures})")
        raise UpstreamPriceUnavailable(f"All price providers failed for {start}..{end}: {failures}")

    def pick_current(self, points: Sequence[PricePoint], now: datetime) -> PricePoint:
        if not points:
            raise PriceDataUnavailable("Empty price series")
        # UTC buckets tell apart the two local 02:00 hours on the autumn DST day.
        for point, following in zip(points, points[1:]):
            if point.timestamp <= now < following.timestamp:
                return point
        local_hour = now.astimezone(self.tz).hour
        for point in points:
            if point.timestamp.astimezone(self.tz).hour == local_hour:
                return point
        return points[-1]

    async def current_point(self, now: datetime | None = None) -> PricePoint:
        now = now or self.now()
        today = self.local_date(now)
        series = await self.get_prices(today, today)
        return self.pick_current(series.points, now)

    async def fetch_current_price(self, now: datetime | None = None) -> float:
        point = await self.current_point(now)
        return point.price_eur_mwh

    def enrich(self, points: Sequence[PricePoint], now: datetime | None = None) -> list[EnrichedPricePoint]:
        now = now or self.now()
        today = self.local_date(now)
        now_hour = now.astimezone(self.tz).hour
        enriched = []
        for point in points:
            local = point.timestamp.astimezone(self.tz)
            is_today = local.date() == today
            enriched.append(
                EnrichedPricePoint(
                    timestamp=point.timestamp,
                    price_eur_mwh=point.price_eur_mwh,
                    source=point.source,
                    day="today" if is_today else "tomorrow",
                    hour=local.hour,
                    hour_label=f"{local.hour:02d}:00",
                    is_current=is_today and local.hour == now_hour,
                    is_negative=point.price_eur_mwh < 0,
                    price_category=price_category(point.price_eur_mwh),
                )
            )
        return enriched

    async def today_view(self, now: datetime | None = None) -> dict:
        now = now or self.now()
        today, tomorrow = self.today_and_tomorrow(now)
        series = await self.get_prices(today, tomorrow)
        data = self.enrich(series.points, now)
        return {
            "source": series.source,
            "data": data,
            "stats": compute_stats(data),
            "fetched_at": datetime.now(timezone.utc),
        }

    async def cheapest_hours(self, hours: int = 5, now: datetime | None = None) -> list[PricePoint]:
        now = now or self.now()
        today, tomorrow = self.today_and_tomorrow(now)
        series = await self.get_prices(today, tomorrow)
        upcoming = [p for p in series.points if p.timestamp >= now]
        return sorted(upcoming, key=lambda p: p.price_eur_mwh)[:hours]

    async def history(self, days: int = 7, now: datetime | None = None) -> list[HistoryDay]:
        """Past Brussels days, oldest first. Days no provider can serve are left out."""
        now = now or self.now()
        today = self.local_date(now)
        results = []
        for offset in range(min(days, HISTORY_MAX_DAYS), 0, -1):
            day = today - timedelta(days=offset)
            try:
                series = await self.get_prices(day, day)
            except UpstreamPriceUnavailable as exc:
                logger.warning(f"Skipping price history for {day}: {exc}")
                continue
            points = []
            for point in series.points:
                hour = point.timestamp.astimezone(self.tz).hour
                points.append(HistoryPoint(**point.model_dump(exclude={"price_eur_kwh"}), hour=hour, hour_label=f"{hour:02d}:00"))
            values = [p.price_eur_mwh for p in points]
            results.append(
                HistoryDay(
                    day=day,
                    prices=points,
                    avg=round(sum(values) / len(values), 2),
                    min=round(min(values), 2),
                    max=round(max(values), 2),
                    negative_hours=sum(1 for v in values if v < 0),
                )
            )
        return results


def build_price_service(config: Settings = settings, transport: httpx.AsyncBaseTransport | None = None) -> PriceService:
    timeout = config.http_timeout_seconds
    return PriceService(
        providers=[
            EnergyChartsProvider(timeout=timeout, transport=transport),
            EliaProvider(timeout=timeout, transport=transport),
        ],
        cache=CacheClient(default_ttl_seconds=config.price_cache_ttl_seconds, redis_url=config.redis_url),
        zone=config.price_zone,
        tz=config.price_timezone,
    )
