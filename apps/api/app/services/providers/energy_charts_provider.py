from __future__ import annotations

from datetime import date, datetime, timezone

from app.schemas.price import PricePoint
from app.services.providers.base import PriceProvider


class EnergyChartsProvider(PriceProvider):
    name = "Energy-Charts"
    url = "https://api.energy-charts.info/price"

    async def get_day_ahead(self, zone: str, start: date, end: date) -> list[PricePoint]:
        params = {"bzn": zone, "start": start.isoformat(), "end": end.isoformat()}
        async with self._client() as client:
            response = await client.get(self.url, params=params)
            response.raise_for_status()
            payload = response.json()

        timestamps = payload.get("unix_seconds") or []
        prices = payload.get("price") or []
        if len(timestamps) != len(prices):
            raise ValueError(f"Energy-Charts returned {len(timestamps)} timestamps for {len(prices)} prices")

        return [
            PricePoint(
                timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
                price_eur_mwh=float(price),
                source=self.name,
            )
            for ts, price in zip(timestamps, prices)
            if price is not None
        ]
