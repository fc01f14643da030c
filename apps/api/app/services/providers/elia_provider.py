from __future__ import annotations

from datetime import date

from app.schemas.price import PricePoint
from app.services.providers.base import PriceProvider


class EliaProvider(PriceProvider):
    """Elia Open Data day-ahead prices. Belgium only, so the zone is not sent upstream."""

    name = "Elia Open Data"
    url = "https://opendata.elia.be/api/explore/v2.1/catalog/datasets/ods003/records"

    async def get_day_ahead(self, zone: str, start: date, end: date) -> list[PricePoint]:
        params = {
            "limit": 100,
            "order_by": "datetime",
            "where": f'datetime >= "{start.isoformat()}T00:00:00" AND datetime <= "{end.isoformat()}T23:59:59"',
        }
        async with self._client() as client:
            response = await client.get(self.url, params=params)
            response.raise_for_status()
            payload = response.json()

        return [
            PricePoint(timestamp=row["datetime"], price_eur_mwh=float(row["price"]), source=self.name)
            for row in payload.get("results") or []
            if row.get("datetime") and row.get("price") is not None
        ]
