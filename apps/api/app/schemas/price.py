from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, computed_field, field_validator


class PricePoint(BaseModel):
    timestamp: datetime
    price_eur_mwh: float
    source: str

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @computed_field
    @property
    def price_eur_kwh(self) -> float:
        return round(self.price_eur_mwh / 1000, 6)


class EnrichedPricePoint(PricePoint):
    day: str
    hour: int
    hour_label: str
    is_current: bool
    is_negative: bool
    price_category: str


class DayStats(BaseModel):
    min: float
    max: float
    avg: float
    negative_hours: int


class PriceStats(BaseModel):
    today: DayStats | None = None
    tomorrow: DayStats | None = None


class PriceSeries(BaseModel):
    source: str
    points: list[PricePoint]


class HistoryPoint(PricePoint):
    hour: int
    hour_label: str


class HistoryDay(DayStats):
    day: date
    prices: list[HistoryPoint]
