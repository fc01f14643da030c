from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

import httpx

from app.schemas.price import PricePoint


class PriceProvider(ABC):
    name: str

    def __init__(self, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @abstractmethod
    async def get_day_ahead(self, zone: str, start: date, end: date) -> list[PricePoint]:
        raise NotImplementedError
