from __future__ import annotations

from datetime import date

import httpx
import pytest
from conftest import FakeClock, energy_charts_day
from fastapi.testclient import TestClient

from app.api.v1.deps import get_alert_pipeline, get_price_service
from app.core.cache import CacheClient
from app.core.config import settings
from app.main import app
from app.schemas.alert import AlertRunReport
from app.services.price_service import PriceService
from app.services.providers.elia_provider import EliaProvider
from app.services.providers.energy_charts_provider import EnergyChartsProvider


class StubPipeline:
    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.runs = 0
        self.aborted_reason: str | None = None

    async def run_once(self) -> AlertRunReport:
        self.runs += 1
        if self.aborted_reason:
            return AlertRunReport(started_at=self.clock.now, aborted_reason=self.aborted_reason)
        return AlertRunReport(started_at=self.clock.now, current_price=65.0, candidates=1, sent=["user-1"])


@pytest.fixture()
def pipeline(clock: FakeClock) -> StubPipeline:
    return StubPipeline(clock)


@pytest.fixture()
def client(clock: FakeClock, pipeline: StubPipeline):
    def prices_handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.energy-charts.info" and request.url.params["end"] == "2026-10-19":
            return httpx.Response(200, json=energy_charts_day(date(2026, 10, 19)))
        return httpx.Response(503)

    transport = httpx.MockTransport(prices_handler)
    prices = PriceService(
        providers=[EnergyChartsProvider(transport=transport), EliaProvider(transport=transport)],
        cache=CacheClient(),
        clock=clock,
    )
    app.dependency_overrides[get_price_service] = lambda: prices
    app.dependency_overrides[get_alert_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["version"] == "2.0.0"


def test_current_price(client: TestClient) -> None:
    response = client.get("/api/v1/prices/current")

    assert response.status_code == 200
    body = response.json()
    assert body["current"]["price_eur_mwh"] == 120.0
    assert body["current"]["price_eur_kwh"] == 0.12


def test_today_view_is_503_when_providers_fail(client: TestClient) -> None:
    # Range ends tomorrow, which the fake upstream never answers.
    response = client.get("/api/v1/prices/today")

    assert response.status_code == 503


def test_cheapest_validates_hours(client: TestClient) -> None:
    assert client.get("/api/v1/prices/cheapest", params={"hours": 0}).status_code == 422
    assert client.get("/api/v1/prices/cheapest", params={"hours": 25}).status_code == 422


def test_manual_run_disabled_without_admin_token(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "admin_token", None)

    assert client.post("/api/v1/alerts/run").status_code == 403


def test_manual_run_requires_matching_token(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "admin_token", "s3cret")

    assert client.post("/api/v1/alerts/run", headers={"X-Admin-Token": "nope"}).status_code == 401

    response = client.post("/api/v1/alerts/run", headers={"X-Admin-Token": "s3cret"})
    assert response.status_code == 200
    assert response.json()["sent"] == ["user-1"]
    assert response.json()["current_price"] == 65.0


def test_manual_run_conflicts_with_pass_in_progress(client: TestClient, pipeline: StubPipeline, monkeypatch) -> None:
    monkeypatch.setattr(settings, "admin_token", "s3cret")
    pipeline.aborted_reason = "already_running"

    response = client.post("/api/v1/alerts/run", headers={"X-Admin-Token": "s3cret"})

    assert response.status_code == 409


def test_history_validates_days_and_skips_unavailable_days(client: TestClient) -> None:
    assert client.get("/api/v1/prices/history", params={"days": 0}).status_code == 422
    assert client.get("/api/v1/prices/history", params={"days": 31}).status_code == 422

    response = client.get("/api/v1/prices/history", params={"days": 2})

    assert response.status_code == 200
    assert response.json() == {"success": True, "days": []}
