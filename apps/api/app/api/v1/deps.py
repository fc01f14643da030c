from __future__ import annotations

from fastapi import Request

from app.services.alert_service import AlertPipeline
from app.services.price_service import PriceService
from app.services.runtime import AlertRuntime


def get_runtime(request: Request) -> AlertRuntime:
    return request.app.state.runtime


def get_price_service(request: Request) -> PriceService:
    return get_runtime(request).prices


def get_alert_pipeline(request: Request) -> AlertPipeline:
    return get_runtime(request).pipeline
