from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.endpoints import alerts, prices

api_router = APIRouter()
api_router.include_router(prices.router)
api_router.include_router(alerts.router)
