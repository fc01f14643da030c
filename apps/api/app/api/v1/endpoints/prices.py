from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.v1.deps import get_price_service
from app.core.exceptions import UpstreamPriceUnavailable
from app.services.price_service import PriceService

router = APIRouter(prefix="/prices", tags=["prices"])


@router.get("/today")
async def prices_today(prices: PriceService = Depends(get_price_service)):
    try:
        view = await prices.today_view()
    except UpstreamPriceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return {"success": True, **view}


@router.get("/current")
async def current_price(prices: PriceService = Depends(get_price_service)):
    try:
        point = await prices.current_point()
    except UpstreamPriceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return {"success": True, "current": point, "timestamp": datetime.now(timezone.utc)}


@router.get("/cheapest")
async def cheapest_hours(
    hours: int = Query(default=5, ge=1, le=24),
    prices: PriceService = Depends(get_price_service),
):
    try:
        items = await prices.cheapest_hours(hours)
    except UpstreamPriceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return {"success": True, "cheapest_hours": items}


@router.get("/history")
async def price_history(
    days: int = Query(default=7, ge=1, le=30),
    prices: PriceService = Depends(get_price_service),
):
    return {"success": True, "days": await prices.history(days)}
