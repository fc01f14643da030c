from __future__ import annotations

import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.api.v1.deps import get_alert_pipeline
from app.core.config import settings
from app.schemas.alert import AlertRunReport
from app.services.alert_service import AlertPipeline

router = APIRouter(prefix="/alerts", tags=["alerts"])


def require_admin_token(x_admin_token: str | None = Header(default=None)) -> None:
    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manual alert trigger disabled")
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


@router.post("/run", response_model=AlertRunReport, dependencies=[Depends(require_admin_token)])
async def run_alert_check(pipeline: AlertPipeline = Depends(get_alert_pipeline)):
    report = await pipeline.run_once()
    if report.aborted_reason == "already_running":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Alert check already in progress")
    return report
