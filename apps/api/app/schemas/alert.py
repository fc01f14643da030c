from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AlertRecipient(BaseModel):
    id: str
    email: str
    name: str | None = None
    alerts_enabled: bool = True
    threshold: float | None = None
    supplier: str | None = None
    last_alert_sent: datetime | None = None


class AlertCandidate(BaseModel):
    recipient: AlertRecipient
    current_price: float
    threshold: float

    @property
    def saving(self) -> float:
        return self.threshold - self.current_price


class AlertRunReport(BaseModel):
    started_at: datetime
    finished_at: datetime | None = None
    current_price: float | None = None
    candidates: int = 0
    sent: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    persist_failed: list[str] = Field(default_factory=list)
    aborted_reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self.aborted_reason is not None
