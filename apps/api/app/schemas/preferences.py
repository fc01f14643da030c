from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UserPreferences(BaseModel):
    """Typed view over the stored preference bag; unknown keys are kept as extras."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    alerts_enabled: bool = Field(default=False, alias="alertsEnabled")
    alert_threshold: float | None = Field(default=None, alias="alertThreshold")
    supplier: str | None = None
    last_alert_sent: datetime | None = Field(default=None, alias="lastAlertSent")

    @field_validator("alert_threshold", "supplier", "last_alert_sent", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("alerts_enabled", mode="before")
    @classmethod
    def _null_is_disabled(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("last_alert_sent")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)

    @classmethod
    def from_stored(cls, raw: dict[str, Any] | None) -> UserPreferences:
        return cls.model_validate(raw or {})


class PreferencesPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    alerts_enabled: bool | None = Field(default=None, alias="alertsEnabled")
    alert_threshold: float | None = Field(default=None, alias="alertThreshold")
    supplier: str | None = None
    last_alert_sent: datetime | None = Field(default=None, alias="lastAlertSent")

    @field_validator("last_alert_sent")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)

    def as_json(self) -> dict[str, Any]:
        # Only the fields the caller actually set, so a merge never clobbers siblings.
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")

    def apply_to(self, raw: dict[str, Any] | None) -> dict[str, Any]:
        return {**(raw or {}), **self.as_json()}
