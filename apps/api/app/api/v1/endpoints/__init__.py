from __future__ import annotations

from app.api.v1.endpoints import alerts, prices

__all__ = ["alerts", "prices"]
