from __future__ import annotations

from app.models.user import User

__all__ = ["User"]
