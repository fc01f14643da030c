from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.models.user import User


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


def energy_charts_day(day: date, prices: list[float] | None = None) -> dict[str, list]:
    """Hourly Energy-Charts payload for one Brussels day while CEST (UTC+2) applies."""
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc) - timedelta(hours=2)
    prices = prices if prices is not None else [float(hour * 10) for hour in range(24)]
    return {
        "unix_seconds": [int((start + timedelta(hours=i)).timestamp()) for i in range(len(prices))],
        "price": prices,
    }


@pytest.fixture()
def clock() -> FakeClock:
    # 12:30 in Brussels
    return FakeClock(datetime(2026, 10, 19, 10, 30, tzinfo=timezone.utc))


@pytest.fixture()
def session_factory() -> sessionmaker[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture()
def add_user(session_factory: sessionmaker[Session]) -> Callable[..., str]:
    def _add(email: str, name: str = "", **preferences: Any) -> str:
        with session_factory() as db:
            user = User(email=email, name=name, preferences=preferences)
            db.add(user)
            db.commit()
            return user.id

    return _add


@pytest.fixture()
def load_preferences(session_factory: sessionmaker[Session]) -> Callable[[str], dict]:
    def _load(user_id: str) -> dict:
        with session_factory() as db:
            return dict(db.get(User, user_id).preferences)

    return _load
