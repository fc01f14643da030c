from __future__ import annotations

import asyncio
from datetime import datetime

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.exceptions import PreferencesPersistError, UserNotFound, UserStoreQueryFailure
from app.models.user import User
from app.schemas.alert import AlertRecipient
from app.schemas.preferences import PreferencesPatch, UserPreferences


class UserStore:
    """Slice of the user table the alert engine is allowed to touch."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def _eligible_users(self) -> list[AlertRecipient]:
        enabled = User.preferences["alertsEnabled"].as_boolean()
        threshold = User.preferences["alertThreshold"].as_string()
        stmt = select(User).where(enabled.is_(True), threshold.is_not(None))

        with self.session_factory() as db:
            users = db.scalars(stmt).all()

        recipients = []
        for user in users:
            try:
                prefs = UserPreferences.from_stored(user.preferences)
            except ValidationError as exc:
                logger.warning(f"Skipping user {user.id}: unreadable preferences ({exc.error_count()} errors)")
                continue
            if not prefs.alerts_enabled or prefs.alert_threshold is None:
                continue
            recipients.append(
                AlertRecipient(
                    id=user.id,
                    email=user.email,
                    name=user.name,
                    alerts_enabled=prefs.alerts_enabled,
                    threshold=prefs.alert_threshold,
                    supplier=prefs.supplier,
                    last_alert_sent=prefs.last_alert_sent,
                )
            )
        return recipients

    def _patch(self, user_id: str, patch: PreferencesPatch) -> UserPreferences:
        with self.session_factory() as db, db.begin():
            user = db.scalars(select(User).where(User.id == user_id).with_for_update()).one_or_none()
            if user is None:
                raise UserNotFound(user_id)
            # Reassign rather than mutate so the JSON column is always flagged dirty.
            user.preferences = patch.apply_to(user.preferences)
            merged = dict(user.preferences)
        return UserPreferences.from_stored(merged)

    async def find_alert_eligible_users(self) -> list[AlertRecipient]:
        try:
            return await asyncio.to_thread(self._eligible_users)
        except SQLAlchemyError as exc:
            raise UserStoreQueryFailure(f"Alert-eligible user query failed: {exc}") from exc

    async def patch_preferences(self, user_id: str, patch: PreferencesPatch) -> UserPreferences:
        try:
            return await asyncio.to_thread(self._patch, user_id, patch)
        except SQLAlchemyError as exc:
            raise PreferencesPersistError(user_id, str(exc)) from exc

    async def mark_sent(self, user_id: str, when: datetime) -> None:
        await self.patch_preferences(user_id, PreferencesPatch(last_alert_sent=when))
