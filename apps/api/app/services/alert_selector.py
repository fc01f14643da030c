from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from loguru import logger

from app.schemas.alert import AlertCandidate, AlertRecipient
from app.services.user_store import UserStore

DEFAULT_COOLDOWN = timedelta(minutes=60)


def recently_alerted(recipient: AlertRecipient, now: datetime, cooldown: timedelta = DEFAULT_COOLDOWN) -> bool:
    if recipient.last_alert_sent is None:
        return False
    return recipient.last_alert_sent > now - cooldown


def select_candidates(
    recipients: Iterable[AlertRecipient],
    current_price: float,
    now: datetime,
    cooldown: timedelta = DEFAULT_COOLDOWN,
) -> list[AlertCandidate]:
    candidates = []
    for recipient in recipients:
        if not recipient.alerts_enabled or recipient.threshold is None:
            continue
        if current_price >= recipient.threshold:
            continue
        if recently_alerted(recipient, now, cooldown):
            logger.info(f"Skipping user {recipient.id}: already alerted within {cooldown}")
            continue
        candidates.append(AlertCandidate(recipient=recipient, current_price=current_price, threshold=recipient.threshold))
    return candidates


class AlertSelector:
    def __init__(self, store: UserStore, cooldown: timedelta = DEFAULT_COOLDOWN) -> None:
        self.store = store
        self.cooldown = cooldown

    async def select(self, current_price: float, now: datetime) -> list[AlertCandidate]:
        recipients = await self.store.find_alert_eligible_users()
        logger.info(f"Found {len(recipients)} users with alerts enabled")
        return select_candidates(recipients, current_price, now, self.cooldown)
