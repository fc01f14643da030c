from __future__ import annotations


class StroomSlimError(Exception):
    """Base class for errors raised by the alert engine."""


class UpstreamPriceUnavailable(StroomSlimError):
    """Every configured price provider failed for the requested range."""


class PriceDataUnavailable(UpstreamPriceUnavailable):
    """Providers answered, but none had data for the requested day."""


class UserStoreQueryFailure(StroomSlimError):
    pass


class NotificationSendError(StroomSlimError):
    def __init__(self, user_id: str, reason: str) -> None:
        super().__init__(f"Alert email to user {user_id} failed: {reason}")
        self.user_id = user_id
        self.reason = reason


class PreferencesPersistError(StroomSlimError):
    def __init__(self, user_id: str, reason: str) -> None:
        super().__init__(f"Preferences update for user {user_id} failed: {reason}")
        self.user_id = user_id
        self.reason = reason


class UserNotFound(PreferencesPersistError):
    def __init__(self, user_id: str) -> None:
        super().__init__(user_id, "user not found")
