"""External notification channels."""

from hookwatch.notifications.dispatcher import NotificationDispatcher
from hookwatch.notifications.settings import NotificationSettings, NotificationSettingsStore

__all__ = [
    "NotificationDispatcher",
    "NotificationSettings",
    "NotificationSettingsStore",
]
