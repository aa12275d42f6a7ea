"""Notification providers - payment reminders and other customer notices."""

from packages.billing.providers.notifications.interface import (
    NotificationProviderInterface,
)
from packages.billing.providers.notifications.logging_notifications import (
    LoggingNotificationProvider,
)
from packages.billing.providers.notifications.factory import (
    get_notification_provider,
    set_notification_provider,
)

__all__ = [
    "NotificationProviderInterface",
    "LoggingNotificationProvider",
    "get_notification_provider",
    "set_notification_provider",
]
