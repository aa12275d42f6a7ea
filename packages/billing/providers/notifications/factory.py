"""
Factory for getting the notification provider instance.
"""

from typing import Optional

from packages.billing.providers.notifications.interface import (
    NotificationProviderInterface,
)
from packages.billing.providers.notifications.logging_notifications import (
    LoggingNotificationProvider,
)

_notification_provider: Optional[NotificationProviderInterface] = None


def get_notification_provider() -> NotificationProviderInterface:
    """
    Get the notification provider.

    Only the logging provider ships with the service; delivery channels
    plug in through set_notification_provider().
    """
    global _notification_provider
    if _notification_provider is None:
        _notification_provider = LoggingNotificationProvider()
    return _notification_provider


def set_notification_provider(
    provider: Optional[NotificationProviderInterface],
) -> None:
    global _notification_provider
    _notification_provider = provider
