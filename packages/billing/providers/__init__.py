"""Billing providers - abstracted external integrations."""

from packages.billing.providers.notifications import (
    get_notification_provider,
    set_notification_provider,
)

__all__ = [
    "get_notification_provider",
    "set_notification_provider",
]
