"""Database models for subscriptions."""

from packages.subscriptions.models.database.subscription import (
    SubscriptionEntity,
    SubscriptionAddonEntity,
    SubscriptionPeriodEntity,
)

__all__ = [
    "SubscriptionEntity",
    "SubscriptionAddonEntity",
    "SubscriptionPeriodEntity",
]
