"""Subscription repositories."""

from packages.subscriptions.repositories.subscription_repository import (
    SubscriptionRepository,
)
from packages.subscriptions.repositories.subscription_addon_repository import (
    SubscriptionAddonRepository,
)
from packages.subscriptions.repositories.subscription_period_repository import (
    SubscriptionPeriodRepository,
)

__all__ = [
    "SubscriptionRepository",
    "SubscriptionAddonRepository",
    "SubscriptionPeriodRepository",
]
