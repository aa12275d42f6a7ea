"""Domain models for subscriptions."""

from packages.subscriptions.models.domain.enums import (
    SubscriptionStatus,
    PeriodStatus,
)
from packages.subscriptions.models.domain.subscription import (
    Subscription,
    SubscriptionCreateRequest,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
    SubscriptionAddon,
    SubscriptionAddonCreateModel,
    SubscriptionPeriod,
    SubscriptionPeriodCreateModel,
    SubscriptionDetails,
    SubscriptionStatistics,
    PlanChangeResult,
)

__all__ = [
    # Enums
    "SubscriptionStatus",
    "PeriodStatus",
    # Subscription
    "Subscription",
    "SubscriptionCreateRequest",
    "SubscriptionCreateModel",
    "SubscriptionUpdateModel",
    "SubscriptionDetails",
    "SubscriptionStatistics",
    "PlanChangeResult",
    # Addons and periods
    "SubscriptionAddon",
    "SubscriptionAddonCreateModel",
    "SubscriptionPeriod",
    "SubscriptionPeriodCreateModel",
]
