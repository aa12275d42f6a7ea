"""
Subscription lifecycle enums.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Subscription status lifecycle.

    Flow: trial -> active <-> past_due
                   active <-> paused
                   active -> cancelled -> expired
    EXPIRED is terminal.
    """

    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"  # An invoice failed; restored by a successful payment
    PAUSED = "paused"
    CANCELLED = "cancelled"  # Runs to period end, then expires
    EXPIRED = "expired"

    def is_billable(self) -> bool:
        """Check if the recurring billing batch picks this status up."""
        return self in (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE)

    def is_churned(self) -> bool:
        return self in (SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED)


class PeriodStatus(str, Enum):
    """Billing outcome of one subscription period."""

    PENDING = "pending"
    BILLED = "billed"
    PAID = "paid"
