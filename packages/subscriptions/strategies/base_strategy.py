"""
Base proration strategy.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from packages.plans.models.domain.plan import Plan
from packages.subscriptions.models.domain.subscription import Subscription


class ProrationStrategy(ABC):
    """
    Computes the adjustment owed when a subscription switches plans mid-period.

    The amount is reported on the plan change event only; the billing engine
    never charges it.
    """

    @abstractmethod
    def calculate(
        self, subscription: Subscription, new_plan: Plan, now: datetime
    ) -> Optional[Decimal]:
        """Return the proration amount, or None when no amount applies.

        Args:
            subscription: The subscription as it was before the change
            new_plan: The plan being switched to
            now: Moment of the change
        """
        pass


class NoProrationStrategy(ProrationStrategy):
    """Reports no proration amount."""

    def calculate(
        self, subscription: Subscription, new_plan: Plan, now: datetime
    ) -> Optional[Decimal]:
        return None
