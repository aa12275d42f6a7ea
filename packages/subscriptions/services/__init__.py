"""Subscription services."""

from packages.subscriptions.services.subscription_service import SubscriptionService

__all__ = ["SubscriptionService"]
