"""
Default billing triggers.
"""

from datetime import datetime, timedelta
from typing import Optional

from common.core.config import settings
from packages.billing.services.billing_service import BillingService
from packages.scheduling.registry import TriggerRegistry
from packages.subscriptions.services.subscription_service import (
    SubscriptionService,
)
from packages.usage.services.usage_service import UsageService


def build_default_registry(
    billing_service: Optional[BillingService] = None,
    subscription_service: Optional[SubscriptionService] = None,
    usage_service: Optional[UsageService] = None,
) -> TriggerRegistry:
    billing = billing_service or BillingService()
    subscriptions = subscription_service or SubscriptionService()
    usage = usage_service or UsageService()

    async def cleanup_usage(now: datetime) -> int:
        return await usage.cleanup_usage_records(now, settings.usage_retention_days)

    registry = TriggerRegistry()
    registry.register(
        "process_due_invoices", timedelta(days=1), billing.process_due_invoices
    )
    registry.register(
        "trial_expiration", timedelta(hours=1), billing.convert_expired_trials
    )
    registry.register(
        "expire_cancelled_subscriptions",
        timedelta(days=1),
        subscriptions.expire_cancelled_subscriptions,
    )
    registry.register(
        "past_due_detection", timedelta(hours=6), billing.mark_overdue_invoices
    )
    registry.register(
        "payment_reminders", timedelta(days=1), billing.send_payment_reminders
    )
    registry.register("usage_retention", timedelta(days=7), cleanup_usage)
    return registry
