"""
Service for recording and aggregating metered usage.
"""

from datetime import datetime, timedelta
from numbers import Number
from typing import Any, Dict, List, Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.exceptions import NotFoundError, ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.context import readonly
from packages.plans.models.domain.enums import STANDARD_LIMIT_METRICS
from packages.plans.models.domain.plan import Plan
from packages.plans.repositories.plan_repository import PlanRepository
from packages.subscriptions.models.domain.subscription import Subscription
from packages.subscriptions.repositories.subscription_repository import (
    SubscriptionRepository,
)
from packages.usage.models.domain.usage import (
    UsageBucket,
    UsageLimitStatus,
    UsageRecord,
    UsageRecordCreateModel,
    UsageSummaryItem,
)
from packages.usage.repositories.usage_repository import UsageRepository

logger = get_logger(__name__)

DEFAULT_WINDOW_DAYS = 30
BUCKET_INTERVALS = ("day", "week", "month")


def bucket_key(moment: datetime, interval: str) -> str:
    """Bucket label for a timestamp. Weeks start on Sunday."""
    day = moment.date()
    if interval == "day":
        return day.isoformat()
    if interval == "week":
        # date.weekday() is 0 for Monday, so Sunday maps back 0 days
        return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()
    if interval == "month":
        return day.strftime("%Y-%m")
    raise ValidationError(
        f"Unsupported interval '{interval}', expected one of {BUCKET_INTERVALS}"
    )


def _is_numeric_limit(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def configured_limits(plan: Plan) -> Dict[str, float]:
    """Metric -> limit for every limit the plan actually configures."""
    limits: Dict[str, float] = {}
    for column, metric in STANDARD_LIMIT_METRICS.items():
        value = getattr(plan, column)
        if value is not None:
            limits[metric] = value
    for metric, value in (plan.custom_limits or {}).items():
        if _is_numeric_limit(value):
            limits[metric] = value
    return limits


class UsageService:
    """Service for usage records and limit checks."""

    def __init__(self):
        self.usage_repo = UsageRepository()
        self.subscription_repo = SubscriptionRepository()
        self.plan_repo = PlanRepository()

    async def _get_subscription(
        self, subscription_id: int, tenant_id: int
    ) -> Subscription:
        subscription = await self.subscription_repo.get(
            subscription_id, tenant_id=tenant_id
        )
        if not subscription:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return subscription

    @trace_span
    async def record_usage(
        self,
        tenant_id: int,
        subscription_id: int,
        metric: str,
        quantity: int,
        record_date: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UsageRecord:
        """
        Append a usage record. Negative quantities record a decrease.

        Raises:
            ValidationError: if quantity is zero.
            NotFoundError: if the subscription does not exist for the tenant.
        """
        if quantity == 0:
            raise ValidationError("Usage quantity must be non-zero")

        await self._get_subscription(subscription_id, tenant_id)

        record = await self.usage_repo.create(
            UsageRecordCreateModel(
                tenant_id=tenant_id,
                subscription_id=subscription_id,
                metric=metric,
                quantity=quantity,
                record_date=record_date or utcnow(),
                record_metadata=metadata,
            )
        )
        logger.debug(
            f"Recorded {quantity} {metric} for subscription {subscription_id}",
            extra={
                "tenant_id": tenant_id,
                "subscription_id": subscription_id,
                "metric": metric,
                "quantity": quantity,
            },
        )
        return record

    @trace_span
    async def increment_usage(
        self,
        tenant_id: int,
        subscription_id: int,
        metric: str,
        quantity: int = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UsageRecord:
        if quantity <= 0:
            raise ValidationError("Increment quantity must be positive")
        return await self.record_usage(
            tenant_id, subscription_id, metric, quantity, metadata=metadata
        )

    @trace_span
    async def decrement_usage(
        self,
        tenant_id: int,
        subscription_id: int,
        metric: str,
        quantity: int = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UsageRecord:
        if quantity <= 0:
            raise ValidationError("Decrement quantity must be positive")
        return await self.record_usage(
            tenant_id, subscription_id, metric, -quantity, metadata=metadata
        )

    @trace_span
    async def get_usage(
        self,
        subscription_id: int,
        tenant_id: int,
        metric: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[UsageRecord]:
        await self._get_subscription(subscription_id, tenant_id)
        return await self.usage_repo.list_records(
            subscription_id, metric=metric, start=start, end=end
        )

    @trace_span
    async def get_usage_summary(
        self,
        subscription_id: int,
        tenant_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[UsageSummaryItem]:
        await self._get_subscription(subscription_id, tenant_id)
        return await self.usage_repo.summarize_by_metric(
            subscription_id, start=start, end=end
        )

    @trace_span
    async def get_current_usage(
        self, subscription_id: int, tenant_id: int, metric: str
    ) -> int:
        """Net usage of `metric` within the subscription's current period."""
        subscription = await self._get_subscription(subscription_id, tenant_id)
        return await self.usage_repo.sum_quantity(
            subscription_id,
            metric,
            start=subscription.current_period_start,
            end=subscription.current_period_end,
        )

    @trace_span
    @readonly
    async def check_usage_limits(
        self, subscription_id: int, tenant_id: int
    ) -> Dict[str, UsageLimitStatus]:
        """
        Compare current-period usage with every limit the subscription's plan
        configures. Metrics without a limit are left out of the result.
        """
        subscription = await self._get_subscription(subscription_id, tenant_id)
        if subscription.plan_id is None:
            return {}
        plan = await self.plan_repo.get(subscription.plan_id, tenant_id=tenant_id)
        if not plan:
            return {}

        statuses: Dict[str, UsageLimitStatus] = {}
        for metric, limit in configured_limits(plan).items():
            current = await self.usage_repo.sum_quantity(
                subscription_id,
                metric,
                start=subscription.current_period_start,
                end=subscription.current_period_end,
            )
            if settings.usage_floor_at_zero:
                current = max(current, 0)

            statuses[metric] = UsageLimitStatus(
                limit=limit,
                current=current,
                remaining=limit - current,
                percentage=(current / limit * 100) if limit else 0.0,
                exceeded=current > limit,
            )
        return statuses

    @trace_span
    async def get_usage_over_time(
        self,
        subscription_id: int,
        tenant_id: int,
        metric: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        interval: str = "day",
    ) -> List[UsageBucket]:
        """Usage of one metric bucketed by day, week or month, oldest first."""
        if interval not in BUCKET_INTERVALS:
            raise ValidationError(
                f"Unsupported interval '{interval}', "
                f"expected one of {BUCKET_INTERVALS}"
            )
        await self._get_subscription(subscription_id, tenant_id)

        end = end or utcnow()
        start = start or end - timedelta(days=DEFAULT_WINDOW_DAYS)

        totals: Dict[str, int] = {}
        for record_date, quantity in await self.usage_repo.list_points(
            subscription_id, metric, start, end
        ):
            key = bucket_key(record_date, interval)
            totals[key] = totals.get(key, 0) + quantity

        return [UsageBucket(date=key, quantity=totals[key]) for key in sorted(totals)]

    @trace_span
    async def cleanup_usage_records(
        self, now: Optional[datetime] = None, retention_days: Optional[int] = None
    ) -> int:
        """Delete records older than the retention window. Returns the count."""
        now = now or utcnow()
        if retention_days is None:
            retention_days = settings.usage_retention_days
        cutoff = now - timedelta(days=retention_days)

        deleted = await self.usage_repo.delete_older_than(cutoff)
        logger.info(
            f"Deleted {deleted} usage record(s) older than {cutoff.isoformat()}",
            extra={"deleted": deleted, "retention_days": retention_days},
        )
        return deleted
