"""
Service for the subscription lifecycle.

Every transition re-reads the subscription inside a transaction and checks
its current status before writing. Events are published after commit.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.exceptions import (
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.context import readonly
from common.db.scoped import transaction
from common.providers.events import publish_event
from common.providers.locking import get_lock_provider
from packages.plans.models.domain.plan import Plan
from packages.plans.repositories.plan_repository import (
    PlanAddonRepository,
    PlanRepository,
)
from packages.plans.utils.periods import calculate_period_end, to_monthly_amount
from packages.subscriptions.models.domain.enums import SubscriptionStatus
from packages.subscriptions.models.domain.subscription import (
    PlanChangeResult,
    Subscription,
    SubscriptionAddon,
    SubscriptionAddonCreateModel,
    SubscriptionCreateModel,
    SubscriptionCreateRequest,
    SubscriptionDetails,
    SubscriptionPeriodCreateModel,
    SubscriptionStatistics,
    SubscriptionUpdateModel,
)
from packages.subscriptions.repositories.subscription_repository import (
    SubscriptionRepository,
)
from packages.subscriptions.repositories.subscription_addon_repository import (
    SubscriptionAddonRepository,
)
from packages.subscriptions.repositories.subscription_period_repository import (
    SubscriptionPeriodRepository,
)
from packages.subscriptions.strategies import ProrationStrategyFactory

logger = get_logger(__name__)

RECENT_PERIODS_LIMIT = 5

_CANCELLABLE = (
    SubscriptionStatus.TRIAL,
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.PAUSED,
)


def _event_payload(subscription: Subscription, **extra: Any) -> Dict[str, Any]:
    return {
        "tenant_id": subscription.tenant_id,
        "customer_id": subscription.customer_id,
        "subscription_id": subscription.id,
        "plan_id": subscription.plan_id,
        "status": subscription.status.value,
        **extra,
    }


def _require_status(subscription: Subscription, *allowed: SubscriptionStatus):
    if subscription.status not in allowed:
        raise InvalidStateTransitionError(
            f"Subscription {subscription.id}", subscription.status, allowed
        )


class SubscriptionService:
    """Service for creating subscriptions and driving their lifecycle."""

    def __init__(self):
        self.subscription_repo = SubscriptionRepository()
        self.addon_repo = SubscriptionAddonRepository()
        self.period_repo = SubscriptionPeriodRepository()
        self.plan_repo = PlanRepository()
        self.plan_addon_repo = PlanAddonRepository()

    async def _load(
        self, subscription_id: int, tenant_id: int, for_update: bool = False
    ) -> Subscription:
        if for_update:
            subscription = await self.subscription_repo.get_for_update(
                subscription_id
            )
            if subscription and subscription.tenant_id != tenant_id:
                subscription = None
        else:
            subscription = await self.subscription_repo.get(
                subscription_id, tenant_id=tenant_id
            )
        if not subscription:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return subscription

    async def _load_active_plan(self, plan_id: int, tenant_id: int) -> Plan:
        plan = await self.plan_repo.get(plan_id, tenant_id=tenant_id)
        if not plan:
            raise NotFoundError(f"Plan {plan_id} not found")
        if not plan.is_active:
            raise ConflictError(f"Plan {plan_id} is not active")
        return plan

    @trace_span
    async def list_subscriptions(
        self,
        tenant_id: int,
        status: Optional[SubscriptionStatus] = None,
        customer_id: Optional[int] = None,
        plan_id: Optional[int] = None,
    ) -> List[Subscription]:
        return await self.subscription_repo.list_by_tenant(
            tenant_id, status=status, customer_id=customer_id, plan_id=plan_id
        )

    @trace_span
    async def get_subscription(
        self, subscription_id: int, tenant_id: int
    ) -> Subscription:
        return await self._load(subscription_id, tenant_id)

    @trace_span
    async def get_subscription_details(
        self, subscription_id: int, tenant_id: int
    ) -> SubscriptionDetails:
        subscription = await self._load(subscription_id, tenant_id)
        addons = await self.addon_repo.list_active(subscription_id)
        periods = await self.period_repo.list_for_subscription(
            subscription_id, limit=RECENT_PERIODS_LIMIT
        )
        return SubscriptionDetails(
            subscription=subscription, addons=addons, recent_periods=periods
        )

    @trace_span
    async def create_subscription(
        self,
        tenant_id: int,
        request: SubscriptionCreateRequest,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Subscribe a customer to a plan.

        A positive trial length (request override, else the plan default)
        starts the subscription in TRIAL with the trial as its first period.

        Raises:
            NotFoundError: if the plan does not exist for the tenant.
            ConflictError: if the plan is inactive.
        """
        now = now or utcnow()

        async with transaction():
            plan = await self._load_active_plan(request.plan_id, tenant_id)

            start = request.start_date or now
            trial_days = (
                request.trial_days
                if request.trial_days is not None
                else plan.trial_days
            )

            if trial_days > 0:
                status = SubscriptionStatus.TRIAL
                trial_start = start
                trial_end = start + timedelta(days=trial_days)
                period_end = trial_end
                period_amount = Decimal("0")
            else:
                status = SubscriptionStatus.ACTIVE
                trial_start = trial_end = None
                period_end = calculate_period_end(
                    start, plan.interval, plan.interval_count
                )
                period_amount = plan.price

            subscription = await self.subscription_repo.create(
                SubscriptionCreateModel(
                    tenant_id=tenant_id,
                    customer_id=request.customer_id,
                    plan_id=plan.id,
                    status=status,
                    price=plan.price,
                    interval=plan.interval,
                    interval_count=plan.interval_count,
                    currency=plan.currency,
                    current_period_start=start,
                    current_period_end=period_end,
                    next_billing_date=period_end,
                    trial_start=trial_start,
                    trial_end=trial_end,
                    started_at=start,
                    created_at=now,
                )
            )
            await self.period_repo.create(
                SubscriptionPeriodCreateModel(
                    subscription_id=subscription.id,
                    start_date=start,
                    end_date=period_end,
                    amount=period_amount,
                )
            )

        logger.info(
            f"Created subscription {subscription.id} for customer "
            f"{request.customer_id} on plan {plan.id}",
            extra={
                "tenant_id": tenant_id,
                "subscription_id": subscription.id,
                "status": subscription.status.value,
            },
        )
        await publish_event(
            "subscription.created",
            _event_payload(subscription, trial_end=subscription.trial_end),
        )
        return subscription

    @trace_span
    async def cancel_subscription(
        self,
        subscription_id: int,
        tenant_id: int,
        immediate: bool = False,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Cancel a subscription, either at period end or immediately.

        Immediate cancellation expires the subscription on the spot.
        """
        now = now or utcnow()

        async with transaction():
            subscription = await self._load(
                subscription_id, tenant_id, for_update=True
            )
            _require_status(subscription, *_CANCELLABLE)

            if immediate:
                update = SubscriptionUpdateModel(
                    status=SubscriptionStatus.EXPIRED,
                    cancelled_at=now,
                    cancellation_reason=reason,
                    cancel_at_period_end=False,
                    ended_at=now,
                )
            else:
                update = SubscriptionUpdateModel(
                    status=SubscriptionStatus.CANCELLED,
                    cancelled_at=now,
                    cancellation_reason=reason,
                    cancel_at_period_end=True,
                )
            subscription = await self.subscription_repo.update(
                subscription_id, update
            )

        logger.info(
            f"Cancelled subscription {subscription_id} "
            f"({'immediately' if immediate else 'at period end'})",
            extra={"tenant_id": tenant_id, "subscription_id": subscription_id},
        )
        await publish_event(
            "subscription.cancelled",
            _event_payload(subscription, immediate=immediate, reason=reason),
        )
        return subscription

    @trace_span
    async def reactivate_subscription(
        self, subscription_id: int, tenant_id: int, now: Optional[datetime] = None
    ) -> Subscription:
        """Undo a pending cancellation while the paid period is still running."""
        now = now or utcnow()

        async with transaction():
            subscription = await self._load(
                subscription_id, tenant_id, for_update=True
            )
            _require_status(subscription, SubscriptionStatus.CANCELLED)
            if now > subscription.current_period_end:
                raise ConflictError(
                    f"Subscription {subscription_id} period ended at "
                    f"{subscription.current_period_end.isoformat()}; "
                    "it can no longer be reactivated"
                )

            subscription = await self.subscription_repo.update(
                subscription_id,
                SubscriptionUpdateModel(
                    status=SubscriptionStatus.ACTIVE,
                    cancel_at_period_end=False,
                    cancelled_at=None,
                    cancellation_reason=None,
                ),
            )

        logger.info(
            f"Reactivated subscription {subscription_id}",
            extra={"tenant_id": tenant_id, "subscription_id": subscription_id},
        )
        await publish_event("subscription.reactivated", _event_payload(subscription))
        return subscription

    @trace_span
    async def pause_subscription(
        self,
        subscription_id: int,
        tenant_id: int,
        reason: Optional[str] = None,
        resume_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Subscription:
        now = now or utcnow()

        async with transaction():
            subscription = await self._load(
                subscription_id, tenant_id, for_update=True
            )
            _require_status(subscription, SubscriptionStatus.ACTIVE)
            subscription = await self.subscription_repo.update(
                subscription_id,
                SubscriptionUpdateModel(
                    status=SubscriptionStatus.PAUSED,
                    paused_at=now,
                    pause_reason=reason,
                    resume_at=resume_at,
                ),
            )

        logger.info(
            f"Paused subscription {subscription_id}",
            extra={"tenant_id": tenant_id, "subscription_id": subscription_id},
        )
        return subscription

    @trace_span
    async def resume_subscription(
        self, subscription_id: int, tenant_id: int
    ) -> Subscription:
        async with transaction():
            subscription = await self._load(
                subscription_id, tenant_id, for_update=True
            )
            _require_status(subscription, SubscriptionStatus.PAUSED)
            subscription = await self.subscription_repo.update(
                subscription_id,
                SubscriptionUpdateModel(
                    status=SubscriptionStatus.ACTIVE,
                    paused_at=None,
                    pause_reason=None,
                    resume_at=None,
                ),
            )

        logger.info(
            f"Resumed subscription {subscription_id}",
            extra={"tenant_id": tenant_id, "subscription_id": subscription_id},
        )
        return subscription

    @trace_span
    async def change_plan(
        self,
        subscription_id: int,
        tenant_id: int,
        new_plan_id: int,
        immediate: bool = False,
        prorate: bool = False,
        now: Optional[datetime] = None,
    ) -> PlanChangeResult:
        """
        Move an ACTIVE subscription to another plan.

        Deferred changes only swap the plan and price; the new terms apply
        from the next billing cycle. Immediate changes restart the period
        at `now` with a fresh PENDING period at the new price.
        """
        now = now or utcnow()

        async with transaction():
            subscription = await self._load(
                subscription_id, tenant_id, for_update=True
            )
            _require_status(subscription, SubscriptionStatus.ACTIVE)
            new_plan = await self._load_active_plan(new_plan_id, tenant_id)

            proration_amount = None
            if prorate:
                strategy = ProrationStrategyFactory.get_strategy()
                proration_amount = strategy.calculate(subscription, new_plan, now)

            changes: Dict[str, Any] = {
                "plan_id": new_plan.id,
                "price": new_plan.price,
                "interval": new_plan.interval,
                "interval_count": new_plan.interval_count,
            }
            if immediate:
                period_end = calculate_period_end(
                    now, new_plan.interval, new_plan.interval_count
                )
                changes.update(
                    current_period_start=now,
                    current_period_end=period_end,
                    next_billing_date=period_end,
                )

            previous_plan_id = subscription.plan_id
            subscription = await self.subscription_repo.update(
                subscription_id, SubscriptionUpdateModel(**changes)
            )

            if immediate:
                await self.period_repo.create(
                    SubscriptionPeriodCreateModel(
                        subscription_id=subscription_id,
                        start_date=now,
                        end_date=subscription.current_period_end,
                        amount=new_plan.price,
                    )
                )

        logger.info(
            f"Changed plan of subscription {subscription_id} from "
            f"{previous_plan_id} to {new_plan.id}",
            extra={
                "tenant_id": tenant_id,
                "subscription_id": subscription_id,
                "immediate": immediate,
            },
        )
        await publish_event(
            "subscription.plan_changed",
            _event_payload(
                subscription,
                previous_plan_id=previous_plan_id,
                new_plan_id=new_plan.id,
                immediate=immediate,
                proration_amount=proration_amount,
            ),
        )
        return PlanChangeResult(
            subscription=subscription,
            previous_plan_id=previous_plan_id,
            immediate=immediate,
            proration_amount=proration_amount,
        )

    @trace_span
    async def add_addon(
        self,
        subscription_id: int,
        tenant_id: int,
        addon_id: int,
        quantity: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SubscriptionAddon:
        """
        Attach a plan addon to an ACTIVE subscription.

        Quantity defaults to the addon's fixed quantity, then to 1. Price,
        name and interval are snapshotted onto the attachment.
        """
        now = now or utcnow()

        async with transaction():
            subscription = await self._load(
                subscription_id, tenant_id, for_update=True
            )
            _require_status(subscription, SubscriptionStatus.ACTIVE)

            addon = await self.plan_addon_repo.get_for_tenant(addon_id, tenant_id)
            if not addon:
                raise NotFoundError(f"Addon {addon_id} not found")
            if not addon.is_active:
                raise ConflictError(f"Addon {addon_id} is not active")
            if addon.plan_id != subscription.plan_id:
                raise ValidationError(
                    f"Addon {addon_id} does not belong to plan {subscription.plan_id}"
                )

            effective_quantity = (
                quantity if quantity is not None else (addon.quantity or 1)
            )
            if effective_quantity <= 0:
                raise ValidationError("Addon quantity must be positive")

            if await self.addon_repo.get_active_attachment(subscription_id, addon_id):
                raise ConflictError(
                    f"Addon {addon_id} is already attached to subscription "
                    f"{subscription_id}"
                )

            attachment = await self.addon_repo.create(
                SubscriptionAddonCreateModel(
                    subscription_id=subscription_id,
                    addon_id=addon.id,
                    name=addon.name,
                    price=addon.price,
                    interval=addon.interval,
                    interval_count=addon.interval_count,
                    quantity=effective_quantity,
                    start_date=now,
                )
            )

        logger.info(
            f"Attached addon {addon_id} x{effective_quantity} to subscription "
            f"{subscription_id}",
            extra={"tenant_id": tenant_id, "subscription_id": subscription_id},
        )
        return attachment

    @trace_span
    async def remove_addon(
        self,
        subscription_addon_id: int,
        tenant_id: int,
        now: Optional[datetime] = None,
    ) -> SubscriptionAddon:
        now = now or utcnow()

        async with transaction():
            attachment = await self.addon_repo.get_for_tenant(
                subscription_addon_id, tenant_id
            )
            if not attachment:
                raise NotFoundError(
                    f"Subscription addon {subscription_addon_id} not found"
                )
            if not attachment.is_active:
                raise ConflictError(
                    f"Subscription addon {subscription_addon_id} is already removed"
                )
            attachment = await self.addon_repo.deactivate(subscription_addon_id, now)

        logger.info(
            f"Removed subscription addon {subscription_addon_id}",
            extra={
                "tenant_id": tenant_id,
                "subscription_id": attachment.subscription_id,
            },
        )
        return attachment

    @trace_span
    @readonly
    async def get_statistics(
        self, tenant_id: int, now: Optional[datetime] = None
    ) -> SubscriptionStatistics:
        """Counts by status, monthly recurring revenue and churn for a tenant."""
        now = now or utcnow()

        by_status = await self.subscription_repo.count_by_status(tenant_id)

        active = await self.subscription_repo.list_by_statuses(
            [SubscriptionStatus.ACTIVE], tenant_id=tenant_id
        )
        mrr = sum(
            (to_monthly_amount(s.price, s.interval, s.interval_count) for s in active),
            Decimal("0"),
        )
        addons = await self.addon_repo.list_active_for_subscriptions(
            [s.id for s in active]
        )
        mrr += sum(
            (
                to_monthly_amount(a.amount, a.interval, a.interval_count)
                for a in addons
            ),
            Decimal("0"),
        )

        window_start = now - timedelta(days=settings.churn_window_days)
        starting = await self.subscription_repo.count_existing_at(
            tenant_id, window_start
        )
        churned = await self.subscription_repo.count_cancelled_since(
            tenant_id, window_start
        )

        return SubscriptionStatistics(
            total=sum(by_status.values()),
            by_status=by_status,
            mrr=mrr.quantize(Decimal("0.01")),
            churn_rate=(churned / starting * 100) if starting else 0.0,
        )

    @trace_span
    async def expire_cancelled_subscriptions(
        self, now: Optional[datetime] = None
    ) -> int:
        """
        Expire CANCELLED subscriptions whose final period has ended.

        Each subscription is handled under its own lock and transaction.
        Locked subscriptions are skipped and picked up on the next run.

        Returns:
            Number of subscriptions expired
        """
        now = now or utcnow()
        lock_provider = get_lock_provider()
        expired = 0

        candidates = await self.subscription_repo.list_cancelled_past_period_end(now)
        for candidate in candidates:
            try:
                async with lock_provider.hold(
                    f"subscription:{candidate.id}",
                    settings.subscription_lock_ttl_seconds,
                ) as token:
                    if token is None:
                        logger.info(
                            f"Subscription {candidate.id} is locked, skipping expiry"
                        )
                        continue
                    if await self._expire_one(candidate.id, now):
                        expired += 1
            except Exception as e:
                logger.error(
                    f"Failed to expire subscription {candidate.id}: {e}",
                    exc_info=True,
                )

        logger.info(f"Expired {expired} cancelled subscription(s)")
        return expired

    async def _expire_one(self, subscription_id: int, now: datetime) -> bool:
        async with transaction():
            subscription = await self.subscription_repo.get_for_update(
                subscription_id
            )
            if (
                not subscription
                or subscription.status != SubscriptionStatus.CANCELLED
                or not subscription.cancel_at_period_end
                or subscription.current_period_end > now
            ):
                return False
            await self.subscription_repo.update(
                subscription_id,
                SubscriptionUpdateModel(
                    status=SubscriptionStatus.EXPIRED, ended_at=now
                ),
            )
        return True
