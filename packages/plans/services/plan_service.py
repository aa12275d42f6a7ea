"""
Service for the tenant plan catalog.
"""

from decimal import Decimal
from typing import List, Optional

from common.core.exceptions import ConflictError, NotFoundError, ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.context import readonly
from packages.plans.models.domain.plan import (
    Plan,
    PlanAddon,
    PlanAddonCreateModel,
    PlanAddonUpdateModel,
    PlanComparison,
    PlanCreateModel,
    PlanStatistics,
    PlanUpdateModel,
    PlanWithAddons,
)
from packages.plans.repositories.plan_repository import (
    PlanAddonRepository,
    PlanRepository,
)
from packages.plans.utils.periods import to_monthly_amount, validate_interval
from packages.subscriptions.models.domain.enums import SubscriptionStatus
from packages.subscriptions.repositories.subscription_repository import (
    SubscriptionRepository,
)
from packages.subscriptions.repositories.subscription_addon_repository import (
    SubscriptionAddonRepository,
)

logger = get_logger(__name__)

# Subscriptions in these states block hard deletion of their plan
_BLOCKING_STATUSES = (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE)


def _validate_interval_update(data, current) -> None:
    """Validate the interval pair a partial update would leave on the row."""
    fields = data.model_fields_set
    if "interval" not in fields and "interval_count" not in fields:
        return
    for name in ("interval", "interval_count"):
        if name in fields and getattr(data, name) is None:
            raise ValidationError(f"{name} cannot be cleared")

    validate_interval(
        data.interval if "interval" in fields else current.interval,
        data.interval_count if "interval_count" in fields else current.interval_count,
    )


class PlanService:
    """Service for plan and addon definitions."""

    def __init__(self):
        self.plan_repo = PlanRepository()
        self.addon_repo = PlanAddonRepository()
        self.subscription_repo = SubscriptionRepository()
        self.subscription_addon_repo = SubscriptionAddonRepository()

    @trace_span
    async def list_plans(
        self, tenant_id: int, is_active: Optional[bool] = None
    ) -> List[Plan]:
        return await self.plan_repo.list_by_tenant(tenant_id, is_active=is_active)

    @trace_span
    async def get_plan(self, plan_id: int, tenant_id: int) -> Plan:
        """Get a tenant's plan. Plans of other tenants read as missing."""
        plan = await self.plan_repo.get(plan_id, tenant_id=tenant_id)
        if not plan:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    @trace_span
    async def get_plan_with_addons(
        self, plan_id: int, tenant_id: int
    ) -> PlanWithAddons:
        plan = await self.get_plan(plan_id, tenant_id)
        addons = await self.addon_repo.list_by_plan(plan_id, active_only=True)
        return PlanWithAddons(plan=plan, addons=addons)

    @trace_span
    async def create_plan(self, tenant_id: int, data: PlanCreateModel) -> Plan:
        validate_interval(data.interval, data.interval_count)

        plan = await self.plan_repo.create(data, tenant_id=tenant_id)

        logger.info(
            f"Created plan {plan.id} for tenant {tenant_id}",
            extra={
                "plan_id": plan.id,
                "tenant_id": tenant_id,
                "price": str(plan.price),
                "interval": plan.interval.value,
            },
        )
        return plan

    @trace_span
    async def update_plan(
        self, plan_id: int, tenant_id: int, data: PlanUpdateModel
    ) -> Plan:
        """Partially update a plan. Subscribers keep their snapshotted price."""
        plan = await self.get_plan(plan_id, tenant_id)

        _validate_interval_update(data, plan)

        updated = await self.plan_repo.update(plan_id, data)
        logger.info(
            f"Updated plan {plan_id}",
            extra={
                "plan_id": plan_id,
                "tenant_id": tenant_id,
                "fields": sorted(data.model_dump(exclude_unset=True)),
            },
        )
        return updated

    @trace_span
    async def toggle_plan_status(self, plan_id: int, tenant_id: int) -> Plan:
        plan = await self.get_plan(plan_id, tenant_id)
        updated = await self.plan_repo.update(
            plan_id, PlanUpdateModel(is_active=not plan.is_active)
        )
        logger.info(
            f"Plan {plan_id} is now {'active' if updated.is_active else 'inactive'}",
            extra={"plan_id": plan_id, "tenant_id": tenant_id},
        )
        return updated

    @trace_span
    async def delete_plan(self, plan_id: int, tenant_id: int) -> bool:
        """
        Hard-delete a plan.

        Raises:
            ConflictError: if any TRIAL or ACTIVE subscription is on the plan;
                the plan should be deactivated instead.
        """
        await self.get_plan(plan_id, tenant_id)

        blocking = await self.subscription_repo.count_by_plan(
            plan_id, _BLOCKING_STATUSES
        )
        if blocking > 0:
            raise ConflictError(
                f"Plan {plan_id} has {blocking} trial or active subscription(s); "
                "deactivate the plan instead of deleting it"
            )

        deleted = await self.plan_repo.delete(plan_id)
        logger.info(
            f"Deleted plan {plan_id}",
            extra={"plan_id": plan_id, "tenant_id": tenant_id},
        )
        return deleted

    @trace_span
    async def create_addon(
        self, plan_id: int, tenant_id: int, data: PlanAddonCreateModel
    ) -> PlanAddon:
        await self.get_plan(plan_id, tenant_id)
        validate_interval(data.interval, data.interval_count)

        addon = await self.addon_repo.create(data, plan_id=plan_id)
        logger.info(
            f"Created addon {addon.id} on plan {plan_id}",
            extra={"addon_id": addon.id, "plan_id": plan_id, "tenant_id": tenant_id},
        )
        return addon

    @trace_span
    async def get_addon(self, addon_id: int, tenant_id: int) -> PlanAddon:
        addon = await self.addon_repo.get_for_tenant(addon_id, tenant_id)
        if not addon:
            raise NotFoundError(f"Addon {addon_id} not found")
        return addon

    @trace_span
    async def update_addon(
        self, addon_id: int, tenant_id: int, data: PlanAddonUpdateModel
    ) -> PlanAddon:
        addon = await self.get_addon(addon_id, tenant_id)
        _validate_interval_update(data, addon)
        return await self.addon_repo.update(addon_id, data)

    @trace_span
    async def delete_addon(self, addon_id: int, tenant_id: int) -> bool:
        """
        Hard-delete an addon.

        Raises:
            ConflictError: if any active subscription attachment references it.
        """
        await self.get_addon(addon_id, tenant_id)

        attached = await self.subscription_addon_repo.count_active_by_addon(addon_id)
        if attached > 0:
            raise ConflictError(
                f"Addon {addon_id} is attached to {attached} subscription(s)"
            )
        return await self.addon_repo.delete(addon_id)

    @trace_span
    @readonly
    async def get_plan_statistics(self, plan_id: int, tenant_id: int) -> PlanStatistics:
        await self.get_plan(plan_id, tenant_id)

        counts = await self.subscription_repo.count_by_status(
            tenant_id, plan_id=plan_id
        )
        total = sum(counts.values())
        active = counts.get(SubscriptionStatus.ACTIVE.value, 0)

        active_subscriptions = await self.subscription_repo.list_by_statuses(
            [SubscriptionStatus.ACTIVE], tenant_id=tenant_id, plan_id=plan_id
        )
        mrr = sum(
            (
                to_monthly_amount(s.price, s.interval, s.interval_count)
                for s in active_subscriptions
            ),
            Decimal("0"),
        )

        return PlanStatistics(
            plan_id=plan_id,
            total_subscriptions=total,
            active_subscriptions=active,
            trial_subscriptions=counts.get(SubscriptionStatus.TRIAL.value, 0),
            paused_subscriptions=counts.get(SubscriptionStatus.PAUSED.value, 0),
            past_due_subscriptions=counts.get(SubscriptionStatus.PAST_DUE.value, 0),
            cancelled_subscriptions=counts.get(SubscriptionStatus.CANCELLED.value, 0)
            + counts.get(SubscriptionStatus.EXPIRED.value, 0),
            mrr=mrr.quantize(Decimal("0.01")),
            conversion_rate=(active / total * 100) if total else 0.0,
        )

    @trace_span
    async def compare_plans(
        self, current_plan_id: int, new_plan_id: int, tenant_id: int
    ) -> PlanComparison:
        current = await self.get_plan(current_plan_id, tenant_id)
        new = await self.get_plan(new_plan_id, tenant_id)

        difference = new.price - current.price
        percentage = (
            float(difference / current.price * 100) if current.price else 0.0
        )

        return PlanComparison(
            current_plan=current,
            new_plan=new,
            price_difference=difference,
            percentage_change=percentage,
            is_upgrade=difference > 0,
            is_downgrade=difference < 0,
        )
