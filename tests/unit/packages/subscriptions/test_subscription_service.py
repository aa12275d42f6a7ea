"""
Unit tests for SubscriptionService.

Covers creation, the lifecycle transitions, addons, statistics and the
expiry batch.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from common.core.exceptions import (
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from packages.plans.models.database.plan import PlanAddonEntity
from packages.plans.models.domain.enums import BillingInterval
from packages.plans.models.domain.plan import PlanAddon
from packages.plans.services.plan_service import PlanService
from packages.subscriptions.models.domain.enums import PeriodStatus, SubscriptionStatus
from packages.subscriptions.models.domain.subscription import (
    SubscriptionCreateRequest,
)
from packages.subscriptions.repositories.subscription_period_repository import (
    SubscriptionPeriodRepository,
)
from packages.subscriptions.services.subscription_service import SubscriptionService

TENANT_ID = 1


async def _add_plan_addon(test_db, plan, price, interval, **values) -> PlanAddon:
    addon = PlanAddonEntity(
        plan_id=plan.id,
        name=values.pop("name", "Addon"),
        price=price,
        interval=interval.value,
        interval_count=1,
        **values,
    )
    test_db.add(addon)
    await test_db.commit()
    await test_db.refresh(addon)
    return PlanAddon.model_validate(addon)


class TestCreateSubscription:
    """Tests for SubscriptionService.create_subscription."""

    @pytest.fixture
    def service(self):
        return SubscriptionService()

    async def test_create_without_trial(
        self, service, test_db, sample_plan, now, published_events
    ):
        """Test a plan without trial starts ACTIVE for one full interval."""
        subscription = await service.create_subscription(
            TENANT_ID,
            SubscriptionCreateRequest(customer_id=7, plan_id=sample_plan.id),
            now=now,
        )

        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.price == Decimal("1000.00")
        assert subscription.interval == BillingInterval.MONTHLY
        assert subscription.current_period_start == now
        assert subscription.current_period_end == datetime(2026, 2, 15, 12, 0)
        assert subscription.next_billing_date == subscription.current_period_end
        assert subscription.trial_end is None

        periods = await SubscriptionPeriodRepository(test_db).list_for_subscription(
            subscription.id
        )
        assert len(periods) == 1
        assert periods[0].status == PeriodStatus.PENDING
        assert periods[0].amount == Decimal("1000.00")

        assert published_events.names() == ["subscription.created"]
        _, payload = published_events.events[0]
        assert payload["status"] == "active"
        assert payload["customer_id"] == 7

    async def test_create_with_plan_trial(self, service, trial_plan, now):
        """Test the plan's trial length opens a TRIAL period."""
        subscription = await service.create_subscription(
            TENANT_ID,
            SubscriptionCreateRequest(customer_id=7, plan_id=trial_plan.id),
            now=now,
        )

        assert subscription.status == SubscriptionStatus.TRIAL
        assert subscription.trial_start == now
        assert subscription.trial_end == now + timedelta(days=14)
        assert subscription.current_period_end == subscription.trial_end
        assert subscription.next_billing_date == subscription.trial_end

    async def test_request_trial_days_override_plan(self, service, trial_plan, now):
        """Test an explicit trial_days of zero skips the plan's trial."""
        subscription = await service.create_subscription(
            TENANT_ID,
            SubscriptionCreateRequest(
                customer_id=7, plan_id=trial_plan.id, trial_days=0
            ),
            now=now,
        )

        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.trial_end is None

    async def test_create_with_start_date(self, service, sample_plan, now):
        start = datetime(2026, 1, 31)
        subscription = await service.create_subscription(
            TENANT_ID,
            SubscriptionCreateRequest(
                customer_id=7, plan_id=sample_plan.id, start_date=start
            ),
            now=now,
        )

        assert subscription.started_at == start
        assert subscription.current_period_end == datetime(2026, 2, 28)

    async def test_create_on_missing_plan(self, service):
        with pytest.raises(NotFoundError):
            await service.create_subscription(
                TENANT_ID, SubscriptionCreateRequest(customer_id=7, plan_id=999)
            )

    async def test_create_on_other_tenants_plan(self, service, sample_plan):
        with pytest.raises(NotFoundError):
            await service.create_subscription(
                2, SubscriptionCreateRequest(customer_id=7, plan_id=sample_plan.id)
            )

    async def test_create_on_inactive_plan(
        self, service, sample_plan, published_events
    ):
        """Test inactive plans take no new subscribers and nothing is published."""
        await PlanService().toggle_plan_status(sample_plan.id, TENANT_ID)

        with pytest.raises(ConflictError):
            await service.create_subscription(
                TENANT_ID,
                SubscriptionCreateRequest(customer_id=7, plan_id=sample_plan.id),
            )
        assert published_events.events == []


class TestLifecycleTransitions:
    """Tests for cancel, reactivate, pause and resume."""

    @pytest.fixture
    def service(self):
        return SubscriptionService()

    async def test_cancel_at_period_end(
        self, service, sample_subscription, now, published_events
    ):
        """Test a default cancellation keeps the period running."""
        cancelled = await service.cancel_subscription(
            sample_subscription.id, TENANT_ID, reason="too expensive", now=now
        )

        assert cancelled.status == SubscriptionStatus.CANCELLED
        assert cancelled.cancel_at_period_end is True
        assert cancelled.cancelled_at == now
        assert cancelled.cancellation_reason == "too expensive"
        assert cancelled.ended_at is None
        assert cancelled.current_period_end == sample_subscription.current_period_end
        assert published_events.names() == ["subscription.cancelled"]

    async def test_cancel_immediately_expires(self, service, sample_subscription, now):
        cancelled = await service.cancel_subscription(
            sample_subscription.id, TENANT_ID, immediate=True, now=now
        )

        assert cancelled.status == SubscriptionStatus.EXPIRED
        assert cancelled.ended_at == now
        assert cancelled.cancel_at_period_end is False

    async def test_cancel_expired_subscription_fails(
        self, service, sample_plan, make_subscription
    ):
        """Test EXPIRED is terminal."""
        expired = await make_subscription(
            sample_plan, status=SubscriptionStatus.EXPIRED
        )

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await service.cancel_subscription(expired.id, TENANT_ID)

        assert exc_info.value.current_state == "expired"
        assert "current state is expired" in str(exc_info.value)

    async def test_cancel_other_tenant_is_not_found(self, service, sample_subscription):
        with pytest.raises(NotFoundError):
            await service.cancel_subscription(sample_subscription.id, 2)

    async def test_reactivate_within_period(
        self, service, sample_subscription, now, published_events
    ):
        """Test reactivation clears the pending cancellation."""
        await service.cancel_subscription(
            sample_subscription.id, TENANT_ID, reason="budget", now=now
        )

        reactivated = await service.reactivate_subscription(
            sample_subscription.id, TENANT_ID, now=now + timedelta(days=1)
        )

        assert reactivated.status == SubscriptionStatus.ACTIVE
        assert reactivated.cancel_at_period_end is False
        assert reactivated.cancelled_at is None
        assert reactivated.cancellation_reason is None
        assert published_events.names() == [
            "subscription.cancelled",
            "subscription.reactivated",
        ]

    async def test_reactivate_after_period_end_conflicts(
        self, service, sample_subscription, now
    ):
        await service.cancel_subscription(sample_subscription.id, TENANT_ID, now=now)
        after_end = sample_subscription.current_period_end + timedelta(seconds=1)

        with pytest.raises(ConflictError):
            await service.reactivate_subscription(
                sample_subscription.id, TENANT_ID, now=after_end
            )

    async def test_reactivate_active_subscription_fails(
        self, service, sample_subscription
    ):
        with pytest.raises(InvalidStateTransitionError):
            await service.reactivate_subscription(sample_subscription.id, TENANT_ID)

    async def test_pause_and_resume(self, service, sample_subscription, now):
        """Test a pause round trip clears the pause fields."""
        resume_at = now + timedelta(days=30)
        paused = await service.pause_subscription(
            sample_subscription.id,
            TENANT_ID,
            reason="seasonal",
            resume_at=resume_at,
            now=now,
        )

        assert paused.status == SubscriptionStatus.PAUSED
        assert paused.paused_at == now
        assert paused.pause_reason == "seasonal"
        assert paused.resume_at == resume_at

        resumed = await service.resume_subscription(sample_subscription.id, TENANT_ID)

        assert resumed.status == SubscriptionStatus.ACTIVE
        assert resumed.paused_at is None
        assert resumed.pause_reason is None
        assert resumed.resume_at is None

    async def test_pause_requires_active(self, service, trial_plan, make_subscription):
        trial = await make_subscription(trial_plan, status=SubscriptionStatus.TRIAL)

        with pytest.raises(InvalidStateTransitionError):
            await service.pause_subscription(trial.id, TENANT_ID)

    async def test_resume_requires_paused(self, service, sample_subscription):
        with pytest.raises(InvalidStateTransitionError):
            await service.resume_subscription(sample_subscription.id, TENANT_ID)

    async def test_paused_subscription_can_be_cancelled(
        self, service, sample_subscription, now
    ):
        await service.pause_subscription(sample_subscription.id, TENANT_ID, now=now)

        cancelled = await service.cancel_subscription(
            sample_subscription.id, TENANT_ID, now=now
        )

        assert cancelled.status == SubscriptionStatus.CANCELLED


class TestChangePlan:
    """Tests for SubscriptionService.change_plan."""

    @pytest.fixture
    def service(self):
        return SubscriptionService()

    async def test_deferred_change_keeps_period(
        self, service, sample_subscription, trial_plan, now, published_events
    ):
        """Test a deferred change swaps the plan but not the current period."""
        result = await service.change_plan(
            sample_subscription.id, TENANT_ID, trial_plan.id, now=now
        )

        subscription = result.subscription
        assert result.previous_plan_id == sample_subscription.plan_id
        assert result.immediate is False
        assert result.proration_amount is None
        assert subscription.plan_id == trial_plan.id
        assert subscription.price == Decimal("2000.00")
        assert (
            subscription.current_period_start
            == sample_subscription.current_period_start
        )
        assert subscription.current_period_end == sample_subscription.current_period_end

        assert published_events.names() == ["subscription.plan_changed"]
        _, payload = published_events.events[0]
        assert payload["previous_plan_id"] == sample_subscription.plan_id
        assert payload["new_plan_id"] == trial_plan.id

    async def test_immediate_change_restarts_period(
        self, service, test_db, sample_subscription, trial_plan, now
    ):
        """Test an immediate change opens a PENDING period at the new price."""
        result = await service.change_plan(
            sample_subscription.id, TENANT_ID, trial_plan.id, immediate=True, now=now
        )

        subscription = result.subscription
        assert subscription.current_period_start == now
        assert subscription.current_period_end == datetime(2026, 2, 15, 12, 0)
        assert subscription.next_billing_date == subscription.current_period_end

        periods = await SubscriptionPeriodRepository(test_db).list_for_subscription(
            sample_subscription.id
        )
        assert periods[0].start_date == now
        assert periods[0].amount == Decimal("2000.00")
        assert periods[0].status == PeriodStatus.PENDING

    async def test_prorate_uses_default_strategy(
        self, service, sample_subscription, trial_plan, now
    ):
        """Test the default strategy reports no proration amount."""
        result = await service.change_plan(
            sample_subscription.id, TENANT_ID, trial_plan.id, prorate=True, now=now
        )

        assert result.proration_amount is None

    async def test_change_requires_active(self, service, trial_plan, make_subscription):
        trial = await make_subscription(trial_plan, status=SubscriptionStatus.TRIAL)

        with pytest.raises(InvalidStateTransitionError):
            await service.change_plan(trial.id, TENANT_ID, trial_plan.id)

    async def test_change_to_missing_plan(self, service, sample_subscription):
        with pytest.raises(NotFoundError):
            await service.change_plan(sample_subscription.id, TENANT_ID, 999)


class TestAddons:
    """Tests for attaching and removing addons."""

    @pytest.fixture
    def service(self):
        return SubscriptionService()

    async def test_add_addon_snapshots_terms(
        self, service, sample_subscription, sample_addon, now
    ):
        attachment = await service.add_addon(
            sample_subscription.id, TENANT_ID, sample_addon.id, now=now
        )

        assert attachment.addon_id == sample_addon.id
        assert attachment.name == sample_addon.name
        assert attachment.price == Decimal("300.00")
        assert attachment.quantity == 1
        assert attachment.start_date == now
        assert attachment.is_active is True

    async def test_add_addon_uses_fixed_quantity(
        self, service, test_db, sample_subscription, sample_plan
    ):
        """Test an addon's own quantity applies when none is requested."""
        addon = await _add_plan_addon(
            test_db, sample_plan, Decimal("10"), BillingInterval.MONTHLY, quantity=5
        )

        attachment = await service.add_addon(
            sample_subscription.id, TENANT_ID, addon.id
        )

        assert attachment.quantity == 5
        assert attachment.amount == Decimal("50")

    async def test_add_addon_explicit_quantity(
        self, service, sample_subscription, sample_addon
    ):
        attachment = await service.add_addon(
            sample_subscription.id, TENANT_ID, sample_addon.id, quantity=3
        )

        assert attachment.amount == Decimal("900.00")

    async def test_add_addon_rejects_zero_quantity(
        self, service, sample_subscription, sample_addon
    ):
        with pytest.raises(ValidationError):
            await service.add_addon(
                sample_subscription.id, TENANT_ID, sample_addon.id, quantity=0
            )

    async def test_add_addon_twice_conflicts(
        self, service, sample_subscription, sample_addon
    ):
        await service.add_addon(sample_subscription.id, TENANT_ID, sample_addon.id)

        with pytest.raises(ConflictError):
            await service.add_addon(sample_subscription.id, TENANT_ID, sample_addon.id)

    async def test_add_addon_from_other_plan(
        self, service, test_db, sample_subscription, trial_plan
    ):
        addon = await _add_plan_addon(
            test_db, trial_plan, Decimal("10"), BillingInterval.MONTHLY
        )

        with pytest.raises(ValidationError):
            await service.add_addon(sample_subscription.id, TENANT_ID, addon.id)

    async def test_add_inactive_addon_conflicts(
        self, service, test_db, sample_subscription, sample_plan
    ):
        addon = await _add_plan_addon(
            test_db,
            sample_plan,
            Decimal("10"),
            BillingInterval.MONTHLY,
            is_active=False,
        )

        with pytest.raises(ConflictError):
            await service.add_addon(sample_subscription.id, TENANT_ID, addon.id)

    async def test_add_addon_requires_active_subscription(
        self, service, sample_plan, sample_addon, make_subscription
    ):
        paused = await make_subscription(sample_plan, status=SubscriptionStatus.PAUSED)

        with pytest.raises(InvalidStateTransitionError):
            await service.add_addon(paused.id, TENANT_ID, sample_addon.id)

    async def test_remove_and_reattach(
        self, service, sample_subscription, sample_addon, now
    ):
        """Test a removed addon can be attached again."""
        attachment = await service.add_addon(
            sample_subscription.id, TENANT_ID, sample_addon.id
        )

        removed = await service.remove_addon(attachment.id, TENANT_ID, now=now)
        again = await service.add_addon(
            sample_subscription.id, TENANT_ID, sample_addon.id
        )

        assert removed.is_active is False
        assert removed.end_date == now
        assert again.id != attachment.id

    async def test_remove_addon_twice_conflicts(
        self, service, sample_subscription, sample_addon
    ):
        attachment = await service.add_addon(
            sample_subscription.id, TENANT_ID, sample_addon.id
        )
        await service.remove_addon(attachment.id, TENANT_ID)

        with pytest.raises(ConflictError):
            await service.remove_addon(attachment.id, TENANT_ID)

    async def test_subscription_details(
        self, service, sample_subscription, sample_addon
    ):
        """Test details list only active addons."""
        await service.add_addon(sample_subscription.id, TENANT_ID, sample_addon.id)

        details = await service.get_subscription_details(
            sample_subscription.id, TENANT_ID
        )

        assert details.subscription.id == sample_subscription.id
        assert [a.addon_id for a in details.addons] == [sample_addon.id]


class TestStatistics:
    """Tests for SubscriptionService.get_statistics."""

    @pytest.fixture
    def service(self):
        return SubscriptionService()

    async def test_mrr_includes_normalised_addons(
        self, service, test_db, sample_subscription, sample_plan, now
    ):
        """Test 1000 monthly plus a 1200 yearly addon is 1100 per month."""
        addon = await _add_plan_addon(
            test_db, sample_plan, Decimal("1200.00"), BillingInterval.YEARLY
        )
        await service.add_addon(sample_subscription.id, TENANT_ID, addon.id)

        stats = await service.get_statistics(TENANT_ID, now=now)

        assert stats.mrr == Decimal("1100.00")
        assert stats.total == 1
        assert stats.by_status == {"active": 1}

    async def test_mrr_ignores_non_active(
        self, service, sample_plan, make_subscription
    ):
        await make_subscription(sample_plan, status=SubscriptionStatus.TRIAL)
        await make_subscription(sample_plan, status=SubscriptionStatus.PAST_DUE)

        stats = await service.get_statistics(TENANT_ID)

        assert stats.mrr == Decimal("0.00")
        assert stats.total == 2

    async def test_churn_rate(self, service, sample_plan, make_subscription, now):
        """Test 2 of 10 subscriptions cancelled in the window is 20%."""
        start = now - timedelta(days=60)
        for customer_id in range(8):
            await make_subscription(
                sample_plan, customer_id=customer_id, period_start=start
            )
        for customer_id in range(8, 10):
            await make_subscription(
                sample_plan,
                status=SubscriptionStatus.CANCELLED,
                customer_id=customer_id,
                period_start=start,
                cancelled_at=now - timedelta(days=5),
                cancel_at_period_end=True,
            )

        stats = await service.get_statistics(TENANT_ID, now=now)

        assert stats.churn_rate == pytest.approx(20.0)
        assert stats.by_status == {"active": 8, "cancelled": 2}

    async def test_empty_tenant(self, service):
        stats = await service.get_statistics(TENANT_ID)

        assert stats.total == 0
        assert stats.churn_rate == 0.0


class TestExpireCancelled:
    """Tests for SubscriptionService.expire_cancelled_subscriptions."""

    @pytest.fixture
    def service(self):
        return SubscriptionService()

    async def test_expires_only_ended_periods(
        self, service, sample_plan, make_subscription, now
    ):
        ended = await make_subscription(
            sample_plan,
            status=SubscriptionStatus.CANCELLED,
            period_start=now - timedelta(days=40),
            period_end=now - timedelta(days=1),
            cancel_at_period_end=True,
            cancelled_at=now - timedelta(days=20),
        )
        running = await make_subscription(
            sample_plan,
            status=SubscriptionStatus.CANCELLED,
            cancel_at_period_end=True,
            cancelled_at=now - timedelta(days=2),
        )

        count = await service.expire_cancelled_subscriptions(now=now)

        assert count == 1
        assert (
            await service.get_subscription(ended.id, TENANT_ID)
        ).status == SubscriptionStatus.EXPIRED
        assert (
            await service.get_subscription(running.id, TENANT_ID)
        ).status == SubscriptionStatus.CANCELLED

    async def test_second_run_expires_nothing(
        self, service, sample_plan, make_subscription, now
    ):
        await make_subscription(
            sample_plan,
            status=SubscriptionStatus.CANCELLED,
            period_end=now - timedelta(days=1),
            period_start=now - timedelta(days=31),
            cancel_at_period_end=True,
        )

        assert await service.expire_cancelled_subscriptions(now=now) == 1
        assert await service.expire_cancelled_subscriptions(now=now) == 0

    async def test_locked_subscription_is_skipped(
        self, service, sample_plan, make_subscription, lock_provider, now
    ):
        """Test a subscription held by another worker waits for the next run."""
        ended = await make_subscription(
            sample_plan,
            status=SubscriptionStatus.CANCELLED,
            period_start=now - timedelta(days=31),
            period_end=now - timedelta(days=1),
            cancel_at_period_end=True,
        )
        await lock_provider.acquire_lock(f"subscription:{ended.id}", 60)

        assert await service.expire_cancelled_subscriptions(now=now) == 0
        assert (
            await service.get_subscription(ended.id, TENANT_ID)
        ).status == SubscriptionStatus.CANCELLED
