"""
Unit tests for the trigger registry and the scheduler worker.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from packages.scheduling import SchedulerWorker, TriggerRegistry, build_default_registry
from packages.subscriptions.models.domain.enums import SubscriptionStatus

NOW = datetime(2026, 1, 15, 12, 0)


class TestTriggerRegistry:
    """Tests for TriggerRegistry."""

    async def test_new_trigger_is_due(self):
        registry = TriggerRegistry()
        registry.register("hourly", timedelta(hours=1), AsyncMock(return_value=0))

        assert [t.name for t in registry.due(NOW)] == ["hourly"]

    async def test_duplicate_name_rejected(self):
        registry = TriggerRegistry()
        registry.register("daily", timedelta(days=1), AsyncMock(return_value=0))

        with pytest.raises(ValueError):
            registry.register("daily", timedelta(days=1), AsyncMock(return_value=0))

    async def test_run_due_respects_cadence(self):
        """Test a trigger runs again only after its cadence has elapsed."""
        handler = AsyncMock(return_value=3)
        registry = TriggerRegistry()
        registry.register("hourly", timedelta(hours=1), handler)

        first = await registry.run_due(NOW)
        too_soon = await registry.run_due(NOW + timedelta(minutes=59))
        later = await registry.run_due(NOW + timedelta(hours=1))

        assert first == {"hourly": 3}
        assert too_soon == {}
        assert later == {"hourly": 3}
        assert handler.await_count == 2
        handler.assert_awaited_with(NOW + timedelta(hours=1))

    async def test_run_due_in_registration_order(self):
        calls = []

        def recorder(name):
            async def handler(now):
                calls.append(name)
                return 0

            return handler

        registry = TriggerRegistry()
        for name in ("b", "a", "c"):
            registry.register(name, timedelta(days=1), recorder(name))

        await registry.run_due(NOW)

        assert calls == ["b", "a", "c"]

    async def test_failing_handler_does_not_stop_others(self):
        """Test a failure counts as 0 and still waits a full cadence."""
        registry = TriggerRegistry()
        registry.register(
            "broken", timedelta(hours=1), AsyncMock(side_effect=RuntimeError("boom"))
        )
        registry.register("healthy", timedelta(hours=1), AsyncMock(return_value=2))

        results = await registry.run_due(NOW)

        assert results == {"broken": 0, "healthy": 2}
        assert registry.get("broken").last_run == NOW
        assert registry.due(NOW + timedelta(minutes=30)) == []


class TestDefaultRegistry:
    """Tests for build_default_registry."""

    def test_triggers_and_cadences(self):
        registry = build_default_registry()

        assert [(t.name, t.cadence) for t in registry.triggers] == [
            ("process_due_invoices", timedelta(days=1)),
            ("trial_expiration", timedelta(hours=1)),
            ("expire_cancelled_subscriptions", timedelta(days=1)),
            ("past_due_detection", timedelta(hours=6)),
            ("payment_reminders", timedelta(days=1)),
            ("usage_retention", timedelta(days=7)),
        ]

    async def test_handlers_delegate_to_services(self):
        billing = AsyncMock()
        billing.process_due_invoices.return_value = 4
        billing.convert_expired_trials.return_value = 1
        billing.mark_overdue_invoices.return_value = 0
        billing.send_payment_reminders.return_value = 2
        subscriptions = AsyncMock()
        subscriptions.expire_cancelled_subscriptions.return_value = 3
        usage = AsyncMock()
        usage.cleanup_usage_records.return_value = 10

        registry = build_default_registry(
            billing_service=billing,
            subscription_service=subscriptions,
            usage_service=usage,
        )

        results = await registry.run_due(NOW)

        assert results == {
            "process_due_invoices": 4,
            "trial_expiration": 1,
            "expire_cancelled_subscriptions": 3,
            "past_due_detection": 0,
            "payment_reminders": 2,
            "usage_retention": 10,
        }
        billing.process_due_invoices.assert_awaited_once_with(NOW)
        usage.cleanup_usage_records.assert_awaited_once_with(NOW, 90)

    async def test_trial_expiration_end_to_end(
        self, expired_trial_subscription, published_events
    ):
        """Test one scheduler pass converts an ended trial exactly once."""
        registry = build_default_registry()

        results = await registry.run_due(NOW)

        assert results["trial_expiration"] + results["process_due_invoices"] == 1
        assert published_events.names().count("invoice.created") == 1


@pytest.fixture
async def expired_trial_subscription(make_subscription, trial_plan):
    trial_end = NOW - timedelta(hours=1)
    return await make_subscription(
        trial_plan,
        status=SubscriptionStatus.TRIAL,
        period_start=trial_end - timedelta(days=14),
        period_end=trial_end,
        trial_end=trial_end,
    )


class TestSchedulerWorker:
    """Tests for SchedulerWorker."""

    async def test_tick_runs_due_triggers(self):
        handler = AsyncMock(return_value=1)
        registry = TriggerRegistry()
        registry.register("job", timedelta(minutes=5), handler)
        worker = SchedulerWorker(registry=registry, tick_seconds=1)

        assert await worker.tick() == {"job": 1}
        handler.assert_awaited_once()

    def test_default_tick_from_settings(self):
        worker = SchedulerWorker(registry=TriggerRegistry())

        assert worker.tick_seconds == 60
        assert worker.running is False
