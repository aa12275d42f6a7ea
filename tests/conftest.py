# Shared pytest configuration and fixtures for all test types
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from common.db.base import Base
from common.providers.events import set_event_publisher
from common.providers.events.memory_publisher import InMemoryEventPublisher
from common.providers.locking import set_lock_provider
from common.providers.locking.memory_lock import InMemoryLock
from packages.billing.models.database.invoice import (  # noqa
    InvoiceEntity,
    InvoiceSequenceEntity,
)
from packages.billing.providers.notifications import set_notification_provider
from packages.plans.models.database.plan import PlanEntity, PlanAddonEntity
from packages.plans.models.domain.enums import BillingInterval
from packages.plans.models.domain.plan import Plan, PlanAddon
from packages.subscriptions.models.database.subscription import (
    SubscriptionEntity,
    SubscriptionAddonEntity,  # noqa
    SubscriptionPeriodEntity,  # noqa
)
from packages.subscriptions.models.domain.enums import SubscriptionStatus
from packages.subscriptions.models.domain.subscription import Subscription
from packages.usage.models.database.usage import UsageRecordEntity  # noqa

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TENANT_ID = 1
OTHER_TENANT_ID = 2


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)
    monkeypatch.setattr(
        "common.db.scoped.AsyncSessionLocalReadonly", test_session_factory
    )


@pytest.fixture(autouse=True)
def lock_provider():
    """Fresh in-process lock table per test."""
    provider = InMemoryLock()
    set_lock_provider(provider)
    yield provider
    set_lock_provider(None)


@pytest.fixture(autouse=True)
def published_events():
    """Capture published events instead of sending them anywhere."""
    publisher = InMemoryEventPublisher()
    set_event_publisher(publisher)
    yield publisher
    set_event_publisher(None)


@pytest.fixture(autouse=True)
def reset_notification_provider():
    set_notification_provider(None)
    yield
    set_notification_provider(None)


@pytest.fixture
def now():
    """Fixed clock for lifecycle tests."""
    return datetime(2026, 1, 15, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def sample_plan(test_db: AsyncSession):
    """Monthly plan at 1000.00 with no trial."""
    plan = PlanEntity(
        tenant_id=TENANT_ID,
        name="Pro",
        price=Decimal("1000.00"),
        interval=BillingInterval.MONTHLY.value,
        interval_count=1,
        currency="USD",
        trial_days=0,
        features=["reports"],
        max_users=10,
        custom_limits={"api_calls": 1000, "priority_support": True},
        is_active=True,
    )
    test_db.add(plan)
    await test_db.commit()
    await test_db.refresh(plan)
    return Plan.model_validate(plan)


@pytest_asyncio.fixture(scope="function")
async def trial_plan(test_db: AsyncSession):
    """Monthly plan at 2000.00 with a 14 day trial."""
    plan = PlanEntity(
        tenant_id=TENANT_ID,
        name="Business",
        price=Decimal("2000.00"),
        interval=BillingInterval.MONTHLY.value,
        interval_count=1,
        currency="USD",
        trial_days=14,
        features=[],
        custom_limits={},
        is_active=True,
    )
    test_db.add(plan)
    await test_db.commit()
    await test_db.refresh(plan)
    return Plan.model_validate(plan)


@pytest_asyncio.fixture(scope="function")
async def sample_addon(test_db: AsyncSession, sample_plan):
    """Monthly addon at 300.00 on the sample plan."""
    addon = PlanAddonEntity(
        plan_id=sample_plan.id,
        name="Extra seats",
        price=Decimal("300.00"),
        interval=BillingInterval.MONTHLY.value,
        interval_count=1,
        is_active=True,
    )
    test_db.add(addon)
    await test_db.commit()
    await test_db.refresh(addon)
    return PlanAddon.model_validate(addon)


@pytest_asyncio.fixture(scope="function")
async def make_subscription(test_db: AsyncSession, now):
    """Factory that inserts a subscription on a plan, defaulting to ACTIVE."""

    async def _make(
        plan: Plan,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        customer_id: int = 100,
        period_start: datetime = None,
        period_end: datetime = None,
        **overrides,
    ) -> Subscription:
        period_start = period_start or now - timedelta(days=10)
        period_end = period_end or period_start + timedelta(days=31)
        values = dict(
            tenant_id=plan.tenant_id,
            customer_id=customer_id,
            plan_id=plan.id,
            status=status.value,
            price=plan.price,
            interval=plan.interval.value,
            interval_count=plan.interval_count,
            currency=plan.currency,
            current_period_start=period_start,
            current_period_end=period_end,
            next_billing_date=period_end,
            started_at=period_start,
            created_at=period_start,
        )
        values.update(overrides)
        subscription = SubscriptionEntity(**values)
        test_db.add(subscription)
        await test_db.commit()
        await test_db.refresh(subscription)
        return Subscription.model_validate(subscription)

    return _make


@pytest_asyncio.fixture(scope="function")
async def sample_subscription(make_subscription, sample_plan):
    """ACTIVE subscription on the sample plan, mid-period."""
    return await make_subscription(sample_plan)
