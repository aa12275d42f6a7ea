from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy import text

from common.db.base import Base
from common.db.scoped import get_session, transaction
from common.db.context import (
    get_current_session,
    in_transaction,
    is_readonly_forced,
    readonly,
)
from packages.plans.models.database.plan import PlanEntity


# Separate engine so commits are real, not savepoints of the shared test connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _plan(name: str) -> PlanEntity:
    return PlanEntity(
        tenant_id=1, name=name, price=Decimal("10.00"), interval="monthly"
    )


async def _plan_names(session_factory, pattern: str):
    async with session_factory() as verify_session:
        result = await verify_session.execute(
            text("SELECT name FROM plans WHERE name LIKE :pattern ORDER BY name"),
            {"pattern": pattern},
        )
        return [row[0] for row in result.fetchall()]


@pytest_asyncio.fixture(scope="function")
async def scoped_test_engine():
    """Create a test engine for scoped session tests."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def scoped_session_factory(scoped_test_engine):
    return async_sessionmaker(
        scoped_test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def patch_session_factories(scoped_session_factory, monkeypatch):
    """Patch the session factories in scoped.py to use the scoped test engine."""
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", scoped_session_factory)
    monkeypatch.setattr(
        "common.db.scoped.AsyncSessionLocalReadonly", scoped_session_factory
    )
    yield


class TestTransaction:
    """Test the transaction() context manager with real database."""

    async def test_transaction_commits_on_success(
        self, patch_session_factories, scoped_session_factory
    ):
        async with transaction() as session:
            session.add(_plan("Committed Plan"))

        assert await _plan_names(scoped_session_factory, "Committed%") == [
            "Committed Plan"
        ]

    async def test_transaction_rollback_on_exception(
        self, patch_session_factories, scoped_session_factory
    ):
        """Test that an exception rolls back everything written in the block."""
        with pytest.raises(ValueError):
            async with transaction() as session:
                session.add(_plan("Rolled Back Plan"))
                await session.flush()
                raise ValueError("Simulated error")

        assert await _plan_names(scoped_session_factory, "Rolled Back%") == []

    async def test_transaction_sets_session_in_context(self, patch_session_factories):
        async with transaction():
            captured_session = get_current_session(readonly=False)
            was_in_transaction = in_transaction(readonly=False)

        assert captured_session is not None
        assert was_in_transaction is True
        assert get_current_session(readonly=False) is None
        assert in_transaction(readonly=False) is False

    async def test_nested_transaction_reuses_session(self, patch_session_factories):
        """Test that nested transaction() calls join the outer unit of work."""
        async with transaction() as outer_session:
            async with transaction() as inner_session:
                async with get_session() as innermost_session:
                    assert inner_session is outer_session
                    assert innermost_session is outer_session

    async def test_nested_failure_rolls_back_outer(
        self, patch_session_factories, scoped_session_factory
    ):
        """Test an error in a nested block discards the outer writes too."""
        with pytest.raises(ValueError):
            async with transaction() as outer_session:
                outer_session.add(_plan("Outer Plan"))
                await outer_session.flush()

                async with transaction() as inner_session:
                    inner_session.add(_plan("Inner Plan"))
                    await inner_session.flush()
                    raise ValueError("Error in nested transaction")

        assert await _plan_names(scoped_session_factory, "%er Plan") == []


class TestGetSession:
    """Test the get_session() context manager with real database."""

    async def test_standalone_get_session_commits(
        self, patch_session_factories, scoped_session_factory
    ):
        async with get_session() as session:
            session.add(_plan("GetSession Plan"))

        assert await _plan_names(scoped_session_factory, "GetSession%") == [
            "GetSession Plan"
        ]

    async def test_get_session_does_not_commit_when_reusing(
        self, patch_session_factories, scoped_session_factory
    ):
        """Test a nested get_session leaves the commit to the transaction."""
        async with transaction() as tx_session:
            async with get_session() as session:
                session.add(_plan("Nested Plan"))
                await session.flush()

            result = await tx_session.execute(
                text("SELECT name FROM plans WHERE name = 'Nested Plan'")
            )
            assert result.fetchone() is not None

        assert await _plan_names(scoped_session_factory, "Nested%") == ["Nested Plan"]


class TestReadonlyBehavior:
    """Test readonly session behavior."""

    async def test_readonly_decorator_forces_flag(self, patch_session_factories):
        @readonly
        async def read_something():
            assert is_readonly_forced() is True
            async with get_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar()

        assert await read_something() == 1
        assert is_readonly_forced() is False
