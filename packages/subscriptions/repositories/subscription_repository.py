"""
Repository for subscription data access.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional
from sqlalchemy import select, func

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.subscriptions.models.database.subscription import SubscriptionEntity
from packages.subscriptions.models.domain.enums import SubscriptionStatus
from packages.subscriptions.models.domain.subscription import Subscription


def _values(statuses: Iterable[SubscriptionStatus]) -> List[str]:
    return [s.value for s in statuses]


_CHURNED = [s for s in SubscriptionStatus if s.is_churned()]


class SubscriptionRepository(BaseRepository[SubscriptionEntity, Subscription]):
    """Repository for managing subscriptions."""

    def __init__(self, db_session=None):
        super().__init__(SubscriptionEntity, Subscription, db_session)

    @trace_span
    async def list_by_tenant(
        self,
        tenant_id: int,
        status: Optional[SubscriptionStatus] = None,
        customer_id: Optional[int] = None,
        plan_id: Optional[int] = None,
    ) -> List[Subscription]:
        """List a tenant's subscriptions, newest first."""
        query = select(SubscriptionEntity).where(
            SubscriptionEntity.tenant_id == tenant_id
        )
        if status is not None:
            query = query.where(SubscriptionEntity.status == status.value)
        if customer_id is not None:
            query = query.where(SubscriptionEntity.customer_id == customer_id)
        if plan_id is not None:
            query = query.where(SubscriptionEntity.plan_id == plan_id)
        query = query.order_by(
            SubscriptionEntity.created_at.desc(), SubscriptionEntity.id.desc()
        )

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_by_statuses(
        self,
        statuses: Iterable[SubscriptionStatus],
        tenant_id: Optional[int] = None,
        plan_id: Optional[int] = None,
    ) -> List[Subscription]:
        query = select(SubscriptionEntity).where(
            SubscriptionEntity.status.in_(_values(statuses))
        )
        if tenant_id is not None:
            query = self._add_tenant_filter(query, tenant_id)
        if plan_id is not None:
            query = query.where(SubscriptionEntity.plan_id == plan_id)

        async with self._get_session() as session:
            result = await session.execute(query.order_by(SubscriptionEntity.id))
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def count_by_plan(
        self, plan_id: int, statuses: Iterable[SubscriptionStatus]
    ) -> int:
        """Count subscriptions on a plan whose status is one of `statuses`."""
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count(SubscriptionEntity.id)).where(
                    SubscriptionEntity.plan_id == plan_id,
                    SubscriptionEntity.status.in_(_values(statuses)),
                )
            )
            return result.scalar_one()

    @trace_span
    async def count_by_status(
        self, tenant_id: int, plan_id: Optional[int] = None
    ) -> Dict[str, int]:
        """Subscription counts grouped by status value."""
        query = select(SubscriptionEntity.status, func.count(SubscriptionEntity.id))
        query = self._add_tenant_filter(query, tenant_id)
        if plan_id is not None:
            query = query.where(SubscriptionEntity.plan_id == plan_id)
        query = query.group_by(SubscriptionEntity.status)

        async with self._get_session() as session:
            result = await session.execute(query)
            return {status: count for status, count in result.all()}

    @trace_span
    async def count_existing_at(self, tenant_id: int, at: datetime) -> int:
        """
        Subscriptions created on or before `at` that were running at some point
        (ACTIVE now, or since cancelled/expired). Churn denominator.
        """
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count(SubscriptionEntity.id)).where(
                    SubscriptionEntity.tenant_id == tenant_id,
                    SubscriptionEntity.created_at <= at,
                    SubscriptionEntity.status.in_(
                        _values([SubscriptionStatus.ACTIVE, *_CHURNED])
                    ),
                )
            )
            return result.scalar_one()

    @trace_span
    async def count_cancelled_since(self, tenant_id: int, since: datetime) -> int:
        """Subscriptions cancelled at or after `since`. Churn numerator."""
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count(SubscriptionEntity.id)).where(
                    SubscriptionEntity.tenant_id == tenant_id,
                    SubscriptionEntity.cancelled_at >= since,
                    SubscriptionEntity.status.in_(_values(_CHURNED)),
                )
            )
            return result.scalar_one()

    @trace_span
    async def list_due_for_billing(self, now: datetime) -> List[Subscription]:
        """TRIAL/ACTIVE subscriptions whose billing date has arrived."""
        query = (
            select(SubscriptionEntity)
            .where(
                SubscriptionEntity.status.in_(
                    _values((SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL))
                ),
                SubscriptionEntity.next_billing_date <= now,
            )
            .order_by(SubscriptionEntity.next_billing_date, SubscriptionEntity.id)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_expired_trials(self, now: datetime) -> List[Subscription]:
        query = (
            select(SubscriptionEntity)
            .where(
                SubscriptionEntity.status == SubscriptionStatus.TRIAL.value,
                SubscriptionEntity.trial_end <= now,
            )
            .order_by(SubscriptionEntity.trial_end, SubscriptionEntity.id)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_cancelled_past_period_end(
        self, now: datetime
    ) -> List[Subscription]:
        query = (
            select(SubscriptionEntity)
            .where(
                SubscriptionEntity.status == SubscriptionStatus.CANCELLED.value,
                SubscriptionEntity.cancel_at_period_end.is_(True),
                SubscriptionEntity.current_period_end <= now,
            )
            .order_by(SubscriptionEntity.id)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())
