"""
Repository for subscription billing periods.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.subscriptions.models.database.subscription import (
    SubscriptionPeriodEntity,
)
from packages.subscriptions.models.domain.enums import PeriodStatus
from packages.subscriptions.models.domain.subscription import SubscriptionPeriod


class SubscriptionPeriodRepository(
    BaseRepository[SubscriptionPeriodEntity, SubscriptionPeriod]
):
    """Repository for subscription periods."""

    def __init__(self, db_session=None):
        super().__init__(SubscriptionPeriodEntity, SubscriptionPeriod, db_session)

    @trace_span
    async def list_for_subscription(
        self, subscription_id: int, limit: Optional[int] = None
    ) -> List[SubscriptionPeriod]:
        """Periods of a subscription, most recent first."""
        query = (
            select(SubscriptionPeriodEntity)
            .where(SubscriptionPeriodEntity.subscription_id == subscription_id)
            .order_by(
                SubscriptionPeriodEntity.start_date.desc(),
                SubscriptionPeriodEntity.id.desc(),
            )
        )
        if limit is not None:
            query = query.limit(limit)

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_pending_starting_at(
        self, subscription_id: int, start_date: datetime
    ) -> Optional[SubscriptionPeriod]:
        """The unbilled period opened for the subscription's current cycle, if any."""
        query = (
            select(SubscriptionPeriodEntity)
            .where(
                SubscriptionPeriodEntity.subscription_id == subscription_id,
                SubscriptionPeriodEntity.start_date == start_date,
                SubscriptionPeriodEntity.status == PeriodStatus.PENDING.value,
            )
            .order_by(SubscriptionPeriodEntity.id.desc())
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalars().first()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def mark_billed(self, period_id: int, invoice_id: int) -> None:
        async with self._get_session() as session:
            await session.execute(
                update(SubscriptionPeriodEntity)
                .where(SubscriptionPeriodEntity.id == period_id)
                .values(status=PeriodStatus.BILLED.value, invoice_id=invoice_id)
                .execution_options(synchronize_session=False)
            )

    @trace_span
    async def mark_paid_by_invoice(self, invoice_id: int, paid_at: datetime) -> int:
        """Mark every period billed by the invoice as paid. Returns rows updated."""
        async with self._get_session() as session:
            result = await session.execute(
                update(SubscriptionPeriodEntity)
                .where(SubscriptionPeriodEntity.invoice_id == invoice_id)
                .values(status=PeriodStatus.PAID.value, paid_at=paid_at)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount
