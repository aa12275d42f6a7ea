"""
Repository for invoices.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, func

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.billing.models.database.invoice import InvoiceEntity
from packages.billing.models.domain.enums import InvoiceStatus
from packages.billing.models.domain.invoice import Invoice


class InvoiceRepository(BaseRepository[InvoiceEntity, Invoice]):
    """Repository for invoices."""

    def __init__(self, db_session=None):
        super().__init__(InvoiceEntity, Invoice, db_session)

    @trace_span
    async def list_by_customer(
        self, customer_id: int, tenant_id: int
    ) -> List[Invoice]:
        """A customer's invoices, newest first."""
        query = (
            select(InvoiceEntity)
            .where(
                InvoiceEntity.tenant_id == tenant_id,
                InvoiceEntity.customer_id == customer_id,
            )
            .order_by(InvoiceEntity.issue_date.desc(), InvoiceEntity.id.desc())
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_by_subscription(self, subscription_id: int) -> List[Invoice]:
        query = (
            select(InvoiceEntity)
            .where(InvoiceEntity.subscription_id == subscription_id)
            .order_by(InvoiceEntity.issue_date.desc(), InvoiceEntity.id.desc())
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_pending_due_between(
        self, start: Optional[datetime], end: datetime
    ) -> List[Invoice]:
        """PENDING invoices with start <= due_date < end, across all tenants."""
        query = select(InvoiceEntity).where(
            InvoiceEntity.status == InvoiceStatus.PENDING.value,
            InvoiceEntity.due_date < end,
        )
        if start is not None:
            query = query.where(InvoiceEntity.due_date >= start)

        async with self._get_session() as session:
            result = await session.execute(
                query.order_by(InvoiceEntity.due_date, InvoiceEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_pending_due_on_or_before(self, cutoff: datetime) -> List[Invoice]:
        query = (
            select(InvoiceEntity)
            .where(
                InvoiceEntity.status == InvoiceStatus.PENDING.value,
                InvoiceEntity.due_date <= cutoff,
            )
            .order_by(InvoiceEntity.due_date, InvoiceEntity.id)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def totals_by_status(
        self,
        tenant_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Tuple[int, Decimal]]:
        """status -> (invoice count, sum of totals), optionally by issue date."""
        query = select(
            InvoiceEntity.status,
            func.count(InvoiceEntity.id),
            func.sum(InvoiceEntity.total),
        ).where(InvoiceEntity.tenant_id == tenant_id)
        if start is not None:
            query = query.where(InvoiceEntity.issue_date >= start)
        if end is not None:
            query = query.where(InvoiceEntity.issue_date <= end)
        query = query.group_by(InvoiceEntity.status)

        async with self._get_session() as session:
            result = await session.execute(query)
            return {
                status: (count, Decimal(str(total or 0)))
                for status, count, total in result.all()
            }
