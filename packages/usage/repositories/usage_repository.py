"""
Repository for usage records.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import select, delete, func

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.usage.models.database.usage import UsageRecordEntity
from packages.usage.models.domain.usage import UsageRecord, UsageSummaryItem


class UsageRepository(BaseRepository[UsageRecordEntity, UsageRecord]):
    """Repository for usage records. All date ranges are inclusive."""

    def __init__(self, db_session=None):
        super().__init__(UsageRecordEntity, UsageRecord, db_session)

    def _window(
        self,
        query,
        subscription_id: int,
        metric: Optional[str],
        start: Optional[datetime],
        end: Optional[datetime],
    ):
        query = query.where(UsageRecordEntity.subscription_id == subscription_id)
        if metric is not None:
            query = query.where(UsageRecordEntity.metric == metric)
        if start is not None:
            query = query.where(UsageRecordEntity.record_date >= start)
        if end is not None:
            query = query.where(UsageRecordEntity.record_date <= end)
        return query

    @trace_span
    async def list_records(
        self,
        subscription_id: int,
        metric: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[UsageRecord]:
        """Usage records for a subscription, newest first."""
        query = self._window(
            select(UsageRecordEntity), subscription_id, metric, start, end
        ).order_by(UsageRecordEntity.record_date.desc(), UsageRecordEntity.id.desc())

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def sum_quantity(
        self,
        subscription_id: int,
        metric: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        query = self._window(
            select(func.coalesce(func.sum(UsageRecordEntity.quantity), 0)),
            subscription_id,
            metric,
            start,
            end,
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    @trace_span
    async def summarize_by_metric(
        self,
        subscription_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[UsageSummaryItem]:
        """Total quantity and record count per metric."""
        query = self._window(
            select(
                UsageRecordEntity.metric,
                func.sum(UsageRecordEntity.quantity),
                func.count(UsageRecordEntity.id),
            ),
            subscription_id,
            None,
            start,
            end,
        ).group_by(UsageRecordEntity.metric)

        async with self._get_session() as session:
            result = await session.execute(query.order_by(UsageRecordEntity.metric))
            return [
                UsageSummaryItem(
                    metric=metric, total_quantity=int(total or 0), record_count=count
                )
                for metric, total, count in result.all()
            ]

    @trace_span
    async def list_points(
        self, subscription_id: int, metric: str, start: datetime, end: datetime
    ) -> List[Tuple[datetime, int]]:
        """(record_date, quantity) pairs in the window, oldest first."""
        query = self._window(
            select(UsageRecordEntity.record_date, UsageRecordEntity.quantity),
            subscription_id,
            metric,
            start,
            end,
        ).order_by(UsageRecordEntity.record_date)

        async with self._get_session() as session:
            result = await session.execute(query)
            return [(record_date, quantity) for record_date, quantity in result.all()]

    @trace_span
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete records dated strictly before `cutoff`, across all tenants."""
        async with self._get_session() as session:
            result = await session.execute(
                delete(UsageRecordEntity).where(UsageRecordEntity.record_date < cutoff)
            )
            await session.flush()
            return result.rowcount or 0
