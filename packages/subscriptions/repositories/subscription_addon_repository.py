"""
Repository for addons attached to subscriptions.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update, func

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.subscriptions.models.database.subscription import (
    SubscriptionAddonEntity,
    SubscriptionEntity,
)
from packages.subscriptions.models.domain.subscription import SubscriptionAddon


class SubscriptionAddonRepository(
    BaseRepository[SubscriptionAddonEntity, SubscriptionAddon]
):
    """Repository for subscription addon attachments."""

    def __init__(self, db_session=None):
        super().__init__(SubscriptionAddonEntity, SubscriptionAddon, db_session)

    @trace_span
    async def get_for_tenant(
        self, subscription_addon_id: int, tenant_id: int
    ) -> Optional[SubscriptionAddon]:
        """Get an attachment only if its subscription belongs to the tenant."""
        query = (
            select(SubscriptionAddonEntity)
            .join(
                SubscriptionEntity,
                SubscriptionEntity.id == SubscriptionAddonEntity.subscription_id,
            )
            .where(
                SubscriptionAddonEntity.id == subscription_addon_id,
                SubscriptionEntity.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def list_active(self, subscription_id: int) -> List[SubscriptionAddon]:
        return await self.list_active_for_subscriptions([subscription_id])

    @trace_span
    async def list_active_for_subscriptions(
        self, subscription_ids: List[int]
    ) -> List[SubscriptionAddon]:
        if not subscription_ids:
            return []
        query = (
            select(SubscriptionAddonEntity)
            .where(
                SubscriptionAddonEntity.subscription_id.in_(subscription_ids),
                SubscriptionAddonEntity.is_active.is_(True),
            )
            .order_by(SubscriptionAddonEntity.id)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_active_attachment(
        self, subscription_id: int, addon_id: int
    ) -> Optional[SubscriptionAddon]:
        query = select(SubscriptionAddonEntity).where(
            SubscriptionAddonEntity.subscription_id == subscription_id,
            SubscriptionAddonEntity.addon_id == addon_id,
            SubscriptionAddonEntity.is_active.is_(True),
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalars().first()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def count_active_by_addon(self, addon_id: int) -> int:
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count(SubscriptionAddonEntity.id)).where(
                    SubscriptionAddonEntity.addon_id == addon_id,
                    SubscriptionAddonEntity.is_active.is_(True),
                )
            )
            return result.scalar_one()

    @trace_span
    async def deactivate(
        self, subscription_addon_id: int, end_date: datetime
    ) -> Optional[SubscriptionAddon]:
        async with self._get_session() as session:
            await session.execute(
                update(SubscriptionAddonEntity)
                .where(SubscriptionAddonEntity.id == subscription_addon_id)
                .values(is_active=False, end_date=end_date)
                .execution_options(synchronize_session=False)
            )
        return await self.get(subscription_addon_id)
