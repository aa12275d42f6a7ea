"""
Repositories for plans and plan addons.
"""

from typing import List, Optional
from sqlalchemy import select

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.plans.models.database.plan import PlanEntity, PlanAddonEntity
from packages.plans.models.domain.plan import Plan, PlanAddon


class PlanRepository(BaseRepository[PlanEntity, Plan]):
    """Repository for tenant plans."""

    def __init__(self, db_session=None):
        super().__init__(PlanEntity, Plan, db_session)

    @trace_span
    async def list_by_tenant(
        self, tenant_id: int, is_active: Optional[bool] = None
    ) -> List[Plan]:
        """List a tenant's plans in catalog display order."""
        query = select(PlanEntity).where(PlanEntity.tenant_id == tenant_id)
        if is_active is not None:
            query = query.where(PlanEntity.is_active == is_active)
        query = query.order_by(PlanEntity.display_order, PlanEntity.id)

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())


class PlanAddonRepository(BaseRepository[PlanAddonEntity, PlanAddon]):
    """Repository for addons. Tenancy is inherited from the parent plan."""

    def __init__(self, db_session=None):
        super().__init__(PlanAddonEntity, PlanAddon, db_session)

    @trace_span
    async def get_for_tenant(
        self, addon_id: int, tenant_id: int
    ) -> Optional[PlanAddon]:
        """Get an addon only if its plan belongs to the tenant."""
        query = (
            select(PlanAddonEntity)
            .join(PlanEntity, PlanEntity.id == PlanAddonEntity.plan_id)
            .where(PlanAddonEntity.id == addon_id, PlanEntity.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def list_by_plan(
        self, plan_id: int, active_only: bool = False
    ) -> List[PlanAddon]:
        query = select(PlanAddonEntity).where(PlanAddonEntity.plan_id == plan_id)
        if active_only:
            query = query.where(PlanAddonEntity.is_active.is_(True))
        query = query.order_by(PlanAddonEntity.id)

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())
