"""
Repository for per-tenant invoice number sequences.
"""

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.billing.models.database.invoice import InvoiceSequenceEntity


class InvoiceSequenceRepository(BaseRepository[InvoiceSequenceEntity, None]):
    """Atomic counters backing invoice numbers."""

    def __init__(self, db_session=None):
        super().__init__(InvoiceSequenceEntity, None, db_session)

    @trace_span
    async def next_value(self, tenant_id: int) -> int:
        """
        Reserve the tenant's next sequence value.

        The increment is a single UPDATE ... RETURNING so concurrent callers
        never receive the same value. The row is created on first use.
        """
        async with self._get_session() as session:
            dialect = session.get_bind().dialect.name
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            await session.execute(
                insert(InvoiceSequenceEntity)
                .values(tenant_id=tenant_id, last_value=0)
                .on_conflict_do_nothing(index_elements=["tenant_id"])
            )
            result = await session.execute(
                update(InvoiceSequenceEntity)
                .where(InvoiceSequenceEntity.tenant_id == tenant_id)
                .values(last_value=InvoiceSequenceEntity.last_value + 1)
                .returning(InvoiceSequenceEntity.last_value)
                .execution_options(synchronize_session=False)
            )
            return result.scalar_one()
