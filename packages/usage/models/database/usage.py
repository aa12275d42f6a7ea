"""
Database entity for usage records.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class UsageRecordEntity(Base):
    """
    Append-only usage event for one subscription and metric.

    Quantity is signed so decrements are recorded as negative rows. Only the
    retention cleanup deletes rows.
    """

    __tablename__ = "usage_records"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(BigIntegerType, nullable=False, index=True)
    subscription_id = Column(
        BigIntegerType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    metric = Column(String(100), nullable=False, index=True)  # users, storage, ...
    quantity = Column(BigIntegerType, nullable=False)
    record_date = Column(DateTime, nullable=False, index=True)

    # Caller-supplied context, e.g. {"source": "import", "user_id": 12}
    record_metadata = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index(
            "idx_usage_subscription_metric_date",
            "subscription_id",
            "metric",
            "record_date",
        ),
    )
