"""
Database entities for plans and plan addons.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.sql import func, false, true

from common.db.base import Base, BigIntegerType, MoneyType


class PlanEntity(Base):
    """
    Recurring offering defined by a tenant.

    Retired through is_active; physically deleted only while no TRIAL or
    ACTIVE subscription references it.
    """

    __tablename__ = "plans"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(BigIntegerType, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Pricing
    price = Column(MoneyType(), nullable=False)
    interval = Column(String(20), nullable=False)  # daily ... yearly
    interval_count = Column(Integer, nullable=False, server_default="1")
    currency = Column(String(3), nullable=False, server_default="USD")
    trial_days = Column(Integer, nullable=False, server_default="0")
    setup_fee = Column(MoneyType(), nullable=False, server_default="0")

    features = Column(JSON, nullable=False, default=list)

    # Limits (NULL = not enforced)
    max_users = Column(Integer, nullable=True)
    max_products = Column(Integer, nullable=True)
    max_storage = Column(Integer, nullable=True)
    custom_limits = Column(JSON, nullable=False, default=dict)

    # Catalog presentation
    is_active = Column(
        Boolean, nullable=False, default=True, server_default=true(), index=True
    )
    display_order = Column(Integer, nullable=False, server_default="0")
    is_popular = Column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    badge = Column(String(50), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("idx_plan_tenant_active", "tenant_id", "is_active"),)


class PlanAddonEntity(Base):
    """Optional recurring charge attachable to subscriptions of one plan."""

    __tablename__ = "plan_addons"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    plan_id = Column(
        BigIntegerType,
        ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(MoneyType(), nullable=False)
    interval = Column(String(20), nullable=False)
    interval_count = Column(Integer, nullable=False, server_default="1")
    quantity = Column(Integer, nullable=True)  # fixed quantity, if any
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
