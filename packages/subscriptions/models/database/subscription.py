"""
Database entities for subscriptions, their addons and their billing periods.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.sql import func, false, true

from common.db.base import Base, BigIntegerType, MoneyType

# Tables referenced by the foreign keys below must be on Base.metadata
from packages.plans.models.database.plan import PlanEntity, PlanAddonEntity  # noqa: F401
from packages.billing.models.database.invoice import InvoiceEntity  # noqa: F401


class SubscriptionEntity(Base):
    """
    A customer's subscription to a tenant plan.

    Price, interval and currency are copied from the plan at creation (and on
    plan change) so later catalog edits never reprice existing subscribers.
    Rows are never deleted; EXPIRED subscriptions stay for history.
    """

    __tablename__ = "subscriptions"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(BigIntegerType, nullable=False, index=True)
    customer_id = Column(BigIntegerType, nullable=False, index=True)
    plan_id = Column(
        BigIntegerType,
        ForeignKey("plans.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status = Column(String(20), nullable=False, index=True)

    # Denormalized pricing
    price = Column(MoneyType(), nullable=False)
    interval = Column(String(20), nullable=False)
    interval_count = Column(Integer, nullable=False, server_default="1")
    currency = Column(String(3), nullable=False, server_default="USD")

    # Billing cycle
    current_period_start = Column(DateTime, nullable=False)
    current_period_end = Column(DateTime, nullable=False)
    next_billing_date = Column(DateTime, nullable=True)

    # Trial
    trial_start = Column(DateTime, nullable=True)
    trial_end = Column(DateTime, nullable=True)

    # Cancellation
    started_at = Column(DateTime, nullable=False, server_default=func.now())
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancel_at_period_end = Column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    ended_at = Column(DateTime, nullable=True)

    # Pause
    paused_at = Column(DateTime, nullable=True)
    pause_reason = Column(Text, nullable=True)
    resume_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_subscription_tenant_status", "tenant_id", "status"),
        Index("idx_subscription_status_next_billing", "status", "next_billing_date"),
        Index("idx_subscription_tenant_customer", "tenant_id", "customer_id"),
    )


class SubscriptionAddonEntity(Base):
    """
    Addon attached to a subscription.

    Name, price and interval are snapshotted at attach time; detaching only
    flips is_active and stamps end_date.
    """

    __tablename__ = "subscription_addons"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    subscription_id = Column(
        BigIntegerType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    addon_id = Column(
        BigIntegerType,
        ForeignKey("plan_addons.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name = Column(String(255), nullable=False)
    price = Column(MoneyType(), nullable=False)
    interval = Column(String(20), nullable=False)
    interval_count = Column(Integer, nullable=False, server_default="1")
    quantity = Column(Integer, nullable=False, server_default="1")

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        # At most one active attachment per (subscription, addon)
        Index(
            "uq_subscription_addon_active",
            "subscription_id",
            "addon_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )


class SubscriptionPeriodEntity(Base):
    """One billing cycle a subscription lived through."""

    __tablename__ = "subscription_periods"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    subscription_id = Column(
        BigIntegerType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    amount = Column(MoneyType(), nullable=False)
    status = Column(String(20), nullable=False, index=True)  # pending, billed, paid
    invoice_id = Column(
        BigIntegerType,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
