"""
Database entities for invoices and per-tenant invoice numbering.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType, MoneyType


class InvoiceEntity(Base):
    """
    Invoice for one billing period of a subscription.

    Line items are frozen at generation time; later plan or addon edits do
    not change issued invoices.
    """

    __tablename__ = "invoices"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(BigIntegerType, nullable=False, index=True)
    subscription_id = Column(
        BigIntegerType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id = Column(BigIntegerType, nullable=False, index=True)

    invoice_number = Column(String(50), nullable=False)

    # [{"type", "description", "quantity", "unit_price", "amount",
    #   "period_start", "period_end"}, ...]
    line_items = Column(JSON, nullable=False, default=list)

    subtotal = Column(MoneyType(), nullable=False)
    tax = Column(MoneyType(), nullable=False)
    total = Column(MoneyType(), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)

    status = Column(String(20), nullable=False, default="pending", index=True)
    issue_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False, index=True)
    paid_at = Column(DateTime, nullable=True)
    payment_method = Column(String(50), nullable=True)
    transaction_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_invoice_number"),
        Index("idx_invoice_tenant_customer", "tenant_id", "customer_id"),
        Index("idx_invoice_status_due", "status", "due_date"),
    )


class InvoiceSequenceEntity(Base):
    """Last invoice number issued for a tenant."""

    __tablename__ = "invoice_sequences"

    tenant_id = Column(BigIntegerType, primary_key=True, autoincrement=False)
    last_value = Column(BigIntegerType, nullable=False, default=0)
