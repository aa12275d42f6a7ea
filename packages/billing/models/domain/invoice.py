"""
Domain models for invoices.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.billing.models.domain.enums import InvoiceStatus, LineItemType


def _enum_value(v):
    if isinstance(v, (InvoiceStatus, LineItemType)):
        return v.value
    return v


class InvoiceLineItem(BaseModel):
    type: LineItemType
    description: str
    quantity: int = 1
    unit_price: Decimal
    amount: Decimal
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


class Invoice(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    subscription_id: int
    customer_id: int
    invoice_number: str
    line_items: List[InvoiceLineItem] = Field(default_factory=list)
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str = "USD"
    period_start: datetime
    period_end: datetime
    status: InvoiceStatus
    issue_date: datetime
    due_date: datetime
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InvoiceCreateModel(BaseModel):
    """Invoice row as written by the billing engine. Line items are JSON-ready."""

    tenant_id: int
    subscription_id: int
    customer_id: int
    invoice_number: str
    line_items: List[Dict[str, Any]]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str
    period_start: datetime
    period_end: datetime
    status: str = InvoiceStatus.PENDING.value
    issue_date: datetime
    due_date: datetime

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return _enum_value(v)


class InvoiceUpdateModel(BaseModel):
    status: Optional[str] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return _enum_value(v)


class BillingStatistics(BaseModel):
    total_invoices: int = 0
    paid_invoices: int = 0
    failed_invoices: int = 0  # every invoice not yet paid
    total_revenue: Decimal = Decimal("0")
    pending_amount: Decimal = Decimal("0")
    collection_rate: float = 0.0
