"""Domain models for billing."""

from packages.billing.models.domain.enums import InvoiceStatus, LineItemType
from packages.billing.models.domain.invoice import (
    BillingStatistics,
    Invoice,
    InvoiceCreateModel,
    InvoiceLineItem,
    InvoiceUpdateModel,
)

__all__ = [
    "InvoiceStatus",
    "LineItemType",
    "BillingStatistics",
    "Invoice",
    "InvoiceCreateModel",
    "InvoiceLineItem",
    "InvoiceUpdateModel",
]
