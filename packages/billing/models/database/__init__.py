"""Database models for billing."""

from packages.billing.models.database.invoice import (
    InvoiceEntity,
    InvoiceSequenceEntity,
)

__all__ = ["InvoiceEntity", "InvoiceSequenceEntity"]
