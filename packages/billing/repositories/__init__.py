"""Billing repositories."""

from packages.billing.repositories.invoice_repository import InvoiceRepository
from packages.billing.repositories.invoice_sequence_repository import (
    InvoiceSequenceRepository,
)

__all__ = ["InvoiceRepository", "InvoiceSequenceRepository"]
