"""Billing services."""

from packages.billing.services.billing_service import BillingService

__all__ = ["BillingService"]
