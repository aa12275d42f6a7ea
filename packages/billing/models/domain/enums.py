"""
Billing enums.
"""

from enum import Enum


class InvoiceStatus(str, Enum):
    """
    Invoice status.

    Flow: pending -> paid
          pending -> failed -> paid
    """

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class LineItemType(str, Enum):
    SUBSCRIPTION = "subscription"
    ADDON = "addon"
