"""
Plan catalog enums.
"""

from enum import Enum


class BillingInterval(str, Enum):
    """Recurrence unit for plan and addon charges."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"  # 3 months
    YEARLY = "yearly"


# Plan limit columns and the usage metric each one bounds
STANDARD_LIMIT_METRICS = {
    "max_users": "users",
    "max_products": "products",
    "max_storage": "storage",
}
