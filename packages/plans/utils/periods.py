"""
Calendar arithmetic for billing periods.

Every period boundary and monthly normalisation in the engine goes through
these two functions so rollover never drifts between components.
"""

from datetime import datetime
from decimal import Decimal
from typing import Union

from dateutil.relativedelta import relativedelta

from common.core.exceptions import ValidationError
from packages.plans.models.domain.enums import BillingInterval

# Months in one unit of each interval, as a fraction of a month
_MONTHLY_FACTOR = {
    BillingInterval.DAILY: Decimal(365) / Decimal(12),
    BillingInterval.WEEKLY: Decimal(52) / Decimal(12),
    BillingInterval.MONTHLY: Decimal(1),
    BillingInterval.QUARTERLY: Decimal(1) / Decimal(3),
    BillingInterval.YEARLY: Decimal(1) / Decimal(12),
}


def _coerce_interval(interval: Union[BillingInterval, str]) -> BillingInterval:
    try:
        return BillingInterval(interval)
    except ValueError:
        raise ValidationError(f"Unsupported billing interval: {interval}")


def _check_count(interval_count: int) -> None:
    if interval_count is None or interval_count < 1:
        raise ValidationError(
            f"interval_count must be a positive integer, got {interval_count}"
        )


def calculate_period_end(
    start: datetime, interval: Union[BillingInterval, str], interval_count: int = 1
) -> datetime:
    """
    Add `interval_count` intervals to `start`.

    Month-based intervals clamp to the last day of shorter months
    (Jan 31 + 1 month -> Feb 28/29).
    """
    interval = _coerce_interval(interval)
    _check_count(interval_count)

    if interval == BillingInterval.DAILY:
        delta = relativedelta(days=interval_count)
    elif interval == BillingInterval.WEEKLY:
        delta = relativedelta(weeks=interval_count)
    elif interval == BillingInterval.MONTHLY:
        delta = relativedelta(months=interval_count)
    elif interval == BillingInterval.QUARTERLY:
        delta = relativedelta(months=3 * interval_count)
    else:
        delta = relativedelta(years=interval_count)

    return start + delta


def to_monthly_amount(
    amount: Decimal,
    interval: Union[BillingInterval, str],
    interval_count: int = 1,
) -> Decimal:
    """Normalise a recurring charge to its monthly equivalent (unrounded)."""
    interval = _coerce_interval(interval)
    _check_count(interval_count)
    return Decimal(amount) * _MONTHLY_FACTOR[interval] / Decimal(interval_count)


def validate_interval(
    interval: Union[BillingInterval, str], interval_count: int
) -> BillingInterval:
    """Raise ValidationError unless the pair describes a usable recurrence."""
    parsed = _coerce_interval(interval)
    _check_count(interval_count)
    return parsed
