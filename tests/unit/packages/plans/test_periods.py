"""
Unit tests for billing period arithmetic.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from common.core.exceptions import ValidationError
from packages.plans.models.domain.enums import BillingInterval
from packages.plans.utils.periods import (
    calculate_period_end,
    to_monthly_amount,
    validate_interval,
)

CENT = Decimal("0.01")


class TestCalculatePeriodEnd:
    """Tests for calculate_period_end."""

    @pytest.mark.parametrize(
        "interval,count,expected",
        [
            (BillingInterval.DAILY, 1, datetime(2026, 1, 16, 9, 30)),
            (BillingInterval.WEEKLY, 2, datetime(2026, 1, 29, 9, 30)),
            (BillingInterval.MONTHLY, 1, datetime(2026, 2, 15, 9, 30)),
            (BillingInterval.QUARTERLY, 1, datetime(2026, 4, 15, 9, 30)),
            (BillingInterval.YEARLY, 1, datetime(2027, 1, 15, 9, 30)),
        ],
    )
    def test_adds_interval(self, interval, count, expected):
        """Test each interval keeps the time of day."""
        start = datetime(2026, 1, 15, 9, 30)

        assert calculate_period_end(start, interval, count) == expected

    def test_month_end_clamps_to_shorter_month(self):
        """Test Jan 31 rolls to the last day of February."""
        assert calculate_period_end(
            datetime(2026, 1, 31), BillingInterval.MONTHLY
        ) == datetime(2026, 2, 28)
        assert calculate_period_end(datetime(2024, 1, 31), "monthly") == datetime(
            2024, 2, 29
        )

    def test_multi_month_count(self):
        """Test interval_count multiplies the interval."""
        assert calculate_period_end(
            datetime(2026, 1, 1), BillingInterval.MONTHLY, 6
        ) == datetime(2026, 7, 1)

    def test_accepts_string_interval(self):
        """Test the stored string form of an interval."""
        assert calculate_period_end(datetime(2026, 3, 1), "quarterly") == datetime(
            2026, 6, 1
        )

    def test_rejects_unknown_interval(self):
        """Test an unknown interval raises ValidationError."""
        with pytest.raises(ValidationError):
            calculate_period_end(datetime(2026, 1, 1), "fortnightly")

    @pytest.mark.parametrize("count", [0, -1])
    def test_rejects_non_positive_count(self, count):
        """Test interval_count must be positive."""
        with pytest.raises(ValidationError):
            calculate_period_end(datetime(2026, 1, 1), BillingInterval.MONTHLY, count)


class TestToMonthlyAmount:
    """Tests for to_monthly_amount."""

    def test_monthly_is_unchanged(self):
        assert to_monthly_amount(Decimal("1000"), BillingInterval.MONTHLY) == Decimal(
            "1000"
        )

    def test_yearly_divides_by_twelve(self):
        amount = to_monthly_amount(Decimal("1200"), BillingInterval.YEARLY)
        assert amount.quantize(CENT) == Decimal("100.00")

    def test_quarterly_divides_by_three(self):
        amount = to_monthly_amount(Decimal("300"), "quarterly")
        assert amount.quantize(CENT) == Decimal("100.00")

    def test_weekly_uses_52_weeks(self):
        amount = to_monthly_amount(Decimal("12"), BillingInterval.WEEKLY)
        assert amount.quantize(CENT) == Decimal("52.00")

    def test_interval_count_spreads_the_charge(self):
        """Test a charge every two months counts half per month."""
        assert to_monthly_amount(
            Decimal("1000"), BillingInterval.MONTHLY, 2
        ) == Decimal("500")


class TestValidateInterval:
    """Tests for validate_interval."""

    def test_returns_parsed_interval(self):
        assert validate_interval("yearly", 1) == BillingInterval.YEARLY

    def test_rejects_zero_count(self):
        with pytest.raises(ValidationError):
            validate_interval(BillingInterval.MONTHLY, 0)
