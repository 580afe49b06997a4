"""Tests for unpaid leave proration."""

from datetime import date
from decimal import Decimal

import pytest

from hr_payroll.calculators.proration import (
    covered_days,
    daily_rate,
    period_days,
    unpaid_leave_deduction,
)
from hr_payroll.calculators.types import LeaveWindow
from hr_payroll.errors import ValidationError

JAN_1 = date(2024, 1, 1)
JAN_10 = date(2024, 1, 10)


class TestPeriodDays:
    def test_inclusive(self):
        assert period_days(JAN_1, JAN_10) == 10
        assert period_days(JAN_1, JAN_1) == 1

    def test_reversed_period(self):
        with pytest.raises(ValidationError) as exc_info:
            period_days(JAN_10, JAN_1)
        assert exc_info.value.code == "invalid_dates"

    def test_daily_rate(self):
        assert daily_rate(Decimal("1000"), JAN_1, JAN_10) == Decimal("100")


class TestCoveredDays:
    """Leave windows clipped to the period."""

    def test_full_window_inside(self):
        window = LeaveWindow(date(2024, 1, 3), date(2024, 1, 5))
        assert covered_days(window, JAN_1, JAN_10) == Decimal("3")

    def test_single_day_start_half(self):
        window = LeaveWindow(date(2024, 1, 4), date(2024, 1, 4), start_half=True)
        assert covered_days(window, JAN_1, JAN_10) == Decimal("0.5")

    def test_single_day_both_halves_rejected(self):
        window = LeaveWindow(
            date(2024, 1, 4), date(2024, 1, 4), start_half=True, end_half=True
        )
        with pytest.raises(ValidationError) as exc_info:
            covered_days(window, JAN_1, JAN_10)
        assert exc_info.value.code == "invalid_dates"

    def test_window_ending_before_start_rejected(self):
        window = LeaveWindow(date(2024, 1, 5), date(2024, 1, 4))
        with pytest.raises(ValidationError):
            covered_days(window, JAN_1, JAN_10)

    def test_multi_day_both_halves(self):
        window = LeaveWindow(
            date(2024, 1, 2), date(2024, 1, 4), start_half=True, end_half=True
        )
        assert covered_days(window, JAN_1, JAN_10) == Decimal("2")

    def test_clipped_at_period_start(self):
        """Start half-day falls outside the period and does not count."""
        window = LeaveWindow(date(2023, 12, 28), date(2024, 1, 2), start_half=True)
        assert covered_days(window, JAN_1, JAN_10) == Decimal("2")

    def test_clipped_at_period_end(self):
        window = LeaveWindow(date(2024, 1, 9), date(2024, 1, 15), end_half=True)
        assert covered_days(window, JAN_1, JAN_10) == Decimal("2")

    def test_no_overlap(self):
        window = LeaveWindow(date(2024, 2, 1), date(2024, 2, 3))
        assert covered_days(window, JAN_1, JAN_10) == Decimal("0")


class TestUnpaidLeaveDeduction:
    def test_no_windows(self):
        assert unpaid_leave_deduction(Decimal("1000"), [], JAN_1, JAN_10) == Decimal("0")

    def test_half_day_deducts_half_daily_rate(self):
        windows = [LeaveWindow(date(2024, 1, 4), date(2024, 1, 4), start_half=True)]
        assert unpaid_leave_deduction(Decimal("1000"), windows, JAN_1, JAN_10) == Decimal("50")

    def test_sums_windows(self):
        windows = [
            LeaveWindow(date(2024, 1, 2), date(2024, 1, 3)),
            LeaveWindow(date(2024, 1, 8), date(2024, 1, 8)),
        ]
        assert unpaid_leave_deduction(Decimal("1000"), windows, JAN_1, JAN_10) == Decimal("300")
