"""Unpaid-leave proration against a pay period."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from hr_payroll.calculators.types import LeaveWindow
from hr_payroll.errors import ValidationError

HALF_DAY = Decimal("0.5")


def period_days(period_start: date, period_end: date) -> int:
    """Inclusive calendar day count of a period."""
    if period_end < period_start:
        raise ValidationError("Period ends before it starts", code="invalid_dates")
    return (period_end - period_start).days + 1


def daily_rate(base_salary: Decimal, period_start: date, period_end: date) -> Decimal:
    """Base salary spread evenly across the period's calendar days."""
    return base_salary / Decimal(period_days(period_start, period_end))


def validate_window(window: LeaveWindow) -> None:
    """Reject windows that cannot describe a real absence."""
    if window.end_date < window.start_date:
        raise ValidationError(
            "Leave ends before it starts",
            code="invalid_dates",
            context={"start_date": str(window.start_date), "end_date": str(window.end_date)},
        )
    if window.start_date == window.end_date and window.start_half and window.end_half:
        raise ValidationError(
            "Single-day leave cannot be half on both ends",
            code="invalid_dates",
            context={"date": str(window.start_date)},
        )


def covered_days(window: LeaveWindow, period_start: date, period_end: date) -> Decimal:
    """Days of ``window`` that fall inside the period.

    The window is clipped to the period. A half-day flag only applies when
    its boundary day survives the clipping.
    """
    validate_window(window)

    overlap_start = max(window.start_date, period_start)
    overlap_end = min(window.end_date, period_end)
    if overlap_end < overlap_start:
        return Decimal("0")

    days = Decimal((overlap_end - overlap_start).days + 1)
    if window.start_half and overlap_start == window.start_date:
        days -= HALF_DAY
    if window.end_half and overlap_end == window.end_date:
        days -= HALF_DAY
    return max(days, Decimal("0"))


def unpaid_leave_deduction(
    base_salary: Decimal,
    windows: list[LeaveWindow],
    period_start: date,
    period_end: date,
) -> Decimal:
    """Sum of daily rate times covered days over all windows."""
    if not windows:
        return Decimal("0")
    rate = daily_rate(base_salary, period_start, period_end)
    total = Decimal("0")
    for window in windows:
        total += rate * covered_days(window, period_start, period_end)
    return total
