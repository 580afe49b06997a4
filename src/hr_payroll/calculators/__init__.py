"""Payroll calculation."""

from hr_payroll.calculators.calculator import PayrollCalculator, quantize
from hr_payroll.calculators.proration import covered_days, daily_rate, period_days
from hr_payroll.calculators.types import (
    AdjustmentLine,
    ElementType,
    EmployeePayContext,
    InputLine,
    InputSource,
    LeaveWindow,
    PayrollComputation,
    WarningCode,
)

__all__ = [
    "PayrollCalculator",
    "quantize",
    "covered_days",
    "daily_rate",
    "period_days",
    "AdjustmentLine",
    "ElementType",
    "EmployeePayContext",
    "InputLine",
    "InputSource",
    "LeaveWindow",
    "PayrollComputation",
    "WarningCode",
]
