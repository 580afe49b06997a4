"""ORM models."""

from hr_payroll.models.base import Base, TimestampMixin
from hr_payroll.models.catalog import PayElement, PayGroup, PaySchedule
from hr_payroll.models.idempotency import IdempotencyRecord
from hr_payroll.models.payroll import (
    PayrollAdjustment,
    PayrollInput,
    PayrollPeriod,
    PayrollResult,
    PayrollRunFailure,
    Payslip,
)
from hr_payroll.models.people import Employee, LeaveRequest, LeaveType

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "IdempotencyRecord",
    "LeaveRequest",
    "LeaveType",
    "PayElement",
    "PayGroup",
    "PaySchedule",
    "PayrollAdjustment",
    "PayrollInput",
    "PayrollPeriod",
    "PayrollResult",
    "PayrollRunFailure",
    "Payslip",
]
