"""Type definitions for the payroll calculation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ElementType(str, Enum):
    """Pay element classification."""

    EARNING = "earning"
    DEDUCTION = "deduction"

    @classmethod
    def parse(cls, value: str | None) -> ElementType | None:
        """Return the matching member, or None for unrecognized values."""
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class InputSource(str, Enum):
    """Where an input line came from."""

    MANUAL = "manual"
    IMPORT = "import"


class WarningCode(str, Enum):
    """Anomaly codes attached to a payroll result."""

    MISSING_BANK_ACCOUNT = "missing_bank_account"
    NEGATIVE_NET = "negative_net"
    NET_VARIANCE = "net_variance"
    # Not attached to results; reported by the summary for skipped employees.
    CALCULATION_FAILED = "calculation_failed"


@dataclass(frozen=True)
class InputLine:
    """An input line joined to its element's type.

    ``element_type`` stays a raw string: values outside ElementType are
    tolerated and ignored by the calculator.
    """

    element_type: str
    amount: Decimal
    element_id: UUID | None = None


@dataclass(frozen=True)
class AdjustmentLine:
    """Signed ad-hoc amount."""

    amount: Decimal
    effective_date: date | None = None
    description: str = ""


@dataclass(frozen=True)
class LeaveWindow:
    """Approved unpaid leave overlapping a period, not yet clipped."""

    start_date: date
    end_date: date
    start_half: bool = False
    end_half: bool = False


@dataclass
class EmployeePayContext:
    """Everything needed to compute one employee's pay for one period."""

    employee_id: UUID
    base_salary: Decimal
    period_start: date
    period_end: date
    lines: list[InputLine] = field(default_factory=list)
    leave_windows: list[LeaveWindow] = field(default_factory=list)
    adjustments: list[AdjustmentLine] = field(default_factory=list)
    has_bank_account: bool = True
    previous_net: Decimal | None = None


@dataclass(frozen=True)
class PayrollComputation:
    """Output of the calculator for one employee."""

    employee_id: UUID
    gross: Decimal
    deductions: Decimal
    net: Decimal
    unpaid_leave_deduction: Decimal
    adjustment_total: Decimal
    warnings: tuple[WarningCode, ...] = ()

    @property
    def warning_codes(self) -> list[str]:
        return [w.value for w in self.warnings]
