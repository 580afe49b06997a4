"""Pure payroll calculation for one employee in one period."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from hr_payroll.calculators.proration import unpaid_leave_deduction
from hr_payroll.calculators.types import (
    ElementType,
    EmployeePayContext,
    PayrollComputation,
    WarningCode,
)

CENT = Decimal("0.01")
DEFAULT_VARIANCE_THRESHOLD = Decimal("0.5")


def quantize(amount: Decimal) -> Decimal:
    """Round to the two-decimal persisted precision."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class PayrollCalculator:
    """Combine salary, inputs, leave and adjustments into gross/deductions/net.

    Order of operations:
    1) gross = base salary + earning lines
    2) unpaid leave deduction = daily rate x covered days
    3) adjustment total = in-period adjustments (signed)
    4) gross = gross + adjustment total - unpaid leave deduction
    5) deductions = deduction lines
    6) net = gross - deductions

    Lines with an unrecognized element type are ignored. No I/O happens here.
    """

    def __init__(self, variance_threshold: Decimal = DEFAULT_VARIANCE_THRESHOLD):
        self.variance_threshold = variance_threshold

    def calculate(self, ctx: EmployeePayContext) -> PayrollComputation:
        earnings = Decimal("0")
        deductions = Decimal("0")
        for line in ctx.lines:
            element_type = ElementType.parse(line.element_type)
            if element_type is ElementType.EARNING:
                earnings += line.amount
            elif element_type is ElementType.DEDUCTION:
                deductions += line.amount

        unpaid = unpaid_leave_deduction(
            ctx.base_salary, ctx.leave_windows, ctx.period_start, ctx.period_end
        )

        adjustment_total = sum(
            (
                adj.amount
                for adj in ctx.adjustments
                if adj.effective_date is None
                or ctx.period_start <= adj.effective_date <= ctx.period_end
            ),
            Decimal("0"),
        )

        gross = quantize(ctx.base_salary + earnings + adjustment_total - unpaid)
        deductions = quantize(deductions)
        net = gross - deductions

        return PayrollComputation(
            employee_id=ctx.employee_id,
            gross=gross,
            deductions=deductions,
            net=net,
            unpaid_leave_deduction=quantize(unpaid),
            adjustment_total=quantize(adjustment_total),
            warnings=self.derive_warnings(ctx, net),
        )

    def derive_warnings(
        self, ctx: EmployeePayContext, net: Decimal
    ) -> tuple[WarningCode, ...]:
        """Warnings are independent and reported in a fixed order."""
        warnings: list[WarningCode] = []
        if not ctx.has_bank_account:
            warnings.append(WarningCode.MISSING_BANK_ACCOUNT)
        if net < 0:
            warnings.append(WarningCode.NEGATIVE_NET)
        if self.exceeds_variance(net, ctx.previous_net):
            warnings.append(WarningCode.NET_VARIANCE)
        return tuple(warnings)

    def exceeds_variance(self, net: Decimal, previous_net: Decimal | None) -> bool:
        """True when net moved by more than the threshold (exclusive) relative to previous net."""
        if previous_net is None or previous_net == 0:
            return False
        change = abs(net - previous_net) / abs(previous_net)
        return change > self.variance_threshold
