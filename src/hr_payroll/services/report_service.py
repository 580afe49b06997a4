"""Period summary and CSV exports (register and journal)."""

from __future__ import annotations

import csv
import io
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.calculator import quantize
from hr_payroll.calculators.types import WarningCode
from hr_payroll.errors import NotFound
from hr_payroll.models import Employee, PayrollPeriod, PayrollResult, PayrollRunFailure

REGISTER_HEADER = ["employee_id", "first_name", "last_name", "gross", "deductions", "net", "currency"]
JOURNAL_HEADER = ["account", "debit", "credit"]


@dataclass
class PeriodSummary:
    """Totals and warning counts for one period."""

    total_gross: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    employee_count: int = 0
    warnings: dict[str, int] = field(default_factory=dict)


def _money(amount: Decimal) -> str:
    return f"{amount:.2f}"


class ReportService:
    """Read-only views over a period's results.

    CSV is built with the csv module into an in-memory buffer.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def summary(self, tenant_id: UUID, period_id: UUID) -> PeriodSummary:
        await self._require_period(tenant_id, period_id)

        totals = await self.session.execute(
            select(
                func.coalesce(func.sum(PayrollResult.gross), 0),
                func.coalesce(func.sum(PayrollResult.deductions), 0),
                func.coalesce(func.sum(PayrollResult.net), 0),
                func.count(PayrollResult.result_id),
            ).where(PayrollResult.tenant_id == tenant_id, PayrollResult.period_id == period_id)
        )
        gross, deductions, net, count = totals.one()

        warnings: Counter[str] = Counter()
        warning_lists = await self.session.execute(
            select(PayrollResult.warnings).where(
                PayrollResult.tenant_id == tenant_id, PayrollResult.period_id == period_id
            )
        )
        for codes in warning_lists.scalars().all():
            warnings.update(codes or [])

        failures = await self.session.scalar(
            select(func.count(PayrollRunFailure.failure_id)).where(
                PayrollRunFailure.tenant_id == tenant_id,
                PayrollRunFailure.period_id == period_id,
            )
        )
        if failures:
            warnings[WarningCode.CALCULATION_FAILED.value] += failures

        return PeriodSummary(
            total_gross=quantize(Decimal(str(gross))),
            total_deductions=quantize(Decimal(str(deductions))),
            total_net=quantize(Decimal(str(net))),
            employee_count=count,
            warnings=dict(sorted(warnings.items())),
        )

    async def register_csv(self, tenant_id: UUID, period_id: UUID) -> str:
        """One row per result, ordered by employee name."""
        await self._require_period(tenant_id, period_id)
        result = await self.session.execute(
            select(
                Employee.employee_id,
                Employee.first_name,
                Employee.last_name,
                PayrollResult.gross,
                PayrollResult.deductions,
                PayrollResult.net,
                PayrollResult.currency,
            )
            .join(Employee, Employee.employee_id == PayrollResult.employee_id)
            .where(PayrollResult.tenant_id == tenant_id, PayrollResult.period_id == period_id)
            .order_by(Employee.last_name, Employee.first_name, Employee.employee_id)
        )

        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(REGISTER_HEADER)
        for employee_id, first_name, last_name, gross, deductions, net, currency in result.all():
            writer.writerow([
                str(employee_id),
                first_name,
                last_name,
                _money(gross),
                _money(deductions),
                _money(net),
                currency,
            ])
        return output.getvalue()

    async def journal_csv(self, tenant_id: UUID, period_id: UUID) -> str:
        """Flat three-line journal: expense debit, deductions and cash credits."""
        summary = await self.summary(tenant_id, period_id)

        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(JOURNAL_HEADER)
        writer.writerow(["Payroll Expense", _money(summary.total_gross), ""])
        writer.writerow(["Payroll Deductions", "", _money(summary.total_deductions)])
        writer.writerow(["Payroll Cash", "", _money(summary.total_net)])
        return output.getvalue()

    async def _require_period(self, tenant_id: UUID, period_id: UUID) -> PayrollPeriod:
        period = await self.session.get(PayrollPeriod, period_id)
        if not period or period.tenant_id != tenant_id:
            raise NotFound("Payroll period", period_id)
        return period
