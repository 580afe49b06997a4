"""Tests for period summary and CSV exports."""

import csv
import io
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from hr_payroll.errors import NotFound
from hr_payroll.services.report_service import REGISTER_HEADER, ReportService


@pytest.fixture
def reports(session) -> ReportService:
    return ReportService(session)


@pytest_asyncio.fixture
async def reviewed_period(lifecycle, payroll_setup):
    await lifecycle.inputs.add_input(
        payroll_setup.tenant_id,
        payroll_setup.period_id,
        payroll_setup.employee_ids["bob"],
        payroll_setup.deduction_id,
        amount=Decimal("120.50"),
    )
    await lifecycle.session.commit()
    await lifecycle.run(payroll_setup.tenant_id, payroll_setup.hr_user_id, payroll_setup.period_id)
    return payroll_setup


class TestSummary:
    async def test_totals_and_warnings(self, reports, reviewed_period):
        summary = await reports.summary(reviewed_period.tenant_id, reviewed_period.period_id)

        assert summary.total_gross == Decimal("3000.00")
        assert summary.total_deductions == Decimal("120.50")
        assert summary.total_net == Decimal("2879.50")
        assert summary.employee_count == 2
        assert summary.warnings == {"missing_bank_account": 1}

    async def test_empty_period(self, reports, payroll_setup):
        summary = await reports.summary(payroll_setup.tenant_id, payroll_setup.period_id)

        assert summary.total_gross == Decimal("0.00")
        assert summary.employee_count == 0
        assert summary.warnings == {}

    async def test_unknown_period(self, reports, payroll_setup):
        with pytest.raises(NotFound):
            await reports.summary(payroll_setup.tenant_id, uuid4())


class TestExports:
    async def test_register_sorted_by_name(self, reports, reviewed_period):
        content = await reports.register_csv(reviewed_period.tenant_id, reviewed_period.period_id)

        rows = list(csv.reader(io.StringIO(content)))
        assert rows[0] == REGISTER_HEADER
        assert [row[2] for row in rows[1:]] == ["Anders", "Brown"]
        assert rows[1] == [
            str(reviewed_period.employee_ids["alice"]),
            "Alice",
            "Anders",
            "1000.00",
            "0.00",
            "1000.00",
            "GBP",
        ]
        assert rows[2][3:] == ["2000.00", "120.50", "1879.50", "USD"]

    async def test_journal_balances(self, reports, reviewed_period):
        content = await reports.journal_csv(reviewed_period.tenant_id, reviewed_period.period_id)

        assert content.splitlines() == [
            "account,debit,credit",
            "Payroll Expense,3000.00,",
            "Payroll Deductions,,120.50",
            "Payroll Cash,,2879.50",
        ]

    async def test_register_other_tenant(self, reports, reviewed_period):
        with pytest.raises(NotFound):
            await reports.register_csv(uuid4(), reviewed_period.period_id)
