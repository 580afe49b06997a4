"""Payroll period, input, result and payslip models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.models.base import Base, TimestampMixin


# ===== Periods =====


class PayrollPeriod(Base, TimestampMixin):
    """A bounded pay cycle with a lifecycle status.

    Created by HR, mutated only by the period lifecycle service and never
    deleted; reopen clears derived rows, not the period itself.
    """

    __tablename__ = "payroll_period"

    period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    schedule_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_schedule.schedule_id"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'reviewed', 'finalized')",
            name="payroll_period_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="payroll_period_dates_check"),
    )


# ===== Source data (survives reopen) =====


class PayrollInput(Base, TimestampMixin):
    """One employee's contribution of a pay element within a period.

    Append-only. ``amount`` is authoritative and is resolved at ingestion.
    """

    __tablename__ = "payroll_input"

    input_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    element_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_element.element_id", ondelete="CASCADE"),
        nullable=False,
    )
    units: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False, default="manual")


class PayrollAdjustment(Base, TimestampMixin):
    """Ad-hoc signed amount for one employee, independent of elements."""

    __tablename__ = "payroll_adjustment"

    adjustment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)


# ===== Derived data (destroyed on reopen) =====


class PayrollResult(Base, TimestampMixin):
    """Computed pay for one employee in one period.

    Unique per (period_id, employee_id); re-running a period overwrites it.
    """

    __tablename__ = "payroll_result"

    result_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    gross: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String, nullable=False)
    warnings: Mapped[list[str]] = mapped_column(nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("period_id", "employee_id", name="payroll_result_period_employee_unique"),
    )


class PayrollRunFailure(Base, TimestampMixin):
    """Employee skipped by the last run of a period, with the reason."""

    __tablename__ = "payroll_run_failure"

    failure_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("period_id", "employee_id", name="payroll_run_failure_period_employee_unique"),
    )


class Payslip(Base, TimestampMixin):
    """Published payslip. ``file_ref`` is filled lazily by the renderer."""

    __tablename__ = "payslip"

    payslip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    file_ref: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("period_id", "employee_id", name="payslip_period_employee_unique"),
    )
