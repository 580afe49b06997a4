"""Pay schedules, pay groups and the pay element catalog."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.models.base import Base, TimestampMixin


class PaySchedule(Base, TimestampMixin):
    """Pay schedule definition."""

    __tablename__ = "pay_schedule"

    schedule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    frequency: Mapped[str] = mapped_column(String, nullable=False)
    pay_day: Mapped[int | None] = mapped_column(Integer, nullable=True)


class PayGroup(Base, TimestampMixin):
    """Group of employees paid on the same schedule in one currency."""

    __tablename__ = "pay_group"

    group_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    schedule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pay_schedule.schedule_id", ondelete="SET NULL"),
        nullable=True,
    )
    currency: Mapped[str] = mapped_column(String, nullable=False, default="USD")


class PayElement(Base, TimestampMixin):
    """Tenant-defined earning or deduction.

    Reference data: once an input line points at an element, the element
    is not edited.
    """

    __tablename__ = "pay_element"

    element_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    element_type: Mapped[str] = mapped_column(String, nullable=False)
    calc_type: Mapped[str] = mapped_column(String, nullable=False, default="fixed")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
