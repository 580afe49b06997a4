"""Selection of unpaid leave overlapping a payroll period."""

from __future__ import annotations

from collections import defaultdict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.types import LeaveWindow
from hr_payroll.models import LeaveRequest, LeaveType, PayrollPeriod

APPROVED = "approved"


class LeaveWindowSelector:
    """Supplies raw unpaid-leave windows; clipping is the calculator's job."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def windows_by_employee(
        self, tenant_id: UUID, period: PayrollPeriod
    ) -> dict[UUID, list[LeaveWindow]]:
        """Approved, unpaid leave whose dates overlap the period."""
        result = await self.session.execute(
            select(LeaveRequest)
            .join(LeaveType, LeaveType.leave_type_id == LeaveRequest.leave_type_id)
            .where(
                LeaveRequest.tenant_id == tenant_id,
                LeaveRequest.status == APPROVED,
                LeaveType.is_paid.is_(False),
                LeaveRequest.start_date <= period.end_date,
                LeaveRequest.end_date >= period.start_date,
            )
            .order_by(LeaveRequest.employee_id, LeaveRequest.start_date)
        )
        windows: dict[UUID, list[LeaveWindow]] = defaultdict(list)
        for request in result.scalars().all():
            windows[request.employee_id].append(
                LeaveWindow(
                    start_date=request.start_date,
                    end_date=request.end_date,
                    start_half=request.start_half,
                    end_half=request.end_half,
                )
            )
        return windows
