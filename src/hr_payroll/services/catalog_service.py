"""Pay schedules, pay groups and pay elements."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.types import ElementType
from hr_payroll.errors import NotFound, ValidationError
from hr_payroll.models import PayElement, PayGroup, PaySchedule
from hr_payroll.services.collaborators import AuditSink, LoggingAuditSink, record_audit


class CatalogService:
    """Tenant reference data used by payroll periods and inputs."""

    def __init__(self, session: AsyncSession, audit: AuditSink | None = None):
        self.session = session
        self.audit = audit or LoggingAuditSink()

    async def list_schedules(self, tenant_id: UUID) -> list[PaySchedule]:
        result = await self.session.execute(
            select(PaySchedule).where(PaySchedule.tenant_id == tenant_id).order_by(PaySchedule.name)
        )
        return list(result.scalars().all())

    async def create_schedule(
        self,
        tenant_id: UUID,
        user_id: UUID,
        name: str,
        frequency: str,
        pay_day: int | None = None,
    ) -> PaySchedule:
        if not name.strip() or not frequency.strip():
            raise ValidationError("name and frequency are required")
        schedule = PaySchedule(
            tenant_id=tenant_id,
            name=name.strip(),
            frequency=frequency.strip().lower(),
            pay_day=pay_day,
        )
        self.session.add(schedule)
        await self.session.flush()
        await record_audit(
            self.audit,
            tenant_id,
            user_id,
            "payroll.schedule.create",
            "pay_schedule",
            schedule.schedule_id,
            {"name": schedule.name, "frequency": schedule.frequency, "pay_day": pay_day},
        )
        return schedule

    async def list_groups(self, tenant_id: UUID) -> list[PayGroup]:
        result = await self.session.execute(
            select(PayGroup).where(PayGroup.tenant_id == tenant_id).order_by(PayGroup.name)
        )
        return list(result.scalars().all())

    async def create_group(
        self,
        tenant_id: UUID,
        user_id: UUID,
        name: str,
        schedule_id: UUID | None = None,
        currency: str | None = None,
    ) -> PayGroup:
        if not name.strip():
            raise ValidationError("name is required")
        if schedule_id is not None:
            schedule = await self.session.get(PaySchedule, schedule_id)
            if not schedule or schedule.tenant_id != tenant_id:
                raise NotFound("Pay schedule", schedule_id)
        group = PayGroup(
            tenant_id=tenant_id,
            name=name.strip(),
            schedule_id=schedule_id,
            currency=(currency or "USD").strip().upper(),
        )
        self.session.add(group)
        await self.session.flush()
        await record_audit(
            self.audit,
            tenant_id,
            user_id,
            "payroll.group.create",
            "pay_group",
            group.group_id,
            {
                "name": group.name,
                "schedule_id": str(schedule_id) if schedule_id else None,
                "currency": group.currency,
            },
        )
        return group

    async def list_elements(self, tenant_id: UUID) -> list[PayElement]:
        result = await self.session.execute(
            select(PayElement).where(PayElement.tenant_id == tenant_id).order_by(PayElement.name)
        )
        return list(result.scalars().all())

    async def create_element(
        self,
        tenant_id: UUID,
        user_id: UUID,
        name: str,
        element_type: str,
        calc_type: str,
        amount: Decimal = Decimal("0"),
        taxable: bool = True,
    ) -> PayElement:
        parsed_type = ElementType.parse(element_type)
        if parsed_type is None:
            raise ValidationError(
                "elementType must be 'earning' or 'deduction'",
                context={"element_type": element_type},
            )
        if not name.strip():
            raise ValidationError("name is required")
        element = PayElement(
            tenant_id=tenant_id,
            name=name.strip(),
            element_type=parsed_type.value,
            calc_type=(calc_type or "fixed").strip().lower(),
            amount=amount,
            taxable=taxable,
        )
        self.session.add(element)
        await self.session.flush()
        await record_audit(
            self.audit,
            tenant_id,
            user_id,
            "payroll.element.create",
            "pay_element",
            element.element_id,
            {"name": element.name, "element_type": element.element_type, "amount": str(amount)},
        )
        return element
