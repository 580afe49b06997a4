"""Payslip materialization, listing and download."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.errors import DocumentUnavailable, Forbidden, NotFound
from hr_payroll.models import Employee, PayrollPeriod, PayrollResult, Payslip
from hr_payroll.services.collaborators import (
    Collaborators,
    PayslipPayload,
    record_audit,
    run_side_effect,
)

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Payslip published"
NOTIFICATION_BODY = "A new payslip is available for download."


@dataclass(frozen=True)
class PayslipView:
    """Payslip joined with its result amounts."""

    payslip_id: UUID
    period_id: UUID
    employee_id: UUID
    gross: Decimal
    deductions: Decimal
    net: Decimal
    currency: str
    file_ref: str | None
    created_at: datetime


@dataclass
class PublishOutcome:
    rendered: int = 0
    notified: int = 0
    render_failures: int = 0


class PayslipMaterializer:
    """Turns payslip rows into rendered documents and employee notifications.

    Rendering and notification after finalize are non-fatal side effects:
    the period stays finalized whatever happens here.
    """

    def __init__(self, session: AsyncSession, collaborators: Collaborators):
        self.session = session
        self.collaborators = collaborators

    async def publish(self, tenant_id: UUID, period_id: UUID) -> PublishOutcome:
        """Render missing documents and notify each employee of the period."""
        outcome = PublishOutcome()
        try:
            result = await self.session.execute(
                select(Payslip, Employee.user_id)
                .join(Employee, Employee.employee_id == Payslip.employee_id)
                .where(Payslip.tenant_id == tenant_id, Payslip.period_id == period_id)
                .order_by(Payslip.employee_id)
            )
            rows = result.all()
        except SQLAlchemyError:
            logger.exception("Failed to load payslips to publish for period %s", period_id)
            await self.session.rollback()
            return outcome

        for payslip, user_id in rows:
            if not payslip.file_ref:
                file_ref = await run_side_effect(
                    "render payslip",
                    self._render,
                    payslip,
                    tenant_id=tenant_id,
                    period_id=period_id,
                    employee_id=payslip.employee_id,
                )
                if file_ref:
                    payslip.file_ref = file_ref
                    outcome.rendered += 1
                else:
                    outcome.render_failures += 1

            if user_id is None:
                logger.info("Employee %s has no linked user; skipping notification", payslip.employee_id)
                continue
            sent = await run_side_effect(
                "notify employee",
                self._notify,
                tenant_id,
                user_id,
                tenant_id=tenant_id,
                period_id=period_id,
                employee_id=payslip.employee_id,
            )
            if sent:
                outcome.notified += 1

        try:
            await self.session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to store payslip file references for period %s", period_id)
            await self.session.rollback()

        logger.info(
            "Published payslips period=%s rendered=%d notified=%d render_failures=%d",
            period_id, outcome.rendered, outcome.notified, outcome.render_failures,
        )
        return outcome

    async def list_for_employee(self, tenant_id: UUID, employee_id: UUID) -> list[PayslipView]:
        result = await self.session.execute(
            select(Payslip, PayrollResult)
            .join(
                PayrollResult,
                (PayrollResult.period_id == Payslip.period_id)
                & (PayrollResult.employee_id == Payslip.employee_id),
            )
            .where(Payslip.tenant_id == tenant_id, Payslip.employee_id == employee_id)
            .order_by(Payslip.created_at.desc(), Payslip.payslip_id)
        )
        return [
            PayslipView(
                payslip_id=payslip.payslip_id,
                period_id=payslip.period_id,
                employee_id=payslip.employee_id,
                gross=res.gross,
                deductions=res.deductions,
                net=res.net,
                currency=res.currency,
                file_ref=payslip.file_ref,
                created_at=payslip.created_at,
            )
            for payslip, res in result.all()
        ]

    async def employee_for_user(self, tenant_id: UUID, user_id: UUID) -> UUID | None:
        """The employee record linked to a user, if any."""
        result = await self.session.execute(
            select(Employee.employee_id).where(
                Employee.tenant_id == tenant_id, Employee.user_id == user_id
            )
        )
        return result.scalars().first()

    async def get(self, tenant_id: UUID, payslip_id: UUID) -> Payslip:
        payslip = await self.session.get(Payslip, payslip_id)
        if not payslip or payslip.tenant_id != tenant_id:
            raise NotFound("Payslip", payslip_id)
        return payslip

    async def download(
        self, tenant_id: UUID, user_id: UUID, payslip_id: UUID, is_hr: bool
    ) -> str:
        """Return the document reference, rendering it on first access.

        Callers without the HR role may only fetch their own payslips.
        """
        payslip = await self.get(tenant_id, payslip_id)
        if not is_hr:
            own_employee_id = await self.employee_for_user(tenant_id, user_id)
            if own_employee_id is None or own_employee_id != payslip.employee_id:
                raise Forbidden("Not allowed to download this payslip")

        if payslip.file_ref:
            return payslip.file_ref

        file_ref = await run_side_effect(
            "render payslip on download",
            self._render,
            payslip,
            tenant_id=tenant_id,
            payslip_id=payslip_id,
        )
        if not file_ref:
            raise DocumentUnavailable("Payslip not available", {"id": str(payslip_id)})
        payslip.file_ref = file_ref
        await self.session.flush()
        return file_ref

    async def regenerate(self, tenant_id: UUID, user_id: UUID, payslip_id: UUID) -> Payslip:
        """Re-render and overwrite the document reference."""
        payslip = await self.get(tenant_id, payslip_id)
        try:
            file_ref = await self._render(payslip)
        except NotFound:
            raise
        except Exception as exc:
            logger.exception("Payslip %s regeneration failed", payslip_id)
            raise DocumentUnavailable(
                "Failed to regenerate payslip", {"id": str(payslip_id)}
            ) from exc
        payslip.file_ref = file_ref
        await self.session.flush()

        await record_audit(
            self.collaborators.audit, tenant_id, user_id, "payslip.regenerate", "payslip", payslip_id
        )
        return payslip

    async def payload_for(self, payslip: Payslip) -> PayslipPayload:
        result = await self.session.execute(
            select(Employee, PayrollResult, PayrollPeriod)
            .join(PayrollResult, PayrollResult.employee_id == Employee.employee_id)
            .join(PayrollPeriod, PayrollPeriod.period_id == PayrollResult.period_id)
            .where(
                PayrollResult.tenant_id == payslip.tenant_id,
                PayrollResult.period_id == payslip.period_id,
                PayrollResult.employee_id == payslip.employee_id,
            )
        )
        row = result.first()
        if row is None:
            raise NotFound("Payroll result", payslip.payslip_id)
        employee, res, period = row
        return PayslipPayload(
            payslip_id=payslip.payslip_id,
            tenant_id=payslip.tenant_id,
            period_id=payslip.period_id,
            employee_id=payslip.employee_id,
            first_name=employee.first_name,
            last_name=employee.last_name,
            email=employee.email,
            gross=res.gross,
            deductions=res.deductions,
            net=res.net,
            currency=res.currency,
            start_date=period.start_date,
            end_date=period.end_date,
        )

    async def _render(self, payslip: Payslip) -> str:
        payload = await self.payload_for(payslip)
        return await self.collaborators.renderer.render(payload)

    async def _notify(self, tenant_id: UUID, user_id: UUID) -> bool:
        await self.collaborators.notifier.notify(
            tenant_id, user_id, NOTIFICATION_TITLE, NOTIFICATION_BODY
        )
        return True
