"""Payroll input lines, adjustments and CSV import."""

from __future__ import annotations

import csv
import io
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.types import AdjustmentLine, InputLine, InputSource
from hr_payroll.errors import NotFound, ValidationError
from hr_payroll.models import (
    Employee,
    PayElement,
    PayrollAdjustment,
    PayrollInput,
    PayrollPeriod,
)
from hr_payroll.services.collaborators import AuditSink, LoggingAuditSink, record_audit
from hr_payroll.services.idempotency_service import (
    IMPORT_ENDPOINT,
    IdempotencyGuard,
    IdempotencyScope,
    request_hash,
)
from hr_payroll.services.state_machine import PeriodStateMachine

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def resolve_amount(units: Decimal | None, rate: Decimal | None, amount: Decimal | None) -> Decimal:
    """Amount is authoritative; when zero and units are positive it becomes units x rate."""
    amount = amount or ZERO
    if amount == 0 and units is not None and units > 0:
        return units * (rate or ZERO)
    return amount


def parse_decimal(raw: str | None) -> Decimal:
    """Lenient CSV number parsing: blanks and garbage read as zero."""
    if raw is None or not raw.strip():
        return ZERO
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        return ZERO
    return value if value.is_finite() else ZERO


def read_csv_rows(content: str) -> list[dict[str, str]]:
    """Parse a CSV document into rows keyed by lower-cased header names."""
    try:
        reader = csv.DictReader(io.StringIO(content))
        if not reader.fieldnames:
            raise ValidationError("CSV header row is required")
        reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
        return list(reader)
    except csv.Error as exc:
        raise ValidationError("invalid csv payload", context={"reason": str(exc)}) from exc


class InputAggregator:
    """Collects per-employee inputs and adjustments for a period."""

    def __init__(
        self,
        session: AsyncSession,
        ttl_hours: int = 24,
        audit: AuditSink | None = None,
    ):
        self.session = session
        self.guard = IdempotencyGuard(session, ttl_hours=ttl_hours)
        self.audit = audit or LoggingAuditSink()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_input(
        self,
        tenant_id: UUID,
        period_id: UUID,
        employee_id: UUID,
        element_id: UUID,
        units: Decimal | None = None,
        rate: Decimal | None = None,
        amount: Decimal | None = None,
        source: InputSource | str | None = None,
    ) -> PayrollInput:
        """Append one input line to a period that still accepts inputs."""
        await self._mutable_period(tenant_id, period_id)
        await self._require_employee(tenant_id, employee_id)
        element = await self.session.get(PayElement, element_id)
        if not element or element.tenant_id != tenant_id:
            raise NotFound("Pay element", element_id)

        line = PayrollInput(
            tenant_id=tenant_id,
            period_id=period_id,
            employee_id=employee_id,
            element_id=element_id,
            units=units,
            rate=rate,
            amount=resolve_amount(units, rate, amount),
            source=InputSource(source or InputSource.MANUAL).value,
        )
        self.session.add(line)
        await self.session.flush()
        return line

    async def import_csv(
        self,
        tenant_id: UUID,
        user_id: UUID,
        period_id: UUID,
        content: str,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Import input lines from a header-driven CSV document.

        Headers are matched case-insensitively. Rows whose employee or
        element cannot be resolved are skipped. Returns ``{"imported": n}``.
        """
        scope = None
        req_hash = request_hash(content)
        if idempotency_key:
            scope = IdempotencyScope(tenant_id, user_id, idempotency_key, IMPORT_ENDPOINT)
            cached = await self.guard.lookup(scope, req_hash)
            if cached is not None:
                return cached

        await self._mutable_period(tenant_id, period_id)

        rows = read_csv_rows(content)
        employees = await self._employee_index(tenant_id)
        element_ids = await self._element_ids(tenant_id)

        imported = 0
        for row_number, row in enumerate(rows, start=2):
            employee_id = self._resolve_employee(row, employees)
            if employee_id is None:
                logger.warning("CSV import row %d skipped: unknown employee", row_number)
                continue

            element_id = self._parse_uuid(row.get("element_id"))
            if element_id is None or element_id not in element_ids:
                logger.warning("CSV import row %d skipped: unknown element", row_number)
                continue

            units = parse_decimal(row.get("units"))
            rate = parse_decimal(row.get("rate"))
            source = (row.get("source") or "").strip().lower()
            if source not in (InputSource.MANUAL.value, InputSource.IMPORT.value):
                source = InputSource.IMPORT.value

            self.session.add(
                PayrollInput(
                    tenant_id=tenant_id,
                    period_id=period_id,
                    employee_id=employee_id,
                    element_id=element_id,
                    units=units,
                    rate=rate,
                    amount=resolve_amount(units, rate, parse_decimal(row.get("amount"))),
                    source=source,
                )
            )
            imported += 1

        await self.session.flush()
        logger.info("Imported %d input lines into period %s", imported, period_id)

        response = {"imported": imported}
        if scope is not None:
            response = await self.guard.store(scope, req_hash, response)
        await record_audit(
            self.audit,
            tenant_id,
            user_id,
            "payroll.inputs.import",
            "payroll_period",
            period_id,
            {"count": imported},
        )
        return response

    async def add_adjustment(
        self,
        tenant_id: UUID,
        user_id: UUID,
        period_id: UUID,
        employee_id: UUID,
        description: str,
        amount: Decimal,
        effective_date: date | None = None,
    ) -> PayrollAdjustment:
        if not description or not description.strip():
            raise ValidationError("description is required")
        await self._mutable_period(tenant_id, period_id)
        await self._require_employee(tenant_id, employee_id)

        adjustment = PayrollAdjustment(
            tenant_id=tenant_id,
            period_id=period_id,
            employee_id=employee_id,
            description=description.strip(),
            amount=amount,
            effective_date=effective_date,
        )
        self.session.add(adjustment)
        await self.session.flush()
        await record_audit(
            self.audit,
            tenant_id,
            user_id,
            "payroll.adjustment.create",
            "payroll_adjustment",
            adjustment.adjustment_id,
            {
                "period_id": str(period_id),
                "employee_id": str(employee_id),
                "amount": str(amount),
            },
        )
        return adjustment

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_inputs(self, tenant_id: UUID, period_id: UUID) -> list[PayrollInput]:
        result = await self.session.execute(
            select(PayrollInput)
            .where(PayrollInput.tenant_id == tenant_id, PayrollInput.period_id == period_id)
            .order_by(PayrollInput.created_at, PayrollInput.input_id)
        )
        return list(result.scalars().all())

    async def list_adjustments(self, tenant_id: UUID, period_id: UUID) -> list[PayrollAdjustment]:
        result = await self.session.execute(
            select(PayrollAdjustment)
            .where(
                PayrollAdjustment.tenant_id == tenant_id,
                PayrollAdjustment.period_id == period_id,
            )
            .order_by(PayrollAdjustment.created_at, PayrollAdjustment.adjustment_id)
        )
        return list(result.scalars().all())

    async def lines_by_employee(
        self, tenant_id: UUID, period_id: UUID
    ) -> dict[UUID, list[InputLine]]:
        """Input lines of a period joined to their element type."""
        result = await self.session.execute(
            select(PayrollInput.employee_id, PayrollInput.element_id, PayrollInput.amount, PayElement.element_type)
            .join(PayElement, PayElement.element_id == PayrollInput.element_id)
            .where(PayrollInput.tenant_id == tenant_id, PayrollInput.period_id == period_id)
        )
        lines: dict[UUID, list[InputLine]] = defaultdict(list)
        for employee_id, element_id, amount, element_type in result.all():
            lines[employee_id].append(
                InputLine(element_type=element_type, amount=amount, element_id=element_id)
            )
        return lines

    async def adjustments_by_employee(
        self, tenant_id: UUID, period: PayrollPeriod
    ) -> dict[UUID, list[AdjustmentLine]]:
        """Adjustments whose effective date is unset or inside the period."""
        result = await self.session.execute(
            select(PayrollAdjustment).where(
                PayrollAdjustment.tenant_id == tenant_id,
                PayrollAdjustment.period_id == period.period_id,
                or_(
                    PayrollAdjustment.effective_date.is_(None),
                    PayrollAdjustment.effective_date.between(period.start_date, period.end_date),
                ),
            )
        )
        adjustments: dict[UUID, list[AdjustmentLine]] = defaultdict(list)
        for adj in result.scalars().all():
            adjustments[adj.employee_id].append(
                AdjustmentLine(
                    amount=adj.amount,
                    effective_date=adj.effective_date,
                    description=adj.description,
                )
            )
        return adjustments

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _mutable_period(self, tenant_id: UUID, period_id: UUID) -> PayrollPeriod:
        period = await self.session.get(PayrollPeriod, period_id)
        if not period or period.tenant_id != tenant_id:
            raise NotFound("Payroll period", period_id)
        PeriodStateMachine.validate_inputs_mutable(period.status)
        return period

    async def _require_employee(self, tenant_id: UUID, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if not employee or employee.tenant_id != tenant_id:
            raise NotFound("Employee", employee_id)
        return employee

    async def _employee_index(self, tenant_id: UUID) -> dict[str, UUID]:
        """Map employee ids and lower-cased emails to employee ids."""
        result = await self.session.execute(
            select(Employee.employee_id, Employee.email).where(Employee.tenant_id == tenant_id)
        )
        index: dict[str, UUID] = {}
        for employee_id, email in result.all():
            index[str(employee_id)] = employee_id
            if email:
                index[email.strip().lower()] = employee_id
        return index

    async def _element_ids(self, tenant_id: UUID) -> set[UUID]:
        result = await self.session.execute(
            select(PayElement.element_id).where(PayElement.tenant_id == tenant_id)
        )
        return set(result.scalars().all())

    def _resolve_employee(self, row: dict[str, Any], employees: dict[str, UUID]) -> UUID | None:
        employee_id = self._parse_uuid(row.get("employee_id"))
        if employee_id is not None:
            return employees.get(str(employee_id))
        email = (row.get("employee_email") or "").strip().lower()
        if email:
            return employees.get(email)
        return None

    @staticmethod
    def _parse_uuid(raw: str | None) -> UUID | None:
        if not raw or not raw.strip():
            return None
        try:
            return UUID(raw.strip())
        except ValueError:
            return None
