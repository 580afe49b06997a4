"""Payroll period lifecycle: create, run, finalize, reopen."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from hr_payroll.calculators.calculator import PayrollCalculator
from hr_payroll.calculators.types import EmployeePayContext, PayrollComputation
from hr_payroll.config import Settings, get_settings
from hr_payroll.database import dialect_insert
from hr_payroll.errors import (
    InvalidStateTransition,
    MissingPayData,
    NotFound,
    PersistenceFailure,
    ValidationError,
)
from hr_payroll.models import (
    Employee,
    PayGroup,
    PayrollPeriod,
    PayrollResult,
    PayrollRunFailure,
    PaySchedule,
    Payslip,
)
from hr_payroll.services.collaborators import Collaborators, default_collaborators, record_audit
from hr_payroll.services.idempotency_service import (
    FINALIZE_ENDPOINT,
    IdempotencyGuard,
    IdempotencyScope,
    request_hash,
)
from hr_payroll.services.input_service import InputAggregator
from hr_payroll.services.leave_service import LeaveWindowSelector
from hr_payroll.services.payslip_service import PayslipMaterializer
from hr_payroll.services.state_machine import PeriodAction, PeriodStateMachine, PeriodStatus

logger = logging.getLogger(__name__)

ACTIVE = "active"


@dataclass
class RunOutcome:
    """Result of running a period over all active employees."""

    period_id: UUID
    processed: int = 0
    failures: dict[UUID, str] = field(default_factory=dict)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_response(self) -> dict[str, Any]:
        return {"status": PeriodStatus.REVIEWED.value}


class PeriodLifecycleService:
    """Guarded transitions of a payroll period.

    Every status change is a conditional UPDATE on the expected status, so
    a concurrent request that moved the period first makes the loser fail
    with InvalidStateTransition instead of interleaving. run, finalize and
    reopen own their transactions and commit before returning.
    """

    def __init__(
        self,
        session: AsyncSession,
        collaborators: Collaborators | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.collaborators = collaborators or default_collaborators(
            self.settings.payslip_storage_dir
        )
        self.calculator = PayrollCalculator(self.settings.variance_threshold)
        self.inputs = InputAggregator(
            session,
            ttl_hours=self.settings.idempotency_ttl_hours,
            audit=self.collaborators.audit,
        )
        self.leaves = LeaveWindowSelector(session)
        self.guard = IdempotencyGuard(session, ttl_hours=self.settings.idempotency_ttl_hours)
        self.materializer = PayslipMaterializer(session, self.collaborators)

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------

    async def create_period(
        self,
        tenant_id: UUID,
        user_id: UUID,
        schedule_id: UUID,
        start_date: date,
        end_date: date,
    ) -> PayrollPeriod:
        """Create a draft period on one of the tenant's schedules."""
        if end_date < start_date:
            raise ValidationError("endDate must not be before startDate", code="invalid_dates")
        schedule = await self.session.get(PaySchedule, schedule_id)
        if not schedule or schedule.tenant_id != tenant_id:
            raise NotFound("Pay schedule", schedule_id)

        period = PayrollPeriod(
            tenant_id=tenant_id,
            schedule_id=schedule_id,
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.DRAFT.value,
        )
        self.session.add(period)
        await self.session.flush()

        await self._audit(tenant_id, user_id, "payroll.period.create", period.period_id, {
            "schedule_id": str(schedule_id),
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        })
        return period

    async def get_period(self, tenant_id: UUID, period_id: UUID) -> PayrollPeriod:
        period = await self.session.get(PayrollPeriod, period_id)
        if not period or period.tenant_id != tenant_id:
            raise NotFound("Payroll period", period_id)
        return period

    async def list_periods(self, tenant_id: UUID) -> list[PayrollPeriod]:
        result = await self.session.execute(
            select(PayrollPeriod)
            .where(PayrollPeriod.tenant_id == tenant_id)
            .order_by(PayrollPeriod.start_date.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Run (draft -> reviewed)
    # ------------------------------------------------------------------

    async def run(self, tenant_id: UUID, user_id: UUID, period_id: UUID) -> RunOutcome:
        """Compute and upsert a result for every active employee.

        A failure for one employee is recorded and the batch continues; the
        period moves to reviewed once the loop completes.
        """
        period = await self.get_period(tenant_id, period_id)
        PeriodStateMachine.validate(period.status, PeriodAction.RUN)

        outcome = RunOutcome(period_id=period_id)
        try:
            employees = await self._active_employees(tenant_id)
            currencies = await self._group_currencies(tenant_id)
            lines = await self.inputs.lines_by_employee(tenant_id, period_id)
            adjustments = await self.inputs.adjustments_by_employee(tenant_id, period)
            windows = await self.leaves.windows_by_employee(tenant_id, period)
            previous_nets = await self._previous_nets(tenant_id, period)

            await self.session.execute(
                delete(PayrollRunFailure).where(PayrollRunFailure.period_id == period_id)
            )

            for employee in employees:
                try:
                    ctx = self._build_context(
                        employee,
                        period,
                        lines.get(employee.employee_id, []),
                        adjustments.get(employee.employee_id, []),
                        windows.get(employee.employee_id, []),
                        previous_nets.get(employee.employee_id),
                    )
                    computation = self.calculator.calculate(ctx)
                except Exception as exc:
                    reason = str(exc) or exc.__class__.__name__
                    logger.warning(
                        "Payroll run skipped employee %s in period %s: %s",
                        employee.employee_id, period_id, reason,
                    )
                    outcome.failures[employee.employee_id] = reason
                    continue

                currency = self._currency_for(employee, currencies)
                await self._upsert_result(tenant_id, period_id, computation, currency)
                outcome.processed += 1

            await self._record_failures(tenant_id, period_id, outcome.failures)
            await self._transition(period, PeriodAction.RUN)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise PersistenceFailure("Failed to run payroll", {"period_id": str(period_id)}) from exc
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Payroll run period=%s processed=%d failed=%d",
            period_id, outcome.processed, outcome.failed,
        )
        await self._audit(tenant_id, user_id, "payroll.run", period_id, {
            "processed": outcome.processed,
            "failed": outcome.failed,
        })
        return outcome

    # ------------------------------------------------------------------
    # Finalize (reviewed -> finalized)
    # ------------------------------------------------------------------

    async def finalize(
        self,
        tenant_id: UUID,
        user_id: UUID,
        period_id: UUID,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Lock the period's numbers and publish payslips.

        With an idempotency key, a retry returns the first response and
        triggers no further side effects. Payslip rows, the status change
        and the stored response commit together; rendering and
        notifications run after the commit and never undo it.
        """
        scope = None
        req_hash = request_hash(str(period_id))
        if idempotency_key:
            scope = IdempotencyScope(tenant_id, user_id, idempotency_key, FINALIZE_ENDPOINT)
            cached = await self.guard.lookup(scope, req_hash)
            if cached is not None:
                return cached

        period = await self.get_period(tenant_id, period_id)
        response: dict[str, Any] = {"status": PeriodStatus.FINALIZED.value}
        try:
            try:
                await self._transition(
                    period,
                    PeriodAction.FINALIZE,
                    finalized_at=datetime.now(timezone.utc),
                )
            except InvalidStateTransition:
                if scope is None:
                    raise
                # A concurrent request with the same key may have won.
                await self.session.rollback()
                cached = await self.guard.lookup(scope, req_hash)
                if cached is not None:
                    return cached
                raise

            created = await self._create_payslips(tenant_id, period_id)
            if scope is not None:
                response = await self.guard.store(scope, req_hash, response)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise PersistenceFailure("Failed to finalize payroll", {"period_id": str(period_id)}) from exc
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Finalized period %s with %d new payslips", period_id, created)
        await self.materializer.publish(tenant_id, period_id)
        await self._audit(tenant_id, user_id, "payroll.finalize", period_id, {"payslips": created})
        return response

    # ------------------------------------------------------------------
    # Reopen (finalized -> draft)
    # ------------------------------------------------------------------

    async def reopen(
        self, tenant_id: UUID, user_id: UUID, period_id: UUID, reason: str | None
    ) -> dict[str, Any]:
        """Discard results and payslips and return the period to draft.

        Deletes and the status reset commit together or not at all.
        Inputs and adjustments are kept.
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("reason is required")

        period = await self.get_period(tenant_id, period_id)
        PeriodStateMachine.validate(period.status, PeriodAction.REOPEN)

        try:
            payslips = await self.session.execute(
                delete(Payslip).where(Payslip.tenant_id == tenant_id, Payslip.period_id == period_id)
            )
            results = await self.session.execute(
                delete(PayrollResult).where(
                    PayrollResult.tenant_id == tenant_id, PayrollResult.period_id == period_id
                )
            )
            await self.session.execute(
                delete(PayrollRunFailure).where(PayrollRunFailure.period_id == period_id)
            )
            await self._transition(period, PeriodAction.REOPEN, finalized_at=None)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise PersistenceFailure("Failed to reopen period", {"period_id": str(period_id)}) from exc
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Reopened period %s: removed %d results and %d payslips",
            period_id, results.rowcount, payslips.rowcount,
        )
        await self._audit(tenant_id, user_id, "payroll.period.reopen", period_id, {"reason": reason})
        return {"status": PeriodStatus.DRAFT.value}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _transition(
        self, period: PayrollPeriod, action: PeriodAction, **values: Any
    ) -> None:
        """Conditionally move the period; zero rows means someone else moved it."""
        expected = period.status
        target = PeriodStateMachine.validate(expected, action)
        result = await self.session.execute(
            update(PayrollPeriod)
            .where(
                PayrollPeriod.period_id == period.period_id,
                PayrollPeriod.tenant_id == period.tenant_id,
                PayrollPeriod.status == expected,
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateTransition(
                expected, action.value, "period was modified by another request"
            )
        set_committed_value(period, "status", target.value)
        for key, value in values.items():
            set_committed_value(period, key, value)

    async def _active_employees(self, tenant_id: UUID) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.tenant_id == tenant_id, Employee.status == ACTIVE)
            .order_by(Employee.last_name, Employee.first_name, Employee.employee_id)
        )
        return list(result.scalars().all())

    async def _group_currencies(self, tenant_id: UUID) -> dict[UUID, str]:
        result = await self.session.execute(
            select(PayGroup.group_id, PayGroup.currency).where(PayGroup.tenant_id == tenant_id)
        )
        return {group_id: currency for group_id, currency in result.all() if currency}

    def _currency_for(self, employee: Employee, currencies: dict[UUID, str]) -> str:
        if employee.pay_group_id and employee.pay_group_id in currencies:
            return currencies[employee.pay_group_id]
        return employee.currency or self.settings.default_currency

    async def _previous_nets(
        self, tenant_id: UUID, period: PayrollPeriod
    ) -> dict[UUID, Decimal]:
        """Net of each employee's latest finalized result before this period."""
        result = await self.session.execute(
            select(PayrollResult.employee_id, PayrollResult.net)
            .join(PayrollPeriod, PayrollPeriod.period_id == PayrollResult.period_id)
            .where(
                PayrollResult.tenant_id == tenant_id,
                PayrollPeriod.status == PeriodStatus.FINALIZED.value,
                PayrollPeriod.period_id != period.period_id,
                PayrollPeriod.end_date <= period.end_date,
            )
            .order_by(PayrollPeriod.end_date.desc(), PayrollResult.created_at.desc())
        )
        nets: dict[UUID, Decimal] = {}
        for employee_id, net in result.all():
            nets.setdefault(employee_id, net)
        return nets

    def _build_context(
        self,
        employee: Employee,
        period: PayrollPeriod,
        lines: list,
        adjustments: list,
        windows: list,
        previous_net: Decimal | None,
    ) -> EmployeePayContext:
        if employee.salary is None:
            raise MissingPayData(
                f"Employee {employee.employee_id} has no base salary",
                {"employee_id": str(employee.employee_id)},
            )
        return EmployeePayContext(
            employee_id=employee.employee_id,
            base_salary=employee.salary,
            period_start=period.start_date,
            period_end=period.end_date,
            lines=lines,
            leave_windows=windows,
            adjustments=adjustments,
            has_bank_account=bool(employee.bank_account and employee.bank_account.strip()),
            previous_net=previous_net,
        )

    async def _upsert_result(
        self,
        tenant_id: UUID,
        period_id: UUID,
        computation: PayrollComputation,
        currency: str,
    ) -> None:
        """Insert or overwrite the single result row for (period, employee)."""
        stmt = dialect_insert(self.session, PayrollResult).values(
            tenant_id=tenant_id,
            period_id=period_id,
            employee_id=computation.employee_id,
            gross=computation.gross,
            deductions=computation.deductions,
            net=computation.net,
            currency=currency,
            warnings=computation.warning_codes,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["period_id", "employee_id"],
            set_={
                "gross": stmt.excluded.gross,
                "deductions": stmt.excluded.deductions,
                "net": stmt.excluded.net,
                "currency": stmt.excluded.currency,
                "warnings": stmt.excluded.warnings,
            },
        )
        await self.session.execute(stmt)

    async def _record_failures(
        self, tenant_id: UUID, period_id: UUID, failures: dict[UUID, str]
    ) -> None:
        """Store skipped employees and drop their results from earlier runs."""
        if not failures:
            return
        await self.session.execute(
            delete(PayrollResult).where(
                PayrollResult.period_id == period_id,
                PayrollResult.employee_id.in_(list(failures)),
            )
        )
        self.session.add_all(
            PayrollRunFailure(
                tenant_id=tenant_id,
                period_id=period_id,
                employee_id=employee_id,
                reason=reason,
            )
            for employee_id, reason in failures.items()
        )
        await self.session.flush()

    async def _create_payslips(self, tenant_id: UUID, period_id: UUID) -> int:
        """One payslip per result; existing rows are left alone."""
        result = await self.session.execute(
            select(PayrollResult.employee_id).where(
                PayrollResult.tenant_id == tenant_id, PayrollResult.period_id == period_id
            )
        )
        created = 0
        for employee_id in result.scalars().all():
            insert_result = await self.session.execute(
                dialect_insert(self.session, Payslip)
                .values(tenant_id=tenant_id, period_id=period_id, employee_id=employee_id)
                .on_conflict_do_nothing(index_elements=["period_id", "employee_id"])
            )
            created += insert_result.rowcount or 0
        return created

    async def _audit(
        self,
        tenant_id: UUID,
        user_id: UUID,
        action: str,
        period_id: UUID,
        details: dict[str, Any],
    ) -> None:
        await record_audit(
            self.collaborators.audit,
            tenant_id,
            user_id,
            action,
            "payroll_period",
            period_id,
            details,
        )
