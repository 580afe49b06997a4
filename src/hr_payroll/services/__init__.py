"""Payroll services."""

from hr_payroll.services.catalog_service import CatalogService
from hr_payroll.services.collaborators import Collaborators, default_collaborators
from hr_payroll.services.idempotency_service import IdempotencyGuard, IdempotencyScope
from hr_payroll.services.input_service import InputAggregator
from hr_payroll.services.leave_service import LeaveWindowSelector
from hr_payroll.services.payslip_service import PayslipMaterializer
from hr_payroll.services.period_service import PeriodLifecycleService, RunOutcome
from hr_payroll.services.report_service import ReportService
from hr_payroll.services.state_machine import PeriodAction, PeriodStateMachine, PeriodStatus

__all__ = [
    "CatalogService",
    "Collaborators",
    "default_collaborators",
    "IdempotencyGuard",
    "IdempotencyScope",
    "InputAggregator",
    "LeaveWindowSelector",
    "PayslipMaterializer",
    "PeriodLifecycleService",
    "RunOutcome",
    "ReportService",
    "PeriodAction",
    "PeriodStateMachine",
    "PeriodStatus",
]
