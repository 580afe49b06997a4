"""Payroll period API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Header, Path, Request, status
from fastapi.responses import Response

from hr_payroll.api.dependencies import CollaboratorsDep, Context, DbSession, HrContext
from hr_payroll.api.schemas import (
    AdjustmentCreate,
    AdjustmentResponse,
    CreatedResponse,
    ErrorResponse,
    ImportResponse,
    InputCreate,
    InputResponse,
    PeriodCreate,
    PeriodResponse,
    ReopenRequest,
    StatusResponse,
    SummaryResponse,
)
from hr_payroll.config import get_settings
from hr_payroll.errors import ValidationError
from hr_payroll.services.input_service import InputAggregator
from hr_payroll.services.period_service import PeriodLifecycleService
from hr_payroll.services.report_service import ReportService

router = APIRouter(prefix="/payroll/periods", tags=["payroll-periods"])

PeriodId = Annotated[UUID, Path()]

ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Periods
# ============================================================================


@router.get("", response_model=list[PeriodResponse])
async def list_periods(db: DbSession, ctx: Context) -> list[PeriodResponse]:
    """List the tenant's periods, newest first."""
    service = PeriodLifecycleService(db)
    periods = await service.list_periods(ctx.tenant_id)
    return [PeriodResponse.model_validate(p) for p in periods]


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_period(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    payload: PeriodCreate,
) -> CreatedResponse:
    """Create a draft period."""
    service = PeriodLifecycleService(db, collaborators)
    period = await service.create_period(
        ctx.tenant_id,
        ctx.user_id,
        payload.schedule_id,
        payload.start_date,
        payload.end_date,
    )
    await db.commit()
    return CreatedResponse(id=period.period_id)


@router.get("/{period_id}", response_model=PeriodResponse, responses=ERRORS)
async def get_period(db: DbSession, ctx: Context, period_id: PeriodId) -> PeriodResponse:
    service = PeriodLifecycleService(db)
    period = await service.get_period(ctx.tenant_id, period_id)
    return PeriodResponse.model_validate(period)


# ============================================================================
# Lifecycle transitions
# ============================================================================


@router.post("/{period_id}/run", response_model=StatusResponse, responses=ERRORS)
async def run_period(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    period_id: PeriodId,
) -> dict[str, str]:
    """Calculate every active employee; draft → reviewed."""
    service = PeriodLifecycleService(db, collaborators)
    outcome = await service.run(ctx.tenant_id, ctx.user_id, period_id)
    return outcome.to_response()


@router.post(
    "/{period_id}/finalize",
    response_model=StatusResponse,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
)
async def finalize_period(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    period_id: PeriodId,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
) -> dict[str, str]:
    """Finalize a reviewed period and publish payslips; reviewed → finalized."""
    service = PeriodLifecycleService(db, collaborators)
    return await service.finalize(
        ctx.tenant_id, ctx.user_id, period_id, idempotency_key=idempotency_key
    )


@router.post("/{period_id}/reopen", response_model=StatusResponse, responses=ERRORS)
async def reopen_period(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    period_id: PeriodId,
    payload: ReopenRequest,
) -> dict[str, str]:
    """Discard results and payslips; finalized → draft."""
    service = PeriodLifecycleService(db, collaborators)
    return await service.reopen(ctx.tenant_id, ctx.user_id, period_id, payload.reason)


# ============================================================================
# Inputs and adjustments
# ============================================================================


@router.get("/{period_id}/inputs", response_model=list[InputResponse], responses=ERRORS)
async def list_inputs(db: DbSession, ctx: Context, period_id: PeriodId) -> list[InputResponse]:
    await PeriodLifecycleService(db).get_period(ctx.tenant_id, period_id)
    inputs = await InputAggregator(db).list_inputs(ctx.tenant_id, period_id)
    return [InputResponse.model_validate(i) for i in inputs]


@router.post(
    "/{period_id}/inputs",
    response_model=InputResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_input(
    db: DbSession,
    ctx: HrContext,
    period_id: PeriodId,
    payload: InputCreate,
) -> InputResponse:
    """Add one input line to a period."""
    line = await InputAggregator(db).add_input(
        ctx.tenant_id,
        period_id,
        employee_id=payload.employee_id,
        element_id=payload.element_id,
        units=payload.units,
        rate=payload.rate,
        amount=payload.amount,
        source=payload.source,
    )
    await db.commit()
    return InputResponse.model_validate(line)


@router.post(
    "/{period_id}/inputs/import",
    response_model=ImportResponse,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
)
async def import_inputs(
    request: Request,
    db: DbSession,
    ctx: HrContext,
    period_id: PeriodId,
    collaborators: CollaboratorsDep,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
) -> dict[str, int]:
    """Import input lines from a CSV body (Content-Type: text/csv)."""
    body = await request.body()
    try:
        content = body.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV body must be UTF-8 encoded")
    if not content.strip():
        raise ValidationError("CSV body is empty")

    settings = get_settings()
    aggregator = InputAggregator(
        db, ttl_hours=settings.idempotency_ttl_hours, audit=collaborators.audit
    )
    response = await aggregator.import_csv(
        ctx.tenant_id,
        ctx.user_id,
        period_id,
        content,
        idempotency_key=idempotency_key,
    )
    await db.commit()
    return response


@router.get(
    "/{period_id}/adjustments",
    response_model=list[AdjustmentResponse],
    responses=ERRORS,
)
async def list_adjustments(
    db: DbSession, ctx: Context, period_id: PeriodId
) -> list[AdjustmentResponse]:
    await PeriodLifecycleService(db).get_period(ctx.tenant_id, period_id)
    adjustments = await InputAggregator(db).list_adjustments(ctx.tenant_id, period_id)
    return [AdjustmentResponse.model_validate(a) for a in adjustments]


@router.post(
    "/{period_id}/adjustments",
    response_model=AdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_adjustment(
    db: DbSession,
    ctx: HrContext,
    period_id: PeriodId,
    collaborators: CollaboratorsDep,
    payload: AdjustmentCreate,
) -> AdjustmentResponse:
    adjustment = await InputAggregator(db, audit=collaborators.audit).add_adjustment(
        ctx.tenant_id,
        ctx.user_id,
        period_id,
        employee_id=payload.employee_id,
        description=payload.description,
        amount=payload.amount,
        effective_date=payload.effective_date,
    )
    await db.commit()
    return AdjustmentResponse.model_validate(adjustment)


# ============================================================================
# Reports
# ============================================================================


@router.get("/{period_id}/summary", response_model=SummaryResponse, responses=ERRORS)
async def period_summary(db: DbSession, ctx: HrContext, period_id: PeriodId) -> SummaryResponse:
    """Totals and warning counts for a period."""
    summary = await ReportService(db).summary(ctx.tenant_id, period_id)
    return SummaryResponse.model_validate(summary)


@router.get("/{period_id}/export/register", responses=ERRORS)
async def export_register(db: DbSession, ctx: HrContext, period_id: PeriodId) -> Response:
    content = await ReportService(db).register_csv(ctx.tenant_id, period_id)
    return _csv_response(content, f"payroll-register-{period_id}.csv")


@router.get("/{period_id}/export/journal", responses=ERRORS)
async def export_journal(db: DbSession, ctx: HrContext, period_id: PeriodId) -> Response:
    content = await ReportService(db).journal_csv(ctx.tenant_id, period_id)
    return _csv_response(content, f"payroll-journal-{period_id}.csv")
