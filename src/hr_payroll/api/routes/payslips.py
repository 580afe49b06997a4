"""Payslip endpoints."""

from pathlib import Path as FilePath
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query
from fastapi.responses import FileResponse

from hr_payroll.api.dependencies import CollaboratorsDep, Context, DbSession, HrContext
from hr_payroll.api.schemas import ErrorResponse, PayslipResponse, StatusResponse
from hr_payroll.errors import DocumentUnavailable
from hr_payroll.services.payslip_service import PayslipMaterializer

router = APIRouter(prefix="/payroll/payslips", tags=["payslips"])

PayslipId = Annotated[UUID, Path()]


@router.get("", response_model=list[PayslipResponse])
async def list_payslips(
    db: DbSession,
    ctx: Context,
    collaborators: CollaboratorsDep,
    employee_id: Annotated[UUID | None, Query(alias="employeeId")] = None,
) -> list[PayslipResponse]:
    """HR may list any employee's payslips; everyone else sees their own."""
    materializer = PayslipMaterializer(db, collaborators)
    if not ctx.is_hr or employee_id is None:
        employee_id = await materializer.employee_for_user(ctx.tenant_id, ctx.user_id)
    if employee_id is None:
        return []
    views = await materializer.list_for_employee(ctx.tenant_id, employee_id)
    return [PayslipResponse.model_validate(v) for v in views]


@router.get(
    "/{payslip_id}/download",
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def download_payslip(
    db: DbSession,
    ctx: Context,
    collaborators: CollaboratorsDep,
    payslip_id: PayslipId,
) -> FileResponse:
    """Serve the payslip document, rendering it on first access."""
    materializer = PayslipMaterializer(db, collaborators)
    file_ref = await materializer.download(ctx.tenant_id, ctx.user_id, payslip_id, ctx.is_hr)
    await db.commit()

    path = FilePath(file_ref)
    if not path.is_file():
        raise DocumentUnavailable("Payslip not available", {"id": str(payslip_id)})
    return FileResponse(path, filename=path.name)


@router.post(
    "/{payslip_id}/regenerate",
    response_model=StatusResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def regenerate_payslip(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    payslip_id: PayslipId,
) -> dict[str, str]:
    """Re-render the document and overwrite its reference."""
    materializer = PayslipMaterializer(db, collaborators)
    await materializer.regenerate(ctx.tenant_id, ctx.user_id, payslip_id)
    await db.commit()
    return {"status": "regenerated"}
