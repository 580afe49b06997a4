"""Pay schedule, pay group and pay element endpoints."""

from fastapi import APIRouter, status

from hr_payroll.api.dependencies import CollaboratorsDep, Context, DbSession, HrContext
from hr_payroll.api.schemas import (
    ElementCreate,
    ElementResponse,
    ErrorResponse,
    GroupCreate,
    GroupResponse,
    ScheduleCreate,
    ScheduleResponse,
)
from hr_payroll.services.catalog_service import CatalogService

router = APIRouter(prefix="/payroll", tags=["payroll-catalog"])

ERRORS = {400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}}


@router.get("/schedules", response_model=list[ScheduleResponse])
async def list_schedules(db: DbSession, ctx: Context) -> list[ScheduleResponse]:
    schedules = await CatalogService(db).list_schedules(ctx.tenant_id)
    return [ScheduleResponse.model_validate(s) for s in schedules]


@router.post(
    "/schedules",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_schedule(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    payload: ScheduleCreate,
) -> ScheduleResponse:
    schedule = await CatalogService(db, collaborators.audit).create_schedule(
        ctx.tenant_id, ctx.user_id, payload.name, payload.frequency, payload.pay_day
    )
    await db.commit()
    return ScheduleResponse.model_validate(schedule)


@router.get("/groups", response_model=list[GroupResponse])
async def list_groups(db: DbSession, ctx: Context) -> list[GroupResponse]:
    groups = await CatalogService(db).list_groups(ctx.tenant_id)
    return [GroupResponse.model_validate(g) for g in groups]


@router.post(
    "/groups",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 404: {"model": ErrorResponse}},
)
async def create_group(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    payload: GroupCreate,
) -> GroupResponse:
    group = await CatalogService(db, collaborators.audit).create_group(
        ctx.tenant_id, ctx.user_id, payload.name, payload.schedule_id, payload.currency
    )
    await db.commit()
    return GroupResponse.model_validate(group)


@router.get("/elements", response_model=list[ElementResponse])
async def list_elements(db: DbSession, ctx: Context) -> list[ElementResponse]:
    elements = await CatalogService(db).list_elements(ctx.tenant_id)
    return [ElementResponse.model_validate(e) for e in elements]


@router.post(
    "/elements",
    response_model=ElementResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_element(
    db: DbSession,
    ctx: HrContext,
    collaborators: CollaboratorsDep,
    payload: ElementCreate,
) -> ElementResponse:
    """Define an earning or deduction."""
    element = await CatalogService(db, collaborators.audit).create_element(
        ctx.tenant_id,
        ctx.user_id,
        payload.name,
        payload.element_type.value,
        payload.calc_type,
        payload.amount,
        payload.taxable,
    )
    await db.commit()
    return ElementResponse.model_validate(element)
