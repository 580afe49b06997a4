"""Service health: database reachability and payslip storage."""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.api.dependencies import CollaboratorsDep, DbSession
from hr_payroll.api.schemas import ApiModel
from hr_payroll.services.collaborators import PayslipRenderer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(ApiModel):
    status: str
    timestamp: datetime
    database: str
    payslip_storage: str


async def database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return "unhealthy"
    return "healthy"


def storage_status(renderer: PayslipRenderer) -> str:
    """Report whether rendered payslips can be written.

    Renderers without a local directory are reported as ``external``. A
    directory that does not exist yet counts as writable when its nearest
    existing parent is, since the renderer creates it on first use.
    """
    storage_dir = getattr(renderer, "storage_dir", None)
    if storage_dir is None:
        return "external"
    path = Path(storage_dir)
    while not path.exists() and path != path.parent:
        path = path.parent
    if path.is_dir() and os.access(path, os.W_OK):
        return "writable"
    return "read-only"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, collaborators: CollaboratorsDep) -> HealthResponse:
    """Check the database and the payslip store."""
    db_status = await database_status(db)
    payslip_storage = storage_status(collaborators.renderer)
    healthy = db_status == "healthy" and payslip_storage != "read-only"
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        payslip_storage=payslip_storage,
    )


@router.get("/ready")
async def readiness_check(
    db: DbSession, collaborators: CollaboratorsDep, response: Response
) -> dict[str, str]:
    """Ready once periods can be processed and payslips published."""
    if await database_status(db) != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable", "reason": "database"}
    if storage_status(collaborators.renderer) == "read-only":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable", "reason": "payslip_storage"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
