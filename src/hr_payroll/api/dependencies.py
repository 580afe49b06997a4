"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.database import init_db
from hr_payroll.errors import Forbidden, ValidationError
from hr_payroll.services.collaborators import Collaborators

HR_ROLE = "hr"


@dataclass(frozen=True)
class RequestContext:
    """Caller identity, passed explicitly into every service call."""

    tenant_id: UUID
    user_id: UUID
    role: str

    @property
    def is_hr(self) -> bool:
        return self.role == HR_ROLE


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def _parse_uuid_header(value: str | None, name: str) -> UUID:
    if not value:
        raise ValidationError(f"{name} header is required", context={"header": name})
    try:
        return UUID(value)
    except ValueError:
        raise ValidationError(f"Invalid {name} format", context={"header": name})


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract tenant ID from header."""
    return _parse_uuid_header(x_tenant_id, "X-Tenant-ID")


async def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract acting user ID from header."""
    return _parse_uuid_header(x_user_id, "X-User-ID")


async def get_request_context(
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    user_id: Annotated[UUID, Depends(get_user_id)],
    x_user_role: Annotated[str | None, Header()] = None,
) -> RequestContext:
    return RequestContext(
        tenant_id=tenant_id,
        user_id=user_id,
        role=(x_user_role or "employee").strip().lower(),
    )


async def require_hr(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
) -> RequestContext:
    """Reject callers without the HR role."""
    if not ctx.is_hr:
        raise Forbidden("hr role required")
    return ctx


def get_collaborators(request: Request) -> Collaborators:
    return request.app.state.collaborators


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Context = Annotated[RequestContext, Depends(get_request_context)]
HrContext = Annotated[RequestContext, Depends(require_hr)]
CollaboratorsDep = Annotated[Collaborators, Depends(get_collaborators)]
