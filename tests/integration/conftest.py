"""Fixtures for API tests against an in-memory database."""

from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hr_payroll.api.app import create_app
from hr_payroll.api.dependencies import get_db_session
from hr_payroll.services.collaborators import Collaborators, LocalFileRenderer


@pytest.fixture
def api_collaborators(tmp_path, notifier, audit) -> Collaborators:
    """Real file renderer so downloads have something to serve."""
    return Collaborators(
        renderer=LocalFileRenderer(tmp_path / "payslips"),
        notifier=notifier,
        audit=audit,
    )


@pytest_asyncio.fixture
async def client(session_factory, api_collaborators):
    """HTTP client; each request gets its own session on the shared test database."""
    app = create_app(api_collaborators)

    async def override_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def headers_for(tenant_id: UUID, user_id: UUID, role: str = "hr") -> dict[str, str]:
    return {
        "X-Tenant-ID": str(tenant_id),
        "X-User-ID": str(user_id),
        "X-User-Role": role,
    }


@pytest.fixture
def hr_headers(payroll_setup) -> dict[str, str]:
    return headers_for(payroll_setup.tenant_id, payroll_setup.hr_user_id)


@pytest.fixture
def alice_headers(payroll_setup) -> dict[str, str]:
    return headers_for(payroll_setup.tenant_id, payroll_setup.user_ids["alice"], "employee")


@pytest.fixture
def bob_headers(payroll_setup) -> dict[str, str]:
    return headers_for(payroll_setup.tenant_id, payroll_setup.user_ids["bob"], "employee")
