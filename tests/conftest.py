"""Pytest fixtures for payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hr_payroll.config import Settings
from hr_payroll.database import create_schema
from hr_payroll.models import (
    Employee,
    LeaveRequest,
    LeaveType,
    PayElement,
    PayGroup,
    PayrollPeriod,
    PaySchedule,
)
from hr_payroll.services.collaborators import Collaborators, PayslipPayload
from hr_payroll.services.period_service import PeriodLifecycleService

# In-memory SQLite; StaticPool keeps every session on the same connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# Collaborator fakes
# ============================================================================


class RecordingRenderer:
    """Renderer that remembers payloads and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.payloads: list[PayslipPayload] = []

    async def render(self, payload: PayslipPayload) -> str:
        self.payloads.append(payload)
        if self.fail:
            raise RuntimeError("renderer unavailable")
        return f"memory://payslips/{payload.payslip_id}-{len(self.payloads)}"


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[UUID, UUID, str, str]] = []

    async def notify(self, tenant_id: UUID, user_id: UUID, title: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("notification service down")
        self.sent.append((tenant_id, user_id, title, body))


class RecordingAuditSink:
    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []

    async def record(
        self,
        tenant_id: UUID,
        user_id: UUID,
        action: str,
        entity_type: str,
        entity_id: UUID,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.entries.append({
            "tenant_id": tenant_id,
            "user_id": user_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "details": details,
        })


# ============================================================================
# Database
# ============================================================================


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# Configuration and collaborators
# ============================================================================


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        auto_create_schema=False,
        idempotency_ttl_hours=24,
        variance_threshold=Decimal("0.5"),
        payslip_storage_dir=str(tmp_path / "payslips"),
        default_currency="USD",
    )


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def collaborators(renderer, notifier, audit) -> Collaborators:
    return Collaborators(renderer=renderer, notifier=notifier, audit=audit)


@pytest.fixture
def lifecycle(session, collaborators, test_settings) -> PeriodLifecycleService:
    return PeriodLifecycleService(session, collaborators, settings=test_settings)


# ============================================================================
# Tenant data
# ============================================================================

@dataclass
class PayrollSetup:
    """Ids of a seeded tenant: one schedule, group, two elements and a draft period.

    Only ids are kept: a rollback inside a service expires the ORM
    instances held by the shared session.
    """

    tenant_id: UUID
    hr_user_id: UUID
    schedule_id: UUID
    group_id: UUID
    earning_id: UUID
    deduction_id: UUID
    period_id: UUID
    employee_ids: dict[str, UUID] = field(default_factory=dict)
    user_ids: dict[str, UUID] = field(default_factory=dict)


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def hr_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_employee(session: AsyncSession, tenant_id: UUID):
    """Factory for employees; defaults give a fully payable employee."""

    async def _make(
        first_name: str,
        last_name: str,
        salary: Decimal | None = Decimal("1000.00"),
        bank_account: str | None = "GB00TEST0000000001",
        **kwargs: Any,
    ) -> UUID:
        employee = Employee(
            employee_id=uuid4(),
            tenant_id=kwargs.pop("tenant_id", tenant_id),
            user_id=kwargs.pop("user_id", uuid4()),
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name.lower()}.{last_name.lower()}@example.com",
            status=kwargs.pop("status", "active"),
            salary=salary,
            bank_account=bank_account,
            **kwargs,
        )
        session.add(employee)
        await session.flush()
        return employee.employee_id

    return _make


@pytest.fixture
def make_period(session: AsyncSession, tenant_id: UUID):
    async def _make(
        schedule_id: UUID,
        start_date: date,
        end_date: date,
        status: str = "draft",
    ) -> UUID:
        period = PayrollPeriod(
            period_id=uuid4(),
            tenant_id=tenant_id,
            schedule_id=schedule_id,
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
        session.add(period)
        await session.flush()
        return period.period_id

    return _make


@pytest.fixture
def make_leave(session: AsyncSession, tenant_id: UUID):
    """Factory for leave requests; unpaid and approved unless told otherwise."""

    async def _make(
        employee_id: UUID,
        start_date: date,
        end_date: date,
        start_half: bool = False,
        end_half: bool = False,
        status: str = "approved",
        is_paid: bool = False,
    ) -> UUID:
        leave_type = LeaveType(
            leave_type_id=uuid4(),
            tenant_id=tenant_id,
            name="Annual" if is_paid else "Unpaid",
            is_paid=is_paid,
        )
        session.add(leave_type)
        await session.flush()
        request = LeaveRequest(
            leave_request_id=uuid4(),
            tenant_id=tenant_id,
            employee_id=employee_id,
            leave_type_id=leave_type.leave_type_id,
            start_date=start_date,
            end_date=end_date,
            start_half=start_half,
            end_half=end_half,
            status=status,
        )
        session.add(request)
        await session.commit()
        return request.leave_request_id

    return _make


@pytest_asyncio.fixture
async def payroll_setup(
    session: AsyncSession,
    tenant_id: UUID,
    hr_user_id: UUID,
    make_employee,
    make_period,
) -> PayrollSetup:
    """Tenant with a ten-day draft period (daily rate = salary / 10).

    alice: salary 1000, bank account, GBP pay group
    bob: salary 2000, no bank account, default currency
    """
    schedule_id = uuid4()
    session.add(
        PaySchedule(
            schedule_id=schedule_id,
            tenant_id=tenant_id,
            name="Monthly",
            frequency="monthly",
            pay_day=28,
        )
    )
    await session.flush()

    group_id, earning_id, deduction_id = uuid4(), uuid4(), uuid4()
    session.add_all([
        PayGroup(
            group_id=group_id,
            tenant_id=tenant_id,
            name="UK staff",
            schedule_id=schedule_id,
            currency="GBP",
        ),
        PayElement(
            element_id=earning_id,
            tenant_id=tenant_id,
            name="Bonus",
            element_type="earning",
            calc_type="fixed",
        ),
        PayElement(
            element_id=deduction_id,
            tenant_id=tenant_id,
            name="Pension",
            element_type="deduction",
            calc_type="fixed",
        ),
    ])
    await session.flush()

    period_id = await make_period(schedule_id, date(2024, 1, 1), date(2024, 1, 10))

    alice_user, bob_user = uuid4(), uuid4()
    alice = await make_employee("Alice", "Anders", user_id=alice_user, pay_group_id=group_id)
    bob = await make_employee(
        "Bob", "Brown", salary=Decimal("2000.00"), bank_account=None, user_id=bob_user
    )
    await session.commit()

    return PayrollSetup(
        tenant_id=tenant_id,
        hr_user_id=hr_user_id,
        schedule_id=schedule_id,
        group_id=group_id,
        earning_id=earning_id,
        deduction_id=deduction_id,
        period_id=period_id,
        employee_ids={"alice": alice, "bob": bob},
        user_ids={"alice": alice_user, "bob": bob_user},
    )
