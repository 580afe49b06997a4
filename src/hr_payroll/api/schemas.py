"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from hr_payroll.calculators.types import ElementType, InputSource
from hr_payroll.services.state_machine import PeriodStateMachine


class ApiModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# Common
# ============================================================================


class ErrorResponse(BaseModel):
    """Error envelope returned for every failure."""

    detail: str
    code: str
    context: dict[str, Any] | None = None


class StatusResponse(ApiModel):
    status: str


class CreatedResponse(ApiModel):
    id: UUID


# ============================================================================
# Catalog schemas
# ============================================================================


class ScheduleCreate(ApiModel):
    name: str = Field(min_length=1)
    frequency: str = Field(min_length=1)
    pay_day: int | None = Field(default=None, ge=1, le=31)


class ScheduleResponse(ApiModel):
    id: UUID = Field(validation_alias=AliasChoices("schedule_id", "id"))
    name: str
    frequency: str
    pay_day: int | None = None


class GroupCreate(ApiModel):
    name: str = Field(min_length=1)
    schedule_id: UUID | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class GroupResponse(ApiModel):
    id: UUID = Field(validation_alias=AliasChoices("group_id", "id"))
    name: str
    schedule_id: UUID | None = None
    currency: str


class ElementCreate(ApiModel):
    name: str = Field(min_length=1)
    element_type: ElementType
    calc_type: str = "fixed"
    amount: Decimal = Decimal("0")
    taxable: bool = True


class ElementResponse(ApiModel):
    id: UUID = Field(validation_alias=AliasChoices("element_id", "id"))
    name: str
    element_type: str
    calc_type: str
    amount: Decimal
    taxable: bool


# ============================================================================
# Period schemas
# ============================================================================


class PeriodCreate(ApiModel):
    """Schema for creating a draft period."""

    schedule_id: UUID
    start_date: date
    end_date: date


class PeriodResponse(ApiModel):
    id: UUID = Field(validation_alias=AliasChoices("period_id", "id"))
    schedule_id: UUID
    start_date: date
    end_date: date
    status: str
    finalized_at: datetime | None = None

    @computed_field(alias="allowedActions")
    @property
    def allowed_actions(self) -> list[str]:
        """Lifecycle actions that apply from the current status."""
        return [action.value for action in PeriodStateMachine.allowed_actions(self.status)]


class ReopenRequest(ApiModel):
    reason: str | None = None


class SummaryResponse(ApiModel):
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    employee_count: int
    warnings: dict[str, int]


# ============================================================================
# Input and adjustment schemas
# ============================================================================


class InputCreate(ApiModel):
    """Single input line; amount defaults to units x rate when zero."""

    employee_id: UUID
    element_id: UUID
    units: Decimal | None = None
    rate: Decimal | None = None
    amount: Decimal | None = None
    source: InputSource | None = None


class InputResponse(ApiModel):
    id: UUID = Field(validation_alias=AliasChoices("input_id", "id"))
    employee_id: UUID
    element_id: UUID
    units: Decimal | None = None
    rate: Decimal | None = None
    amount: Decimal
    source: str


class ImportResponse(ApiModel):
    imported: int


class AdjustmentCreate(ApiModel):
    employee_id: UUID
    description: str = Field(min_length=1)
    amount: Decimal
    effective_date: date | None = None


class AdjustmentResponse(ApiModel):
    id: UUID = Field(validation_alias=AliasChoices("adjustment_id", "id"))
    employee_id: UUID
    description: str
    amount: Decimal
    effective_date: date | None = None


# ============================================================================
# Payslip schemas
# ============================================================================


class PayslipResponse(ApiModel):
    id: UUID = Field(validation_alias=AliasChoices("payslip_id", "id"))
    period_id: UUID
    employee_id: UUID
    gross: Decimal
    deductions: Decimal
    net: Decimal
    currency: str
    file_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("file_ref", "file_url", "fileUrl"),
        serialization_alias="fileUrl",
    )
    created_at: datetime
