"""Stored responses for idempotent requests."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.models.base import Base, TimestampMixin


class IdempotencyRecord(Base, TimestampMixin):
    """First response produced for a (tenant, user, key, endpoint)."""

    __tablename__ = "idempotency_record"

    record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    key: Mapped[str] = mapped_column(String, nullable=False)
    endpoint: Mapped[str] = mapped_column(String, nullable=False)
    request_hash: Mapped[str] = mapped_column(String, nullable=False)
    response: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "user_id", "key", "endpoint",
            name="idempotency_record_scope_unique",
        ),
    )
