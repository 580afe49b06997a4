"""External collaborators and the non-fatal side effect contract.

Document rendering, notification dispatch and audit logging live outside
the payroll core. Services talk to them through the protocols below; the
default implementations are local stand-ins suitable for development.

Non-fatal side effects
----------------------
Some calls must never undo or fail the operation that triggered them
(e.g. a notification after a committed finalize). Those go through
``run_side_effect``: a failure is logged once with ``logger.exception``
under the ``hr_payroll.services.collaborators`` logger, tagged with the
description and context ids, and the call returns ``None``. Callers treat
``None`` as "did not happen" and carry on.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PayslipPayload:
    """Data handed to a renderer for one payslip."""

    payslip_id: UUID
    tenant_id: UUID
    period_id: UUID
    employee_id: UUID
    first_name: str
    last_name: str
    email: str
    gross: Decimal
    deductions: Decimal
    net: Decimal
    currency: str
    start_date: date
    end_date: date


class PayslipRenderer(Protocol):
    """Renders a payslip document and returns a reference to it."""

    async def render(self, payload: PayslipPayload) -> str:
        ...


class Notifier(Protocol):
    """Sends an in-app notification to a user."""

    async def notify(self, tenant_id: UUID, user_id: UUID, title: str, body: str) -> None:
        ...


class AuditSink(Protocol):
    """Records an audit trail entry."""

    async def record(
        self,
        tenant_id: UUID,
        user_id: UUID,
        action: str,
        entity_type: str,
        entity_id: UUID,
        details: dict[str, Any] | None = None,
    ) -> None:
        ...


class LocalFileRenderer:
    """Writes a plain-text payslip document under a storage directory."""

    def __init__(self, storage_dir: str | Path):
        self.storage_dir = Path(storage_dir)

    async def render(self, payload: PayslipPayload) -> str:
        path = self.storage_dir / str(payload.tenant_id) / str(payload.period_id) / f"{payload.payslip_id}.txt"
        await asyncio.to_thread(self._write, path, self._document(payload))
        return str(path)

    @staticmethod
    def _write(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    @staticmethod
    def _document(payload: PayslipPayload) -> str:
        return "\n".join([
            "PAYSLIP",
            f"Employee: {payload.first_name} {payload.last_name} <{payload.email}>",
            f"Period: {payload.start_date.isoformat()} to {payload.end_date.isoformat()}",
            f"Gross: {payload.gross:.2f} {payload.currency}",
            f"Deductions: {payload.deductions:.2f} {payload.currency}",
            f"Net: {payload.net:.2f} {payload.currency}",
            "",
        ])


class LoggingNotifier:
    """Notifier that only logs."""

    async def notify(self, tenant_id: UUID, user_id: UUID, title: str, body: str) -> None:
        logger.info("notification tenant=%s user=%s title=%r", tenant_id, user_id, title)


class LoggingAuditSink:
    """Audit sink that writes entries to the log."""

    async def record(
        self,
        tenant_id: UUID,
        user_id: UUID,
        action: str,
        entity_type: str,
        entity_id: UUID,
        details: dict[str, Any] | None = None,
    ) -> None:
        logger.info(
            "audit action=%s tenant=%s user=%s %s=%s details=%s",
            action, tenant_id, user_id, entity_type, entity_id, details or {},
        )


@dataclass
class Collaborators:
    """Bundle of collaborators handed to services."""

    renderer: PayslipRenderer
    notifier: Notifier
    audit: AuditSink


def default_collaborators(storage_dir: str | Path) -> Collaborators:
    return Collaborators(
        renderer=LocalFileRenderer(storage_dir),
        notifier=LoggingNotifier(),
        audit=LoggingAuditSink(),
    )


async def run_side_effect(
    description: str,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    **context: Any,
) -> T | None:
    """Await ``func(*args)``; log and swallow any failure."""
    try:
        return await func(*args)
    except Exception:
        logger.exception(
            "Non-fatal side effect failed: %s (%s)",
            description,
            ", ".join(f"{k}={v}" for k, v in sorted(context.items())),
        )
        return None


async def record_audit(
    audit: AuditSink,
    tenant_id: UUID,
    user_id: UUID,
    action: str,
    entity_type: str,
    entity_id: UUID,
    details: dict[str, Any] | None = None,
) -> None:
    """Record an audit entry as a non-fatal side effect."""
    await run_side_effect(
        f"audit {action}",
        audit.record,
        tenant_id,
        user_id,
        action,
        entity_type,
        entity_id,
        details,
        tenant_id=tenant_id,
        entity_id=entity_id,
    )
