"""Typed errors raised by payroll services.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with, so routes never parse messages.
"""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """Base class for payroll errors."""

    code: str = "payroll_error"
    status_code: int = 500

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class InvalidStateTransition(PayrollError):
    """Raised when an action does not fit the period's current status."""

    code = "invalid_state"
    status_code = 400

    def __init__(self, from_status: str, action: str, reason: str | None = None):
        self.from_status = from_status
        self.action = action
        self.reason = reason
        msg = f"Cannot {action} a period in status '{from_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"status": from_status, "action": action})


class ValidationError(PayrollError):
    """Bad dates, conflicting half-day flags or missing fields."""

    status_code = 400

    def __init__(self, message: str, code: str = "invalid_payload", context: dict[str, Any] | None = None):
        self.code = code
        super().__init__(message, context)


class NotFound(PayrollError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None):
        self.entity = entity
        context = {"id": str(entity_id)} if entity_id is not None else None
        super().__init__(f"{entity} not found", context)


class Forbidden(PayrollError):
    code = "forbidden"
    status_code = 403


class ConflictingReplay(PayrollError):
    """Idempotency key reused for a different request."""

    code = "idempotency_conflict"
    status_code = 409

    def __init__(self, key: str, endpoint: str):
        self.key = key
        self.endpoint = endpoint
        super().__init__(
            "Idempotency key was already used for a different request",
            {"key": key, "endpoint": endpoint},
        )


class PersistenceFailure(PayrollError):
    """Database error. Not retried automatically."""

    code = "persistence_failed"
    status_code = 500


class MissingPayData(PayrollError):
    """Employee lacks data required to compute pay (e.g. salary)."""

    code = "missing_pay_data"
    status_code = 400


class DocumentUnavailable(PayrollError):
    """Payslip document could not be produced."""

    code = "payslip_missing"
    status_code = 500
