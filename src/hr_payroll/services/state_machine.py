"""Payroll period state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from hr_payroll.errors import InvalidStateTransition


class PeriodStatus(str, Enum):
    """Payroll period status values."""

    DRAFT = "draft"
    REVIEWED = "reviewed"
    FINALIZED = "finalized"


class PeriodAction(str, Enum):
    """Actions that move a period between statuses."""

    RUN = "run"
    FINALIZE = "finalize"
    REOPEN = "reopen"


class PeriodStateMachine:
    """State machine for payroll period status transitions.

    Allowed transitions:
    - draft → reviewed (run)
    - reviewed → finalized (finalize)
    - finalized → draft (reopen, destructive)

    Anything else raises InvalidStateTransition.
    """

    # {action: (required_from_status, resulting_status)}
    TRANSITIONS: dict[PeriodAction, tuple[PeriodStatus, PeriodStatus]] = {
        PeriodAction.RUN: (PeriodStatus.DRAFT, PeriodStatus.REVIEWED),
        PeriodAction.FINALIZE: (PeriodStatus.REVIEWED, PeriodStatus.FINALIZED),
        PeriodAction.REOPEN: (PeriodStatus.FINALIZED, PeriodStatus.DRAFT),
    }

    # Statuses where inputs and adjustments may still be added
    INPUTS_MUTABLE = frozenset({
        PeriodStatus.DRAFT.value,
        PeriodStatus.REVIEWED.value,
    })

    @classmethod
    def can_apply(cls, status: str, action: PeriodAction) -> bool:
        """Check if an action is allowed from a status."""
        required, _ = cls.TRANSITIONS[action]
        return status == required

    @classmethod
    def validate(cls, status: str, action: PeriodAction) -> PeriodStatus:
        """Validate an action, returning the status it leads to."""
        required, target = cls.TRANSITIONS[action]
        if status != required:
            raise InvalidStateTransition(
                status, action.value, f"requires status '{required.value}'"
            )
        return target

    @classmethod
    def can_modify_inputs(cls, status: str) -> bool:
        """Check if inputs and adjustments can be added in this status."""
        return status in cls.INPUTS_MUTABLE

    @classmethod
    def validate_inputs_mutable(cls, status: str) -> None:
        if not cls.can_modify_inputs(status):
            raise InvalidStateTransition(
                status, "modify inputs of", "reopen the period first"
            )

    @classmethod
    def allowed_actions(cls, status: str) -> list[PeriodAction]:
        """Actions available from the given status."""
        return [action for action in cls.TRANSITIONS if cls.can_apply(status, action)]
