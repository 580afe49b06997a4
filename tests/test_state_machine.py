"""Tests for the payroll period state machine."""

import pytest

from hr_payroll.errors import InvalidStateTransition
from hr_payroll.services.state_machine import (
    PeriodAction,
    PeriodStateMachine,
    PeriodStatus,
)

EXPECTED = {
    ("draft", PeriodAction.RUN): "reviewed",
    ("reviewed", PeriodAction.FINALIZE): "finalized",
    ("finalized", PeriodAction.REOPEN): "draft",
}


class TestPeriodStateMachine:
    """Test status transitions."""

    @pytest.mark.parametrize("status", [s.value for s in PeriodStatus])
    @pytest.mark.parametrize("action", list(PeriodAction))
    def test_every_status_action_pair(self, status, action):
        """Exactly one source status is accepted per action."""
        target = EXPECTED.get((status, action))
        if target is None:
            assert PeriodStateMachine.can_apply(status, action) is False
            with pytest.raises(InvalidStateTransition) as exc_info:
                PeriodStateMachine.validate(status, action)
            assert exc_info.value.from_status == status
            assert exc_info.value.action == action.value
            assert exc_info.value.code == "invalid_state"
        else:
            assert PeriodStateMachine.can_apply(status, action) is True
            assert PeriodStateMachine.validate(status, action) == target

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidStateTransition):
            PeriodStateMachine.validate("archived", PeriodAction.RUN)

    def test_allowed_actions(self):
        assert PeriodStateMachine.allowed_actions("draft") == [PeriodAction.RUN]
        assert PeriodStateMachine.allowed_actions("reviewed") == [PeriodAction.FINALIZE]
        assert PeriodStateMachine.allowed_actions("finalized") == [PeriodAction.REOPEN]


class TestInputMutability:
    """Inputs may change until the period is finalized."""

    @pytest.mark.parametrize("status", ["draft", "reviewed"])
    def test_open_statuses(self, status):
        assert PeriodStateMachine.can_modify_inputs(status) is True
        PeriodStateMachine.validate_inputs_mutable(status)

    def test_finalized_locked(self):
        assert PeriodStateMachine.can_modify_inputs("finalized") is False
        with pytest.raises(InvalidStateTransition) as exc_info:
            PeriodStateMachine.validate_inputs_mutable("finalized")
        assert "finalized" in str(exc_info.value)

    def test_enum_members_accepted(self):
        """Members compare like their string values."""
        assert PeriodStateMachine.can_modify_inputs(PeriodStatus.DRAFT.value) is True
        assert PeriodStateMachine.can_apply(PeriodStatus.DRAFT, PeriodAction.RUN) is True
