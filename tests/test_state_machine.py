"""Tests for payroll cycle state machine."""

from datetime import date

import pytest

from payroll_suite.exceptions import ValidationError
from payroll_suite.models import PayrollCycle
from payroll_suite.services.state_machine import (
    CycleStateMachine,
    CycleStatus,
    InvalidTransitionError,
)


class TestCycleStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # draft → pending_approval (submit)
        assert CycleStateMachine.can_transition("draft", "pending_approval") is True

        # pending_approval → approved / draft
        assert CycleStateMachine.can_transition("pending_approval", "approved") is True
        assert CycleStateMachine.can_transition("pending_approval", "draft") is True

        # approved → processing / draft (reject after approval)
        assert CycleStateMachine.can_transition("approved", "processing") is True
        assert CycleStateMachine.can_transition("approved", "draft") is True

        # processing → completed / failed
        assert CycleStateMachine.can_transition("processing", "completed") is True
        assert CycleStateMachine.can_transition("processing", "failed") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Can't skip approval
        assert CycleStateMachine.can_transition("draft", "approved") is False
        assert CycleStateMachine.can_transition("draft", "processing") is False
        assert CycleStateMachine.can_transition("pending_approval", "processing") is False

        # Terminal states
        assert CycleStateMachine.can_transition("completed", "draft") is False
        assert CycleStateMachine.can_transition("failed", "processing") is False

    def test_enum_and_string_statuses_agree(self):
        assert CycleStateMachine.can_transition(CycleStatus.DRAFT, CycleStatus.PENDING_APPROVAL)
        assert CycleStateMachine.can_transition("approved", CycleStatus.PROCESSING)

    def test_validate_transition_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            CycleStateMachine.validate_transition("draft", "completed")

        assert exc_info.value.from_status == "draft"
        assert exc_info.value.to_status == "completed"
        # Reported to clients as a 400
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.status_code == 400

    def test_validate_process_requires_approval(self):
        CycleStateMachine.validate_process("approved")

        with pytest.raises(InvalidTransitionError) as exc_info:
            CycleStateMachine.validate_process("pending_approval")
        assert "Only approved cycles can be processed" in exc_info.value.message

    def test_is_reject(self):
        assert CycleStateMachine.is_reject("pending_approval", "draft") is True
        assert CycleStateMachine.is_reject("approved", "draft") is True
        assert CycleStateMachine.is_reject("draft", "pending_approval") is False

