"""Payroll cycle state machine with transition validation."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from payroll_suite.exceptions import ValidationError

if TYPE_CHECKING:
    from payroll_suite.models import PayrollCycle


class CycleStatus(str, Enum):
    """Payroll cycle status values."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidTransitionError(ValidationError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(getattr(from_status, "value", from_status))
        self.to_status = str(getattr(to_status, "value", to_status))
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__("Invalid status transition", msg)


class CycleStateMachine:
    """State machine for payroll cycle status transitions.

    Allowed transitions:
    - draft → pending_approval (submit)
    - pending_approval → approved (approve)
    - pending_approval → draft (reject)
    - approved → draft (reject)
    - approved → processing (process)
    - processing → completed
    - processing → failed

    Cycles whose month has passed are force-completed on read; that rule
    bypasses the table above.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        CycleStatus.DRAFT: [CycleStatus.PENDING_APPROVAL],
        CycleStatus.PENDING_APPROVAL: [CycleStatus.APPROVED, CycleStatus.DRAFT],
        CycleStatus.APPROVED: [CycleStatus.PROCESSING, CycleStatus.DRAFT],
        CycleStatus.PROCESSING: [CycleStatus.COMPLETED, CycleStatus.FAILED],
        CycleStatus.COMPLETED: [],  # Terminal state
        CycleStatus.FAILED: [],  # Terminal state
    }

    TERMINAL = {
        CycleStatus.COMPLETED,
        CycleStatus.FAILED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_reject(cls, from_status: str, to_status: str) -> bool:
        return to_status == CycleStatus.DRAFT and from_status in (
            CycleStatus.PENDING_APPROVAL,
            CycleStatus.APPROVED,
        )

    @classmethod
    def should_auto_complete(cls, cycle: PayrollCycle, today: date) -> bool:
        """True when the cycle's month is strictly before today's month."""
        if cycle.status in cls.TERMINAL:
            return False
        return (cycle.year, cycle.month) < (today.year, today.month)

    @classmethod
    def validate_process(cls, status: str) -> None:
        """Only approved cycles may be processed."""
        if status != CycleStatus.APPROVED:
            raise InvalidTransitionError(
                status,
                CycleStatus.PROCESSING,
                f"Cannot process payroll with status '{status}'. Only approved cycles can be processed.",
            )
