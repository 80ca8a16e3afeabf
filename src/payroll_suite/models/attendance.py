"""Leave and attendance ledger models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_suite.models.base import (
    Base,
    DayCount,
    TimestampMixin,
    UpdatedAtMixin,
    UUIDPrimaryKeyMixin,
)
from payroll_suite.models.employee import Employee

LEAVE_TYPES = ("sick", "casual", "earned", "loss_of_pay", "other")
LEAVE_STATUSES = ("pending", "approved", "rejected", "cancelled")
ATTENDANCE_STATUSES = ("present", "absent", "half_day", "holiday", "weekend", "lop")

LOSS_OF_PAY = "loss_of_pay"


class LeaveRequest(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """Leave request raised by an employee and transitioned by an approver."""

    __tablename__ = "leave_requests"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[Decimal] = mapped_column(DayCount, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejected_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "leave_type IN ('sick', 'casual', 'earned', 'loss_of_pay', 'other')",
            name="leave_requests_type_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="leave_requests_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_requests_range_check"),
    )

    employee: Mapped[Employee] = relationship()

    @property
    def span_days(self) -> int:
        """Calendar days covered by the request, inclusive."""
        return (self.end_date - self.start_date).days + 1


class AttendanceRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """One attendance row per employee per day."""

    __tablename__ = "attendance_records"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    is_lop: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hours_worked: Mapped[Decimal | None] = mapped_column(DayCount, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "attendance_date", name="attendance_employee_date_unique"
        ),
        CheckConstraint(
            "status IN ('present', 'absent', 'half_day', 'holiday', 'weekend', 'lop')",
            name="attendance_status_check",
        ),
    )

    employee: Mapped[Employee] = relationship()
