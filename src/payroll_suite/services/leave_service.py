"""Leave requests, leave summary and attendance."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators.engine import days_in_month, month_bounds
from payroll_suite.calculators.lop import LopResolver
from payroll_suite.exceptions import ConflictError, NotFoundError, ValidationError
from payroll_suite.models import AttendanceRecord, Employee, LeaveRequest
from payroll_suite.models.attendance import ATTENDANCE_STATUSES, LEAVE_STATUSES, LEAVE_TYPES
from payroll_suite.security.capabilities import RequestContext
from payroll_suite.services.payroll_reader import PayrollReader

logger = logging.getLogger(__name__)


def _leave_row(leave: LeaveRequest, employee: Employee) -> dict[str, Any]:
    row = leave.to_dict()
    row.update(employee_name=employee.full_name, employee_code=employee.employee_code)
    return row


def _check_leave_status(status: str) -> None:
    if status not in LEAVE_STATUSES:
        raise ValidationError(f"Unknown leave status '{status}'", field="status")


class LeaveService:
    """Employee leave self-service plus approver and attendance operations."""

    def __init__(self, session: AsyncSession, today: date | None = None):
        self.session = session
        self.today = today or date.today()
        self.reader = PayrollReader(session, today=self.today)
        self.lop_resolver = LopResolver(session)

    async def _require_own_employee(self, ctx: RequestContext) -> Employee:
        employee = await self.reader.own_employee(ctx)
        if employee is None:
            raise NotFoundError("Employee not found")
        return employee

    # ===== Self service =====

    async def own_leave_requests(
        self,
        ctx: RequestContext,
        status: str | None = None,
        month: int | None = None,
        year: int | None = None,
    ) -> list[dict[str, Any]]:
        employee = await self.reader.own_employee(ctx)
        if employee is None:
            return []

        stmt = select(LeaveRequest).where(
            LeaveRequest.tenant_id == ctx.tenant_id,
            LeaveRequest.employee_id == employee.id,
        )
        if status:
            _check_leave_status(status)
            stmt = stmt.where(LeaveRequest.status == status)
        if month and year:
            period_start, period_end = month_bounds(year, month)
            stmt = stmt.where(
                LeaveRequest.start_date <= period_end,
                LeaveRequest.end_date >= period_start,
            )
        result = await self.session.execute(stmt.order_by(LeaveRequest.created_at.desc()))
        return [_leave_row(leave, employee) for leave in result.scalars().all()]

    async def create_leave_request(
        self,
        ctx: RequestContext,
        leave_type: str,
        start_date: date,
        end_date: date,
        reason: str | None = None,
    ) -> LeaveRequest:
        if leave_type not in LEAVE_TYPES:
            raise ValidationError(f"Unknown leave type '{leave_type}'", field="leaveType")
        if end_date < start_date:
            raise ValidationError("Invalid leave date range", field="endDate")

        employee = await self._require_own_employee(ctx)
        leave = LeaveRequest(
            tenant_id=ctx.tenant_id,
            employee_id=employee.id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=Decimal((end_date - start_date).days + 1),
            reason=reason,
            status="pending",
            created_by=ctx.user_id,
        )
        self.session.add(leave)
        await self.session.flush()
        logger.info(
            "Leave request %s created for employee %s (%s, %s days)",
            leave.id, employee.id, leave_type, leave.days,
        )
        return leave

    async def own_leave_summary(
        self, ctx: RequestContext, month: int | None = None, year: int | None = None
    ) -> dict[str, Any]:
        month = month or self.today.month
        year = year or self.today.year
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12", field="month")

        employee = await self.reader.own_employee(ctx)
        if employee is None:
            return {
                "month": month,
                "year": year,
                "totalWorkingDays": 0,
                "lopDays": Decimal("0"),
                "paidDays": Decimal("0"),
                "paidLeaveDays": Decimal("0"),
                "totalLeaveDays": Decimal("0"),
            }

        lop = await self.lop_resolver.summary_for(ctx.tenant_id, employee.id, year, month)
        totals = await self.lop_resolver.leave_totals(ctx.tenant_id, employee.id, year, month)
        return {
            "month": month,
            "year": year,
            "totalWorkingDays": days_in_month(year, month),
            "lopDays": lop.lop_days,
            "paidDays": lop.paid_days,
            "paidLeaveDays": totals.paid_leave_days,
            "totalLeaveDays": totals.total_leave_days,
        }

    async def own_attendance(
        self,
        ctx: RequestContext,
        month: int | None = None,
        year: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[AttendanceRecord]:
        employee = await self.reader.own_employee(ctx)
        if employee is None:
            return []

        stmt = select(AttendanceRecord).where(
            AttendanceRecord.tenant_id == ctx.tenant_id,
            AttendanceRecord.employee_id == employee.id,
        )
        if month and year:
            start_date, end_date = month_bounds(year, month)
        if start_date and end_date:
            stmt = stmt.where(
                AttendanceRecord.attendance_date >= start_date,
                AttendanceRecord.attendance_date <= end_date,
            )
        result = await self.session.execute(
            stmt.order_by(AttendanceRecord.attendance_date.desc())
        )
        return list(result.scalars().all())

    # ===== Approvers =====

    async def tenant_leave_requests(
        self, ctx: RequestContext, status: str | None = None
    ) -> list[dict[str, Any]]:
        stmt = (
            select(LeaveRequest, Employee)
            .join(Employee, Employee.id == LeaveRequest.employee_id)
            .where(LeaveRequest.tenant_id == ctx.tenant_id)
        )
        if status:
            _check_leave_status(status)
            stmt = stmt.where(LeaveRequest.status == status)
        result = await self.session.execute(stmt.order_by(LeaveRequest.created_at.desc()))
        return [_leave_row(leave, employee) for leave, employee in result.all()]

    async def _pending_leave(self, ctx: RequestContext, leave_id: UUID) -> LeaveRequest:
        result = await self.session.execute(
            select(LeaveRequest).where(
                LeaveRequest.id == leave_id, LeaveRequest.tenant_id == ctx.tenant_id
            )
        )
        leave = result.scalar_one_or_none()
        if leave is None:
            raise NotFoundError("Leave request not found")
        if leave.status != "pending":
            raise ConflictError(
                "Leave request already decided",
                f"Leave request is '{leave.status}', only pending requests can be decided",
            )
        return leave

    async def approve_leave(self, ctx: RequestContext, leave_id: UUID) -> LeaveRequest:
        leave = await self._pending_leave(ctx, leave_id)
        leave.status = "approved"
        leave.approved_by = ctx.user_id
        await self.session.flush()
        logger.info("Leave request %s approved by %s", leave.id, ctx.user_id)
        return leave

    async def reject_leave(
        self, ctx: RequestContext, leave_id: UUID, reason: str | None = None
    ) -> LeaveRequest:
        leave = await self._pending_leave(ctx, leave_id)
        leave.status = "rejected"
        leave.rejected_by = ctx.user_id
        leave.rejection_reason = reason
        await self.session.flush()
        logger.info("Leave request %s rejected by %s", leave.id, ctx.user_id)
        return leave

    async def upsert_attendance(
        self,
        ctx: RequestContext,
        employee_id: UUID,
        attendance_date: date,
        status: str,
        is_lop: bool | None = None,
        hours_worked: Decimal | None = None,
    ) -> AttendanceRecord:
        """Create or replace the attendance row for (employee, date)."""
        if status not in ATTENDANCE_STATUSES:
            raise ValidationError(f"Unknown attendance status '{status}'", field="status")
        await self.reader.get_employee(ctx.tenant_id, employee_id)

        result = await self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.tenant_id == ctx.tenant_id,
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date == attendance_date,
            )
        )
        record = result.scalar_one_or_none()
        lop_flag = is_lop if is_lop is not None else status == "lop"
        if record is None:
            record = AttendanceRecord(
                tenant_id=ctx.tenant_id,
                employee_id=employee_id,
                attendance_date=attendance_date,
            )
            self.session.add(record)
        record.status = status
        record.is_lop = lop_flag
        record.hours_worked = hours_worked

        try:
            async with self.session.begin_nested():
                await self.session.flush()
        except IntegrityError:
            raise ConflictError("Attendance for this employee and date already exists.")
        return record
