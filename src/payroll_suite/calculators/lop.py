"""Loss-of-pay resolution from the leave and attendance ledgers."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators.engine import days_in_month, month_bounds
from payroll_suite.calculators.types import LopSummary
from payroll_suite.models import LOSS_OF_PAY, AttendanceRecord, LeaveRequest

DAY_PRECISION = Decimal("0.01")
ONE = Decimal("1")


@dataclass(frozen=True)
class LeaveTotals:
    """Approved leave days overlapping a month, split by paid/unpaid."""

    paid_leave_days: Decimal
    total_leave_days: Decimal


def _dates_between(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def lop_days_by_employee(
    leaves: Iterable[LeaveRequest],
    attendance: Iterable[AttendanceRecord],
    period_start: date,
    period_end: date,
) -> dict[UUID, Decimal]:
    """Collapse both LOP sources into one weight per (employee, date).

    A leave request spreads its ``days`` evenly over its calendar span, so a
    half-day request on one date weighs 0.5. An attendance row flagged
    ``is_lop`` weighs a full day. A date flagged by both sources counts once,
    at the larger weight.
    """
    weights: dict[UUID, dict[date, Decimal]] = defaultdict(dict)

    for leave in leaves:
        span = Decimal(leave.span_days)
        if span <= 0:
            continue
        per_day = min(ONE, Decimal(leave.days) / span)
        start = max(leave.start_date, period_start)
        end = min(leave.end_date, period_end)
        for day in _dates_between(start, end):
            current = weights[leave.employee_id].get(day, Decimal("0"))
            weights[leave.employee_id][day] = max(current, per_day)

    for record in attendance:
        if not record.is_lop:
            continue
        if not period_start <= record.attendance_date <= period_end:
            continue
        weights[record.employee_id][record.attendance_date] = ONE

    return {
        employee_id: sum(days.values(), Decimal("0")).quantize(
            DAY_PRECISION, rounding=ROUND_HALF_UP
        )
        for employee_id, days in weights.items()
    }


class LopResolver:
    """Resolves LOP days for a tenant month from the database."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _approved_lop_leaves(
        self,
        tenant_id: UUID,
        period_start: date,
        period_end: date,
        employee_ids: list[UUID] | None = None,
    ) -> list[LeaveRequest]:
        stmt = select(LeaveRequest).where(
            LeaveRequest.tenant_id == tenant_id,
            LeaveRequest.status == "approved",
            LeaveRequest.leave_type == LOSS_OF_PAY,
            LeaveRequest.start_date <= period_end,
            LeaveRequest.end_date >= period_start,
        )
        if employee_ids is not None:
            stmt = stmt.where(LeaveRequest.employee_id.in_(employee_ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _lop_attendance(
        self,
        tenant_id: UUID,
        period_start: date,
        period_end: date,
        employee_ids: list[UUID] | None = None,
    ) -> list[AttendanceRecord]:
        stmt = select(AttendanceRecord).where(
            AttendanceRecord.tenant_id == tenant_id,
            AttendanceRecord.is_lop.is_(True),
            AttendanceRecord.attendance_date >= period_start,
            AttendanceRecord.attendance_date <= period_end,
        )
        if employee_ids is not None:
            stmt = stmt.where(AttendanceRecord.employee_id.in_(employee_ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def resolve_month(
        self,
        tenant_id: UUID,
        year: int,
        month: int,
        employee_ids: list[UUID] | None = None,
    ) -> dict[UUID, LopSummary]:
        """LOP summary per employee for the month.

        Employees with no LOP in the month are present when listed in
        ``employee_ids`` (with zero LOP days) and absent otherwise.
        """
        period_start, period_end = month_bounds(year, month)
        total_days = days_in_month(year, month)

        leaves = await self._approved_lop_leaves(tenant_id, period_start, period_end, employee_ids)
        attendance = await self._lop_attendance(tenant_id, period_start, period_end, employee_ids)
        lop_days = lop_days_by_employee(leaves, attendance, period_start, period_end)

        summaries = {
            employee_id: LopSummary(total_working_days=total_days, lop_days=days)
            for employee_id, days in lop_days.items()
        }
        for employee_id in employee_ids or ():
            summaries.setdefault(
                employee_id, LopSummary(total_working_days=total_days, lop_days=Decimal("0"))
            )
        return summaries

    async def summary_for(
        self, tenant_id: UUID, employee_id: UUID, year: int, month: int
    ) -> LopSummary:
        summaries = await self.resolve_month(tenant_id, year, month, [employee_id])
        return summaries[employee_id]

    async def leave_totals(
        self, tenant_id: UUID, employee_id: UUID, year: int, month: int
    ) -> LeaveTotals:
        """Approved leave days (full request days) for requests overlapping the month."""
        period_start, period_end = month_bounds(year, month)
        result = await self.session.execute(
            select(LeaveRequest).where(
                LeaveRequest.tenant_id == tenant_id,
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == "approved",
                LeaveRequest.start_date <= period_end,
                LeaveRequest.end_date >= period_start,
            )
        )
        paid = Decimal("0")
        total = Decimal("0")
        for leave in result.scalars().all():
            days = Decimal(leave.days)
            total += days
            if leave.leave_type != LOSS_OF_PAY:
                paid += days
        return LeaveTotals(paid_leave_days=paid, total_leave_days=total)
