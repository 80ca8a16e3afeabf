"""Tests for loss-of-pay resolution."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from payroll_suite.calculators.lop import LopResolver, lop_days_by_employee
from payroll_suite.models import LOSS_OF_PAY, AttendanceRecord, LeaveRequest

FEB_START = date(2023, 2, 1)
FEB_END = date(2023, 2, 28)


def leave(employee_id, start, end, days=None, leave_type=LOSS_OF_PAY):
    return LeaveRequest(
        employee_id=employee_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        days=Decimal(days) if days is not None else Decimal((end - start).days + 1),
        status="approved",
    )


def lop_attendance(employee_id, day, is_lop=True):
    return AttendanceRecord(
        employee_id=employee_id,
        attendance_date=day,
        status="lop" if is_lop else "present",
        is_lop=is_lop,
    )


class TestLopDaysByEmployee:
    """Test the pure merge of leave and attendance ledgers."""

    def test_leave_days_within_month(self):
        emp = uuid4()
        result = lop_days_by_employee(
            [leave(emp, date(2023, 2, 6), date(2023, 2, 7))], [], FEB_START, FEB_END
        )
        assert result == {emp: Decimal("2.00")}

    def test_same_date_counted_once(self):
        """A date flagged by both leave and attendance is one LOP day."""
        emp = uuid4()
        result = lop_days_by_employee(
            [leave(emp, date(2023, 2, 10), date(2023, 2, 11))],
            [lop_attendance(emp, date(2023, 2, 11)), lop_attendance(emp, date(2023, 2, 12))],
            FEB_START,
            FEB_END,
        )
        assert result[emp] == Decimal("3.00")

    def test_overlapping_leaves_counted_once(self):
        emp = uuid4()
        result = lop_days_by_employee(
            [
                leave(emp, date(2023, 2, 1), date(2023, 2, 3)),
                leave(emp, date(2023, 2, 2), date(2023, 2, 4)),
            ],
            [],
            FEB_START,
            FEB_END,
        )
        assert result[emp] == Decimal("4.00")

    def test_leave_clipped_to_month(self):
        emp = uuid4()
        result = lop_days_by_employee(
            [leave(emp, date(2023, 1, 30), date(2023, 2, 2))], [], FEB_START, FEB_END
        )
        assert result[emp] == Decimal("2.00")

    def test_half_day_leave(self):
        emp = uuid4()
        result = lop_days_by_employee(
            [leave(emp, date(2023, 2, 15), date(2023, 2, 15), days="0.5")], [], FEB_START, FEB_END
        )
        assert result[emp] == Decimal("0.50")

    def test_attendance_outranks_half_day(self):
        emp = uuid4()
        result = lop_days_by_employee(
            [leave(emp, date(2023, 2, 15), date(2023, 2, 15), days="0.5")],
            [lop_attendance(emp, date(2023, 2, 15))],
            FEB_START,
            FEB_END,
        )
        assert result[emp] == Decimal("1.00")

    def test_non_lop_attendance_ignored(self):
        emp = uuid4()
        result = lop_days_by_employee(
            [], [lop_attendance(emp, date(2023, 2, 3), is_lop=False)], FEB_START, FEB_END
        )
        assert result == {}

    def test_attendance_outside_month_ignored(self):
        emp = uuid4()
        result = lop_days_by_employee(
            [], [lop_attendance(emp, date(2023, 3, 1))], FEB_START, FEB_END
        )
        assert result == {}

    def test_employees_kept_apart(self):
        first, second = uuid4(), uuid4()
        result = lop_days_by_employee(
            [leave(first, date(2023, 2, 1), date(2023, 2, 1))],
            [lop_attendance(second, date(2023, 2, 1))],
            FEB_START,
            FEB_END,
        )
        assert result == {first: Decimal("1.00"), second: Decimal("1.00")}


class TestLopResolver:
    """Test resolution against the database."""

    async def test_resolve_month(self, session, tenant):
        session.add_all(
            [
                LeaveRequest(
                    tenant_id=tenant.org.id,
                    employee_id=tenant.asha.id,
                    leave_type=LOSS_OF_PAY,
                    start_date=date(2023, 2, 13),
                    end_date=date(2023, 2, 14),
                    days=Decimal("2"),
                    status="approved",
                ),
                # Pending and paid leave do not count
                LeaveRequest(
                    tenant_id=tenant.org.id,
                    employee_id=tenant.asha.id,
                    leave_type=LOSS_OF_PAY,
                    start_date=date(2023, 2, 20),
                    end_date=date(2023, 2, 20),
                    days=Decimal("1"),
                    status="pending",
                ),
                LeaveRequest(
                    tenant_id=tenant.org.id,
                    employee_id=tenant.asha.id,
                    leave_type="sick",
                    start_date=date(2023, 2, 21),
                    end_date=date(2023, 2, 21),
                    days=Decimal("1"),
                    status="approved",
                ),
                AttendanceRecord(
                    tenant_id=tenant.org.id,
                    employee_id=tenant.asha.id,
                    attendance_date=date(2023, 2, 14),
                    status="lop",
                    is_lop=True,
                ),
            ]
        )
        await session.flush()

        resolver = LopResolver(session)
        summaries = await resolver.resolve_month(
            tenant.org.id, 2023, 2, [tenant.asha.id, tenant.ravi.id]
        )

        assert summaries[tenant.asha.id].lop_days == Decimal("2.00")
        assert summaries[tenant.asha.id].paid_days == Decimal("26")
        assert summaries[tenant.ravi.id].lop_days == Decimal("0")
        assert summaries[tenant.ravi.id].total_working_days == 28

    async def test_leave_totals(self, session, tenant):
        session.add_all(
            [
                LeaveRequest(
                    tenant_id=tenant.org.id,
                    employee_id=tenant.asha.id,
                    leave_type="casual",
                    start_date=date(2023, 2, 2),
                    end_date=date(2023, 2, 3),
                    days=Decimal("2"),
                    status="approved",
                ),
                LeaveRequest(
                    tenant_id=tenant.org.id,
                    employee_id=tenant.asha.id,
                    leave_type=LOSS_OF_PAY,
                    start_date=date(2023, 2, 9),
                    end_date=date(2023, 2, 9),
                    days=Decimal("1"),
                    status="approved",
                ),
            ]
        )
        await session.flush()

        totals = await LopResolver(session).leave_totals(tenant.org.id, tenant.asha.id, 2023, 2)
        assert totals.paid_leave_days == Decimal("2")
        assert totals.total_leave_days == Decimal("3")
