"""Tiered payroll reads.

Every payroll read goes through a strategy chosen by the caller's
:class:`AccessTier`:

- HR: individual compensation, bank details and tax ids; any payslip.
- AGGREGATE: counts, sums and averages only. No response produced on this
  path carries a per-employee salary figure.
- SELF: only rows whose employee resolves from the caller's email.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators.engine import round_to_cents
from payroll_suite.calculators.preview import current_compensation_by_employee
from payroll_suite.exceptions import AuthorizationError, NotFoundError
from payroll_suite.models import CompensationStructure, Employee, PayrollCycle, PayrollItem
from payroll_suite.security.capabilities import AccessTier, RequestContext
from payroll_suite.services.audit import AuditAction, AuditLogger
from payroll_suite.services.state_machine import CycleStatus

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _average(total: Decimal, count: int) -> Decimal:
    return round_to_cents(total / count) if count else Decimal("0.00")


def salary_details(employee: Employee, structure: CompensationStructure | None) -> dict[str, Any]:
    """Full compensation view of one employee (HR and owner only)."""
    basic = Decimal(structure.basic_salary) if structure else None
    hra = Decimal(structure.hra) if structure else None
    special = Decimal(structure.special_allowance) if structure else None
    gross = Decimal(structure.monthly_gross) if structure else None
    deductions = (
        Decimal(structure.pf_contribution) + Decimal(structure.esi_contribution)
        if structure
        else None
    )
    return {
        "employee_id": employee.id,
        "employee_code": employee.employee_code,
        "full_name": employee.full_name,
        "email": employee.email,
        "effective_from": structure.effective_from if structure else None,
        "ctc": Decimal(structure.ctc) if structure else None,
        "basic_salary": basic,
        "hra": hra,
        "special_allowance": special,
        "gross_salary": gross,
        "deductions": deductions,
        "net_salary": gross - deductions if structure else None,
        "bank_account_number": employee.bank_account_number,
        "bank_ifsc": employee.bank_ifsc,
        "bank_name": employee.bank_name,
        "pan_number": employee.pan_number,
    }


class ReadStrategy:
    """Tier-specific answers to the payroll read questions."""

    tier: AccessTier

    async def compensation(
        self, reader: PayrollReader, ctx: RequestContext, employee: Employee
    ) -> dict[str, Any]:
        raise NotImplementedError

    async def aggregates(
        self,
        reader: PayrollReader,
        ctx: RequestContext,
        month: int | None,
        year: int | None,
    ) -> dict[str, Any]:
        raise AuthorizationError(message="Aggregate payroll data requires payroll_read_totals")

    async def can_view_item(
        self, reader: PayrollReader, ctx: RequestContext, employee: Employee
    ) -> bool:
        return await reader.is_own_employee(ctx, employee)


class HrReadStrategy(ReadStrategy):
    tier = AccessTier.HR

    async def compensation(self, reader, ctx, employee):
        structure = await reader.current_structure(ctx.tenant_id, employee.id)
        await reader.audit.record_for(
            ctx,
            AuditAction.PAYROLL_SALARY_VIEWED,
            "employee",
            employee.id,
            {"view": "compensation"},
        )
        return salary_details(employee, structure)

    async def aggregates(self, reader, ctx, month, year):
        return await reader.compute_aggregates(ctx, month, year)

    async def can_view_item(self, reader, ctx, employee):
        return True


class AggregateReadStrategy(ReadStrategy):
    tier = AccessTier.AGGREGATE

    async def compensation(self, reader, ctx, employee):
        # Executives see their own row only; everyone else's is totals-only
        return await SELF_STRATEGY.compensation(reader, ctx, employee)

    async def aggregates(self, reader, ctx, month, year):
        return await reader.compute_aggregates(ctx, month, year)


class SelfReadStrategy(ReadStrategy):
    tier = AccessTier.SELF

    async def compensation(self, reader, ctx, employee):
        if not await reader.is_own_employee(ctx, employee):
            raise AuthorizationError()
        structure = await reader.current_structure(ctx.tenant_id, employee.id)
        if structure is None:
            raise NotFoundError("Compensation not found")
        return salary_details(employee, structure)


SELF_STRATEGY = SelfReadStrategy()

READ_STRATEGIES: dict[AccessTier, ReadStrategy] = {
    AccessTier.HR: HrReadStrategy(),
    AccessTier.AGGREGATE: AggregateReadStrategy(),
    AccessTier.SELF: SELF_STRATEGY,
}


class PayrollReader:
    """Entry point for every tenant payroll read."""

    def __init__(self, session: AsyncSession, today: date | None = None):
        self.session = session
        self.today = today or date.today()
        self.audit = AuditLogger(session)

    @staticmethod
    def strategy_for(ctx: RequestContext) -> ReadStrategy:
        return READ_STRATEGIES[ctx.tier]

    # ===== Lookups =====

    async def own_employee(self, ctx: RequestContext) -> Employee | None:
        """The caller's employee row, matched by email within the tenant."""
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.tenant_id == ctx.tenant_id,
                func.lower(Employee.email) == ctx.email.strip().lower(),
            )
            .order_by(Employee.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def is_own_employee(self, ctx: RequestContext, employee: Employee) -> bool:
        return (
            employee.tenant_id == ctx.tenant_id
            and employee.email.strip().lower() == ctx.email.strip().lower()
        )

    async def get_employee(self, tenant_id: UUID, employee_id: UUID) -> Employee:
        result = await self.session.execute(
            select(Employee).where(Employee.id == employee_id, Employee.tenant_id == tenant_id)
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFoundError("Employee not found")
        return employee

    async def current_structure(
        self, tenant_id: UUID, employee_id: UUID
    ) -> CompensationStructure | None:
        result = await self.session.execute(
            select(CompensationStructure)
            .where(
                CompensationStructure.tenant_id == tenant_id,
                CompensationStructure.employee_id == employee_id,
                CompensationStructure.effective_from <= self.today,
            )
            .order_by(
                CompensationStructure.effective_from.desc(),
                CompensationStructure.created_at.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ===== Tiered reads =====

    async def compensation(self, ctx: RequestContext, employee_id: UUID) -> dict[str, Any]:
        """Single-employee compensation. Non-owner, non-HR callers get 403, never a masked row."""
        employee = await self.get_employee(ctx.tenant_id, employee_id)
        return await self.strategy_for(ctx).compensation(self, ctx, employee)

    async def aggregates(
        self,
        ctx: RequestContext,
        month: int | None = None,
        year: int | None = None,
    ) -> dict[str, Any]:
        return await self.strategy_for(ctx).aggregates(self, ctx, month, year)

    async def cycle_aggregates(self, ctx: RequestContext, cycle_id: UUID) -> dict[str, Any]:
        result = await self.session.execute(
            select(PayrollCycle).where(
                PayrollCycle.id == cycle_id, PayrollCycle.tenant_id == ctx.tenant_id
            )
        )
        cycle = result.scalar_one_or_none()
        if cycle is None:
            raise NotFoundError("Payroll cycle not found")
        return await self.aggregates(ctx, cycle.month, cycle.year)

    async def own_payslips(self, ctx: RequestContext) -> list[dict[str, Any]]:
        """The caller's payslips, newest first. Empty when no employee row matches."""
        employee = await self.own_employee(ctx)
        if employee is None:
            return []

        result = await self.session.execute(
            select(PayrollItem, PayrollCycle)
            .join(PayrollCycle, PayrollCycle.id == PayrollItem.payroll_cycle_id)
            .where(
                PayrollItem.employee_id == employee.id,
                PayrollItem.tenant_id == ctx.tenant_id,
            )
            .order_by(PayrollCycle.year.desc(), PayrollCycle.month.desc())
        )
        payslips = []
        for item, cycle in result.all():
            row = item.to_dict()
            row.update(month=cycle.month, year=cycle.year, cycle_status=cycle.status)
            payslips.append(row)

        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_PAYSLIP_VIEWED,
            "employee",
            employee.id,
            {"view": "list"},
        )
        return payslips

    async def payslip_for_download(
        self, ctx: RequestContext, item_id: UUID
    ) -> tuple[PayrollItem, Employee, PayrollCycle]:
        """One payslip item, for its owner or HR. 404 outside the tenant, 403 for others."""
        result = await self.session.execute(
            select(PayrollItem, Employee, PayrollCycle)
            .join(Employee, Employee.id == PayrollItem.employee_id)
            .join(PayrollCycle, PayrollCycle.id == PayrollItem.payroll_cycle_id)
            .where(PayrollItem.id == item_id, PayrollItem.tenant_id == ctx.tenant_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Payslip not found")
        item, employee, cycle = row
        if not await self.strategy_for(ctx).can_view_item(self, ctx, employee):
            raise AuthorizationError(message="You can only download your own payslips")

        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_PAYSLIP_VIEWED,
            "payroll_item",
            item.id,
            {"view": "pdf"},
        )
        return item, employee, cycle

    # ===== Aggregates =====

    async def compute_aggregates(
        self,
        ctx: RequestContext,
        month: int | None = None,
        year: int | None = None,
    ) -> dict[str, Any]:
        """Tenant-wide and per-department totals; never per-employee rows.

        Without a cycle the figures are current CTC of active employees;
        with (month, year) they are the net pay of that cycle's items.
        """
        if month is not None and year is not None:
            amounts = await self._cycle_net_by_employee(ctx.tenant_id, month, year)
        else:
            amounts = await self._current_ctc_by_employee(ctx.tenant_id)

        total = sum((amount for _, amount in amounts.values()), ZERO)
        departments: dict[str, list[Decimal]] = {}
        for department, amount in amounts.values():
            if department is not None:
                departments.setdefault(department, []).append(amount)

        aggregates = {
            "month": month,
            "year": year,
            "overall": {
                "total_employees": len(amounts),
                "total_payroll_cost": round_to_cents(total),
                "average_salary": _average(total, len(amounts)),
            },
            "departments": [
                {
                    "department": name,
                    "employee_count": len(values),
                    "total": round_to_cents(sum(values, ZERO)),
                    "average": _average(sum(values, ZERO), len(values)),
                }
                for name, values in sorted(departments.items())
            ],
        }

        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_AGGREGATE_VIEWED,
            "payroll_cycle" if month is not None else "dashboard",
            None,
            {"view": "aggregates", "month": month, "year": year},
        )
        return aggregates

    async def _active_employees(self, tenant_id: UUID) -> list[Employee]:
        result = await self.session.execute(
            select(Employee).where(Employee.tenant_id == tenant_id, Employee.status == "active")
        )
        return list(result.scalars().all())

    async def _current_ctc_by_employee(
        self, tenant_id: UUID
    ) -> dict[UUID, tuple[str | None, Decimal]]:
        employees = await self._active_employees(tenant_id)
        current = await current_compensation_by_employee(self.session, tenant_id, self.today)
        return {
            e.id: (e.department, Decimal(current[e.id].ctc) if e.id in current else ZERO)
            for e in employees
        }

    async def _cycle_net_by_employee(
        self, tenant_id: UUID, month: int, year: int
    ) -> dict[UUID, tuple[str | None, Decimal]]:
        result = await self.session.execute(
            select(PayrollItem.employee_id, Employee.department, PayrollItem.net_salary)
            .join(PayrollCycle, PayrollCycle.id == PayrollItem.payroll_cycle_id)
            .join(Employee, Employee.id == PayrollItem.employee_id)
            .where(
                PayrollItem.tenant_id == tenant_id,
                PayrollCycle.month == month,
                PayrollCycle.year == year,
            )
        )
        return {
            employee_id: (department, Decimal(net))
            for employee_id, department, net in result.all()
        }

    # ===== Dashboard =====

    async def dashboard_stats(self, ctx: RequestContext) -> dict[str, Any]:
        """Headline numbers for HR and executive dashboards (totals only)."""
        aggregates = await self.aggregates(ctx)
        overall = aggregates["overall"]

        result = await self.session.execute(
            select(PayrollCycle)
            .where(PayrollCycle.tenant_id == ctx.tenant_id)
            .order_by(PayrollCycle.year.desc(), PayrollCycle.month.desc())
        )
        cycles = list(result.scalars().all())

        paid_statuses = (CycleStatus.COMPLETED.value, CycleStatus.APPROVED.value)
        last_paid = next((c for c in cycles if c.status in paid_statuses), None)
        annual = sum(
            (
                Decimal(c.total_amount)
                for c in cycles
                if c.status in paid_statuses and c.year == self.today.year
            ),
            ZERO,
        )
        monthly = (
            Decimal(last_paid.total_amount)
            if last_paid is not None
            else round_to_cents(overall["total_payroll_cost"] / Decimal("12"))
        )

        return {
            "totalEmployees": overall["total_employees"],
            "monthlyPayroll": monthly,
            "pendingApprovals": sum(1 for c in cycles if c.status == CycleStatus.PENDING_APPROVAL),
            "activeCycles": sum(1 for c in cycles if c.status == CycleStatus.DRAFT),
            "totalNetPayable": overall["total_payroll_cost"],
            "completedCycles": sum(1 for c in cycles if c.status == CycleStatus.COMPLETED),
            "totalAnnualPayroll": round_to_cents(annual),
            "averageSalary": overall["average_salary"],
        }
