"""Payroll cycle service - lifecycle orchestration for monthly payroll."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators.engine import round_to_cents
from payroll_suite.calculators.preview import (
    PayrollPreviewBuilder,
    current_compensation_by_employee,
)
from payroll_suite.calculators.types import PayrollLine
from payroll_suite.database import apply_tenant_scope
from payroll_suite.exceptions import ConflictError, NotFoundError, ValidationError
from payroll_suite.models import Employee, PayrollCycle, PayrollItem
from payroll_suite.security.capabilities import RequestContext
from payroll_suite.services.audit import AuditAction, AuditLogger
from payroll_suite.services.state_machine import (
    CycleStateMachine,
    CycleStatus,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)


class PayrollCycleService:
    """Service for managing payroll cycle lifecycle.

    Operations:
    - list_cycles: force-complete past months, then list with item counts
    - create_cycle: one draft cycle per tenant month
    - preview: compute lines without persisting
    - submit: persist items (replacing earlier ones), draft → pending_approval
    - approve / reject: approval workflow
    - process: approved → processing → completed (failed on error)

    Every transition writes an audit row in the same transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        today: date | None = None,
        preview_builder: PayrollPreviewBuilder | None = None,
    ):
        self.session = session
        self.today = today or date.today()
        self.preview_builder = preview_builder or PayrollPreviewBuilder(session)
        self.audit = AuditLogger(session)

    async def get_cycle(self, tenant_id: UUID, cycle_id: UUID) -> PayrollCycle:
        """Load a tenant's cycle; other tenants' cycles are indistinguishable from missing."""
        result = await self.session.execute(
            select(PayrollCycle).where(
                PayrollCycle.id == cycle_id,
                PayrollCycle.tenant_id == tenant_id,
            )
        )
        cycle = result.scalar_one_or_none()
        if cycle is None:
            raise NotFoundError("Payroll cycle not found")
        return cycle

    async def auto_complete_past_cycles(self, tenant_id: UUID) -> int:
        """Force every non-terminal cycle of an earlier month to completed."""
        result = await self.session.execute(
            select(PayrollCycle).where(
                PayrollCycle.tenant_id == tenant_id,
                PayrollCycle.status.notin_(
                    [CycleStatus.COMPLETED.value, CycleStatus.FAILED.value]
                ),
            )
        )
        completed = 0
        for cycle in result.scalars().all():
            if CycleStateMachine.should_auto_complete(cycle, self.today):
                logger.info(
                    "Auto-completing past cycle %s (%04d-%02d, was %s)",
                    cycle.id, cycle.year, cycle.month, cycle.status,
                )
                cycle.status = CycleStatus.COMPLETED.value
                completed += 1
        if completed:
            await self.session.flush()
        return completed

    async def list_cycles(self, ctx: RequestContext) -> list[tuple[PayrollCycle, int]]:
        """Cycles newest first, each with its employee count."""
        await self.auto_complete_past_cycles(ctx.tenant_id)

        item_counts = (
            select(
                PayrollItem.payroll_cycle_id.label("cycle_id"),
                func.count(func.distinct(PayrollItem.employee_id)).label("item_count"),
            )
            .where(PayrollItem.tenant_id == ctx.tenant_id)
            .group_by(PayrollItem.payroll_cycle_id)
            .subquery()
        )
        result = await self.session.execute(
            select(PayrollCycle, item_counts.c.item_count)
            .outerjoin(item_counts, item_counts.c.cycle_id == PayrollCycle.id)
            .where(PayrollCycle.tenant_id == ctx.tenant_id)
            .order_by(PayrollCycle.year.desc(), PayrollCycle.month.desc())
        )
        return [
            (cycle, item_count or cycle.total_employees)
            for cycle, item_count in result.all()
        ]

    async def create_cycle(
        self,
        ctx: RequestContext,
        month: int,
        year: int,
        payday: int,
        employee_count: int = 0,
        total_compensation: Decimal | None = None,
    ) -> PayrollCycle:
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12", field="month")
        if not 1 <= payday <= 31:
            raise ValidationError("Payday must be between 1 and 31", field="payday")

        existing = await self.session.execute(
            select(PayrollCycle.id).where(
                PayrollCycle.tenant_id == ctx.tenant_id,
                PayrollCycle.month == month,
                PayrollCycle.year == year,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A payroll cycle for this month and year already exists.")

        cycle = PayrollCycle(
            tenant_id=ctx.tenant_id,
            created_by=ctx.user_id,
            month=month,
            year=year,
            payday=payday,
            status=CycleStatus.DRAFT.value,
            total_employees=employee_count or 0,
            total_amount=round_to_cents(Decimal(total_compensation or 0)),
        )
        try:
            # Unique (tenant, month, year) still guards concurrent creates
            async with self.session.begin_nested():
                self.session.add(cycle)
        except IntegrityError:
            raise ConflictError("A payroll cycle for this month and year already exists.")

        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_CYCLE_CREATED,
            "payroll_cycle",
            cycle.id,
            {"month": month, "year": year, "payday": payday},
        )
        logger.info("Created payroll cycle %s for %04d-%02d", cycle.id, year, month)
        return cycle

    async def preview(self, ctx: RequestContext, cycle_id: UUID) -> list[PayrollLine]:
        cycle = await self.get_cycle(ctx.tenant_id, cycle_id)
        return await self.preview_builder.build(ctx.tenant_id, cycle.year, cycle.month)

    async def _replace_items(self, cycle: PayrollCycle) -> list[PayrollItem]:
        """Recompute and persist the cycle's items, dropping any earlier ones."""
        await self.session.execute(
            delete(PayrollItem).where(PayrollItem.payroll_cycle_id == cycle.id)
        )
        lines = await self.preview_builder.build(cycle.tenant_id, cycle.year, cycle.month)
        items = [
            PayrollItem(
                tenant_id=cycle.tenant_id,
                payroll_cycle_id=cycle.id,
                **line.to_item_values(),
            )
            for line in lines
        ]
        self.session.add_all(items)
        await self.session.flush()
        self._apply_totals(cycle, items)
        return items

    async def _persisted_items(self, cycle: PayrollCycle) -> list[PayrollItem]:
        result = await self.session.execute(
            select(PayrollItem).where(
                PayrollItem.payroll_cycle_id == cycle.id,
                PayrollItem.tenant_id == cycle.tenant_id,
            )
        )
        return list(result.scalars().all())

    @staticmethod
    def _apply_totals(cycle: PayrollCycle, items: list[PayrollItem]) -> None:
        cycle.total_employees = len(items)
        cycle.total_amount = round_to_cents(
            sum((Decimal(item.net_salary) for item in items), Decimal("0"))
        )

    async def _transition(
        self,
        ctx: RequestContext,
        cycle: PayrollCycle,
        to_status: CycleStatus,
        action: AuditAction,
        details: dict | None = None,
    ) -> PayrollCycle:
        from_status = cycle.status
        CycleStateMachine.validate_transition(from_status, to_status)
        cycle.status = to_status.value
        await self.session.flush()

        audit_details = {"month": cycle.month, "year": cycle.year, "from_status": from_status}
        audit_details.update(details or {})
        await self.audit.record_for(ctx, action, "payroll_cycle", cycle.id, audit_details)
        logger.info("Payroll cycle %s: %s -> %s", cycle.id, from_status, to_status.value)
        return cycle

    async def submit(self, ctx: RequestContext, cycle_id: UUID) -> PayrollCycle:
        cycle = await self.get_cycle(ctx.tenant_id, cycle_id)
        CycleStateMachine.validate_transition(cycle.status, CycleStatus.PENDING_APPROVAL)
        items = await self._replace_items(cycle)
        return await self._transition(
            ctx,
            cycle,
            CycleStatus.PENDING_APPROVAL,
            AuditAction.PAYROLL_CYCLE_SUBMITTED,
            {"item_count": len(items)},
        )

    async def approve(self, ctx: RequestContext, cycle_id: UUID) -> PayrollCycle:
        cycle = await self.get_cycle(ctx.tenant_id, cycle_id)
        CycleStateMachine.validate_transition(cycle.status, CycleStatus.APPROVED)
        cycle.approved_by = ctx.user_id
        cycle.approved_at = datetime.now(timezone.utc)
        return await self._transition(
            ctx, cycle, CycleStatus.APPROVED, AuditAction.PAYROLL_CYCLE_APPROVED
        )

    async def reject(
        self, ctx: RequestContext, cycle_id: UUID, reason: str | None = None
    ) -> PayrollCycle:
        cycle = await self.get_cycle(ctx.tenant_id, cycle_id)
        if not CycleStateMachine.is_reject(cycle.status, CycleStatus.DRAFT):
            raise InvalidTransitionError(
                cycle.status,
                CycleStatus.DRAFT,
                "Only cycles pending approval or approved can be rejected",
            )
        cycle.approved_by = None
        cycle.approved_at = None
        return await self._transition(
            ctx,
            cycle,
            CycleStatus.DRAFT,
            AuditAction.PAYROLL_CYCLE_REJECTED,
            {"reason": reason},
        )

    async def process(self, ctx: RequestContext, cycle_id: UUID) -> PayrollCycle:
        """Run an approved cycle to completion.

        Items persisted at submit time are reused; a cycle approved without
        items gets them computed here. Any failure rolls the work back, marks
        the cycle failed (committed on its own) and re-raises.
        """
        cycle = await self.get_cycle(ctx.tenant_id, cycle_id)
        CycleStateMachine.validate_process(cycle.status)

        try:
            await self._transition(
                ctx, cycle, CycleStatus.PROCESSING, AuditAction.PAYROLL_CYCLE_PROCESSED
            )
            items = await self._persisted_items(cycle)
            if items:
                self._apply_totals(cycle, items)
            else:
                items = await self._replace_items(cycle)
            CycleStateMachine.validate_transition(cycle.status, CycleStatus.COMPLETED)
            cycle.status = CycleStatus.COMPLETED.value
            await self.session.flush()
        except Exception as exc:
            logger.exception("Processing payroll cycle %s failed", cycle_id)
            await self._mark_failed(ctx, cycle_id, exc)
            raise

        logger.info(
            "Payroll cycle %s completed: %d item(s), total %s",
            cycle.id, cycle.total_employees, cycle.total_amount,
        )
        return cycle

    async def _mark_failed(self, ctx: RequestContext, cycle_id: UUID, exc: Exception) -> None:
        await self.session.rollback()
        # The rollback also drops the transaction-local tenant binding
        await apply_tenant_scope(self.session, ctx.tenant_id)
        cycle = await self.get_cycle(ctx.tenant_id, cycle_id)
        cycle.status = CycleStatus.FAILED.value
        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_CYCLE_FAILED,
            "payroll_cycle",
            cycle.id,
            {"month": cycle.month, "year": cycle.year, "error": type(exc).__name__},
        )
        await self.session.commit()

    async def cycle_payslips(
        self, ctx: RequestContext, cycle_id: UUID
    ) -> list[tuple[PayrollItem, Employee, PayrollCycle]]:
        """Every item of a cycle with full employee details (HR only)."""
        cycle = await self.get_cycle(ctx.tenant_id, cycle_id)
        result = await self.session.execute(
            select(PayrollItem, Employee)
            .join(Employee, Employee.id == PayrollItem.employee_id)
            .where(
                PayrollItem.payroll_cycle_id == cycle.id,
                PayrollItem.tenant_id == ctx.tenant_id,
            )
            .order_by(Employee.full_name.asc())
        )
        rows = [(item, employee, cycle) for item, employee in result.all()]
        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_SALARY_VIEWED,
            "payroll_cycle",
            cycle.id,
            {"view": "all_payslips", "count": len(rows)},
        )
        return rows

    async def new_cycle_data(self, ctx: RequestContext) -> dict[str, object]:
        """Active headcount and monthly CTC total to pre-fill a new cycle."""
        result = await self.session.execute(
            select(Employee.id).where(
                Employee.tenant_id == ctx.tenant_id,
                Employee.status == "active",
            )
        )
        employee_ids = list(result.scalars().all())

        current = await current_compensation_by_employee(
            self.session, ctx.tenant_id, self.today
        )
        total_ctc = sum(
            (Decimal(current[e].ctc) for e in employee_ids if e in current),
            Decimal("0"),
        )

        return {
            "employeeCount": len(employee_ids),
            "totalCompensation": round_to_cents(total_ctc / Decimal("12")),
        }
