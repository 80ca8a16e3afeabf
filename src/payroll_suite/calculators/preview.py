"""Cycle-wide payroll computation over the tenant's active employees."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators.engine import PayrollCalculator, month_bounds
from payroll_suite.calculators.lop import LopResolver
from payroll_suite.calculators.types import (
    CompensationSnapshot,
    PayrollLine,
    StatutoryRates,
)
from payroll_suite.models import CompensationStructure, Employee, PayrollSettings

logger = logging.getLogger(__name__)


async def effective_compensation(
    session: AsyncSession,
    tenant_id: UUID,
    employee_id: UUID,
    as_of: date,
) -> CompensationStructure | None:
    """Latest compensation row with effective_from on or before ``as_of``."""
    result = await session.execute(
        select(CompensationStructure)
        .where(
            CompensationStructure.tenant_id == tenant_id,
            CompensationStructure.employee_id == employee_id,
            CompensationStructure.effective_from <= as_of,
        )
        .order_by(CompensationStructure.effective_from.desc(), CompensationStructure.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def current_compensation_by_employee(
    session: AsyncSession,
    tenant_id: UUID,
    as_of: date,
) -> dict[UUID, CompensationStructure]:
    """Compensation in force at ``as_of`` for every employee of the tenant."""
    result = await session.execute(
        select(CompensationStructure)
        .where(
            CompensationStructure.tenant_id == tenant_id,
            CompensationStructure.effective_from <= as_of,
        )
        .order_by(
            CompensationStructure.employee_id,
            CompensationStructure.effective_from.desc(),
            CompensationStructure.created_at.desc(),
        )
    )
    current: dict[UUID, CompensationStructure] = {}
    for structure in result.scalars().all():
        current.setdefault(structure.employee_id, structure)
    return current


async def load_statutory_rates(session: AsyncSession, tenant_id: UUID) -> StatutoryRates:
    result = await session.execute(
        select(PayrollSettings).where(PayrollSettings.tenant_id == tenant_id)
    )
    return StatutoryRates.from_settings(result.scalar_one_or_none())


class PayrollPreviewBuilder:
    """Computes payroll lines for every eligible employee in a tenant month.

    Eligible: status ``active``, joined on or before month end, and with a
    compensation row in force at month end. Employees without compensation
    are skipped silently.
    """

    def __init__(self, session: AsyncSession, calculator: PayrollCalculator | None = None):
        self.session = session
        self.calculator = calculator or PayrollCalculator()
        self.lop_resolver = LopResolver(session)

    async def eligible_employees(self, tenant_id: UUID, month_end: date) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.tenant_id == tenant_id,
                Employee.status == "active",
                Employee.date_of_joining <= month_end,
            )
            .order_by(Employee.employee_code)
        )
        return list(result.scalars().all())

    async def build(self, tenant_id: UUID, year: int, month: int) -> list[PayrollLine]:
        _, month_end = month_bounds(year, month)
        employees = await self.eligible_employees(tenant_id, month_end)
        if not employees:
            return []

        rates = await load_statutory_rates(self.session, tenant_id)
        lop_by_employee = await self.lop_resolver.resolve_month(
            tenant_id, year, month, [e.id for e in employees]
        )

        lines: list[PayrollLine] = []
        skipped = 0
        for employee in employees:
            structure = await effective_compensation(
                self.session, tenant_id, employee.id, month_end
            )
            if structure is None:
                skipped += 1
                continue

            line = self.calculator.calculate(
                CompensationSnapshot.from_structure(structure),
                lop_by_employee[employee.id],
                rates,
            )
            line.employee_code = employee.employee_code
            line.employee_name = employee.full_name
            line.department = employee.department
            lines.append(line)

        if skipped:
            logger.debug(
                "Skipped %d employee(s) without compensation for %04d-%02d (tenant %s)",
                skipped, year, month, tenant_id,
            )
        return lines
