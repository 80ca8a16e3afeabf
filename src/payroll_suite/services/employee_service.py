"""Employee directory and compensation management."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators.preview import current_compensation_by_employee
from payroll_suite.exceptions import ConflictError, NotFoundError, ValidationError
from payroll_suite.models import CompensationStructure, Employee
from payroll_suite.security.capabilities import AccessTier, RequestContext
from payroll_suite.security.masking import mask_employee_list
from payroll_suite.services.audit import AuditAction, AuditLogger

logger = logging.getLogger(__name__)

COMPENSATION_COMPONENTS = (
    "basic_salary",
    "hra",
    "special_allowance",
    "da",
    "lta",
    "bonus",
    "pf_contribution",
    "esi_contribution",
)


class EmployeeService:
    def __init__(self, session: AsyncSession, today: date | None = None):
        self.session = session
        self.today = today or date.today()
        self.audit = AuditLogger(session)

    async def list_directory(self, ctx: RequestContext, q: str | None = None) -> list[dict[str, Any]]:
        """Tenant directory with current CTC; masked unless the caller is HR."""
        stmt = select(Employee).where(Employee.tenant_id == ctx.tenant_id)
        if q:
            pattern = f"%{q.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Employee.full_name).like(pattern),
                    func.lower(Employee.email).like(pattern),
                    func.lower(Employee.employee_code).like(pattern),
                )
            )
        result = await self.session.execute(stmt.order_by(Employee.full_name.asc()))
        employees = list(result.scalars().all())

        current = await current_compensation_by_employee(self.session, ctx.tenant_id, self.today)
        rows = []
        for employee in employees:
            row = employee.to_dict()
            structure = current.get(employee.id)
            row["ctc"] = Decimal(structure.ctc) if structure is not None else None
            rows.append(row)

        return mask_employee_list(rows, is_hr=ctx.tier is AccessTier.HR)

    async def create_employee(self, ctx: RequestContext, data: dict[str, Any]) -> Employee:
        for required in ("employee_code", "full_name", "email", "date_of_joining"):
            if not data.get(required):
                raise ValidationError(
                    "employee_code, full_name, email, and date_of_joining are required",
                    field=required,
                )

        employee = Employee(
            tenant_id=ctx.tenant_id,
            created_by=ctx.user_id,
            status="active",
            **data,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(employee)
        except IntegrityError:
            raise ConflictError("An employee with this code or email already exists.")

        await self.audit.record_for(
            ctx,
            AuditAction.EMPLOYEE_CREATED,
            "employee",
            employee.id,
            {"employee_code": employee.employee_code},
        )
        logger.info("Created employee %s (%s)", employee.id, employee.employee_code)
        return employee

    async def own_employee(self, ctx: RequestContext) -> Employee | None:
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.tenant_id == ctx.tenant_id,
                func.lower(Employee.email) == ctx.email.strip().lower(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_compensation(
        self, ctx: RequestContext, employee_id: UUID, data: dict[str, Any]
    ) -> CompensationStructure:
        """Add a compensation row; earlier rows stay as history."""
        if not data.get("effective_from") or not data.get("ctc"):
            raise ValidationError("effective_from and ctc are required")

        result = await self.session.execute(
            select(Employee.id).where(
                Employee.id == employee_id, Employee.tenant_id == ctx.tenant_id
            )
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Employee not found")

        structure = CompensationStructure(
            tenant_id=ctx.tenant_id,
            employee_id=employee_id,
            effective_from=data["effective_from"],
            ctc=Decimal(data["ctc"]),
            created_by=ctx.user_id,
            **{key: Decimal(data.get(key) or 0) for key in COMPENSATION_COMPONENTS},
        )
        self.session.add(structure)
        await self.session.flush()

        await self.audit.record_for(
            ctx,
            AuditAction.COMPENSATION_CREATED,
            "employee",
            employee_id,
            {"effective_from": structure.effective_from},
        )
        return structure
