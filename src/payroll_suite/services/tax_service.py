"""Employee tax declarations and documents."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators.engine import round_to_cents
from payroll_suite.exceptions import NotFoundError, ValidationError
from payroll_suite.models import TaxDeclaration, TaxDocument
from payroll_suite.security.capabilities import RequestContext
from payroll_suite.services.payroll_reader import PayrollReader

FINANCIAL_YEAR = re.compile(r"[0-9]{4}-[0-9]{2}([0-9]{2})?")
DECLARATION_SECTIONS = ("section_80c", "section_80d", "section_24b", "other_deductions")


class TaxService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.reader = PayrollReader(session)

    async def own_declarations(self, ctx: RequestContext) -> list[TaxDeclaration]:
        employee = await self.reader.own_employee(ctx)
        if employee is None:
            return []
        result = await self.session.execute(
            select(TaxDeclaration)
            .where(
                TaxDeclaration.tenant_id == ctx.tenant_id,
                TaxDeclaration.employee_id == employee.id,
            )
            .order_by(TaxDeclaration.financial_year.desc())
        )
        return list(result.scalars().all())

    async def upsert_declaration(
        self, ctx: RequestContext, financial_year: str, amounts: dict[str, Any]
    ) -> TaxDeclaration:
        """One declaration per employee per financial year; resubmitting replaces it."""
        if not financial_year or not FINANCIAL_YEAR.fullmatch(financial_year):
            raise ValidationError(
                "financial_year must look like 2025-26", field="financial_year"
            )
        employee = await self.reader.own_employee(ctx)
        if employee is None:
            raise NotFoundError("Employee not found")

        values = {key: round_to_cents(Decimal(amounts.get(key) or 0)) for key in DECLARATION_SECTIONS}
        for key, value in values.items():
            if value < 0:
                raise ValidationError(f"{key} cannot be negative", field=key)

        result = await self.session.execute(
            select(TaxDeclaration).where(
                TaxDeclaration.employee_id == employee.id,
                TaxDeclaration.financial_year == financial_year,
            )
        )
        declaration = result.scalar_one_or_none()
        if declaration is None:
            declaration = TaxDeclaration(
                tenant_id=ctx.tenant_id,
                employee_id=employee.id,
                financial_year=financial_year,
            )
            self.session.add(declaration)

        for key, value in values.items():
            setattr(declaration, key, value)
        declaration.total_deductions = sum(values.values(), Decimal("0"))
        declaration.submitted_at = datetime.now(timezone.utc)
        await self.session.flush()
        return declaration

    async def own_documents(self, ctx: RequestContext) -> list[TaxDocument]:
        employee = await self.reader.own_employee(ctx)
        if employee is None:
            return []
        result = await self.session.execute(
            select(TaxDocument)
            .where(
                TaxDocument.tenant_id == ctx.tenant_id,
                TaxDocument.employee_id == employee.id,
            )
            .order_by(TaxDocument.uploaded_at.desc())
        )
        return list(result.scalars().all())
