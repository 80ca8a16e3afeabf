"""Tenant payroll settings."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.calculators import types as rates
from payroll_suite.models import PayrollSettings
from payroll_suite.security.capabilities import RequestContext
from payroll_suite.services.audit import AuditAction, AuditLogger

SETTING_DEFAULTS: dict[str, Decimal] = {
    "pf_rate": rates.DEFAULT_PF_RATE,
    "esi_rate": rates.DEFAULT_ESI_RATE,
    "pt_rate": rates.DEFAULT_PT_RATE,
    "tds_threshold": rates.DEFAULT_TDS_THRESHOLD,
    "basic_salary_percentage": rates.DEFAULT_BASIC_PERCENTAGE,
    "hra_percentage": rates.DEFAULT_HRA_PERCENTAGE,
    "special_allowance_percentage": rates.DEFAULT_SPECIAL_ALLOWANCE_PERCENTAGE,
}


class PayrollSettingsService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditLogger(session)

    async def get(self, ctx: RequestContext) -> PayrollSettings | None:
        result = await self.session.execute(
            select(PayrollSettings).where(PayrollSettings.tenant_id == ctx.tenant_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, ctx: RequestContext, values: dict[str, Any]) -> PayrollSettings:
        """Replace the tenant's settings; omitted values fall back to defaults."""
        settings = await self.get(ctx)
        if settings is None:
            settings = PayrollSettings(tenant_id=ctx.tenant_id)
            self.session.add(settings)

        for key, default in SETTING_DEFAULTS.items():
            value = values.get(key)
            setattr(settings, key, Decimal(value) if value is not None else default)
        await self.session.flush()

        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_SETTINGS_UPDATED,
            "payroll_settings",
            settings.id,
            {key: getattr(settings, key) for key in SETTING_DEFAULTS},
        )
        return settings
