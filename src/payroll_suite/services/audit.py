"""Append-only audit trail for sensitive reads and payroll actions."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.models import AuditLogEntry
from payroll_suite.security.capabilities import RequestContext

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    PAYROLL_AGGREGATE_VIEWED = "payroll_aggregate_viewed"
    PAYROLL_SALARY_VIEWED = "payroll_salary_viewed"
    PAYROLL_PAYSLIP_VIEWED = "payroll_payslip_viewed"
    PAYROLL_CYCLE_CREATED = "payroll_cycle_created"
    PAYROLL_CYCLE_SUBMITTED = "payroll_cycle_submitted"
    PAYROLL_CYCLE_APPROVED = "payroll_cycle_approved"
    PAYROLL_CYCLE_REJECTED = "payroll_cycle_rejected"
    PAYROLL_CYCLE_PROCESSED = "payroll_cycle_processed"
    PAYROLL_CYCLE_FAILED = "payroll_cycle_failed"
    PAYROLL_REGISTER_EXPORTED = "payroll_register_exported"
    SSO_LOGIN = "sso_login"
    EMPLOYEE_CREATED = "employee_created"
    COMPENSATION_CREATED = "compensation_created"
    PAYROLL_SETTINGS_UPDATED = "payroll_settings_updated"


class AuditLogger:
    """Writes audit rows inside a savepoint of the caller's transaction.

    A failed write rolls back only the savepoint and is logged; the
    surrounding payroll action carries on.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        action: AuditAction | str,
        entity_type: str,
        *,
        tenant_id: UUID,
        actor_id: UUID | None = None,
        entity_id: UUID | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> AuditLogEntry | None:
        action_value = getattr(action, "value", action)
        entry = AuditLogEntry(
            tenant_id=tenant_id,
            actor_id=actor_id,
            action=action_value,
            entity_type=entity_type,
            entity_id=entity_id,
            details=to_jsonable_python(details) if details is not None else None,
            ip_address=ip_address,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(entry)
        except SQLAlchemyError:
            logger.warning(
                "Failed to write audit log %s for %s %s (tenant %s)",
                action_value, entity_type, entity_id, tenant_id,
                exc_info=True,
            )
            return None
        return entry

    async def record_for(
        self,
        ctx: RequestContext,
        action: AuditAction | str,
        entity_type: str,
        entity_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry | None:
        return await self.record(
            action,
            entity_type,
            tenant_id=ctx.tenant_id,
            actor_id=ctx.user_id,
            entity_id=entity_id,
            details=details,
            ip_address=ctx.ip_address,
        )
