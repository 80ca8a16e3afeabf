"""Payroll cycle, item, settings and audit models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_suite.models.base import (
    Base,
    DayCount,
    JSONType,
    TimestampMixin,
    UpdatedAtMixin,
    UUIDPrimaryKeyMixin,
)
from payroll_suite.models.employee import Employee

# ===== Tenant statutory settings =====


class PayrollSettings(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """Per-tenant statutory rates."""

    __tablename__ = "payroll_settings"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    pf_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("12.00"))
    esi_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("3.25"))
    pt_rate: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("200.00"))
    tds_threshold: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("250000.00"))
    basic_salary_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("40.00")
    )
    hra_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("40.00")
    )
    special_allowance_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("20.00")
    )


# ===== Payroll cycle & computed items =====


class PayrollCycle(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """One month's payroll run for a tenant."""

    __tablename__ = "payroll_cycles"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    payday: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )
    approved_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "month", "year", name="payroll_cycles_tenant_period_unique"),
        CheckConstraint("month >= 1 AND month <= 12", name="payroll_cycles_month_check"),
        CheckConstraint("payday IS NULL OR (payday >= 1 AND payday <= 31)", name="payroll_cycles_payday_check"),
        CheckConstraint(
            "status IN ('draft', 'pending_approval', 'approved', 'processing', "
            "'completed', 'failed')",
            name="payroll_cycles_status_check",
        ),
    )

    items: Mapped[list[PayrollItem]] = relationship(
        back_populates="cycle",
        cascade="all, delete-orphan",
    )


class PayrollItem(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """One employee's computed payslip line within a cycle."""

    __tablename__ = "payroll_items"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_cycle_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False)
    deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    net_salary: Mapped[Decimal] = mapped_column(nullable=False)
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False)
    hra: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    special_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    pf_deduction: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    esi_deduction: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    tds_deduction: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    pt_deduction: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    lop_days: Mapped[Decimal] = mapped_column(DayCount, nullable=False, default=Decimal("0"))
    paid_days: Mapped[Decimal] = mapped_column(DayCount, nullable=False, default=Decimal("0"))
    total_working_days: Mapped[Decimal] = mapped_column(DayCount, nullable=False, default=Decimal("0"))

    __table_args__ = (
        UniqueConstraint("payroll_cycle_id", "employee_id", name="payroll_items_cycle_employee_unique"),
    )

    cycle: Mapped[PayrollCycle] = relationship(back_populates="items")
    employee: Mapped[Employee] = relationship()


# ===== Audit =====


class AuditLogEntry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Append-only record of sensitive reads and payroll actions."""

    __tablename__ = "audit_logs"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[str] = mapped_column(String, nullable=False)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID | None] = mapped_column(nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
