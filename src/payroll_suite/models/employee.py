"""Employee directory and compensation models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_suite.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    UUIDPrimaryKeyMixin,
)


class Employee(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """HR-managed employee record, including PII and bank details."""

    __tablename__ = "employees"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_code: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_joining: Mapped[date] = mapped_column(Date, nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    department: Mapped[str | None] = mapped_column(String, nullable=True)
    designation: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    pan_number: Mapped[str | None] = mapped_column(String, nullable=True)
    aadhaar_number: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_ifsc: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "employee_code", name="employees_tenant_code_unique"),
        CheckConstraint(
            "status IN ('active', 'inactive', 'on_leave', 'terminated')",
            name="employees_status_check",
        ),
    )

    compensation_structures: Mapped[list[CompensationStructure]] = relationship(
        back_populates="employee",
        order_by="CompensationStructure.effective_from.desc()",
    )


class CompensationStructure(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Salary components effective from a date until superseded.

    Rows are never mutated. The row in force on a date is the one with the
    latest effective_from on or before that date.
    """

    __tablename__ = "compensation_structures"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    ctc: Mapped[Decimal] = mapped_column(nullable=False)
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    hra: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    special_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    da: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    lta: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    pf_contribution: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    esi_contribution: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_compensation_employee_effective", "employee_id", "effective_from"),
    )

    employee: Mapped[Employee] = relationship(back_populates="compensation_structures")

    @property
    def monthly_gross(self) -> Decimal:
        return self.basic_salary + self.hra + self.special_allowance
