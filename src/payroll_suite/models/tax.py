"""Employee tax declaration and document models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from payroll_suite.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    UUIDPrimaryKeyMixin,
)


class TaxDeclaration(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """Investment declaration per employee per financial year (e.g. "2025-26")."""

    __tablename__ = "tax_declarations"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    financial_year: Mapped[str] = mapped_column(String, nullable=False)
    section_80c: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    section_80d: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    section_24b: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    other_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "financial_year", name="tax_declarations_employee_year_unique"),
    )


class TaxDocument(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Issued tax document (Form 16 etc.) stored externally."""

    __tablename__ = "tax_documents"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type: Mapped[str] = mapped_column(String, nullable=False)
    document_url: Mapped[str] = mapped_column(String, nullable=False)
    financial_year: Mapped[str | None] = mapped_column(String, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
