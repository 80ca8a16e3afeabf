"""Organization (tenant), user and role models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_suite.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    UUIDPrimaryKeyMixin,
)

PAYROLL_ADMIN = "payroll_admin"
PAYROLL_EMPLOYEE = "payroll_employee"


class Organization(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Tenant root. Every payroll row hangs off one organization."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String, nullable=False)

    users: Mapped[list[User]] = relationship(back_populates="organization")


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin, UpdatedAtMixin):
    """Local payroll user, provisioned by SSO or signup."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    pin_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    pin_set_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    hr_user_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    org_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
    )
    payroll_role: Mapped[str] = mapped_column(String, nullable=False, default=PAYROLL_EMPLOYEE)

    __table_args__ = (
        CheckConstraint(
            "payroll_role IN ('payroll_admin', 'payroll_employee')",
            name="users_payroll_role_check",
        ),
    )

    organization: Mapped[Organization | None] = relationship(back_populates="users")
    roles: Mapped[list[UserRole]] = relationship(back_populates="user")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class UserRole(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Tenant-scoped role assignment used by the capability layer."""

    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="user_roles_user_tenant_unique"),
        CheckConstraint(
            "role IN ('owner', 'admin', 'hr', 'payroll', 'finance', 'director', "
            "'ceo', 'manager', 'employee')",
            name="user_roles_role_check",
        ),
    )

    user: Mapped[User] = relationship(back_populates="roles")
