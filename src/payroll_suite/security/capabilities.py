"""Role to capability mapping and the per-request context."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from payroll_suite.models import PAYROLL_ADMIN


class Role(str, Enum):
    """Tenant roles, as stored in user_roles.role."""

    OWNER = "owner"
    ADMIN = "admin"
    HR = "hr"
    PAYROLL = "payroll"
    FINANCE = "finance"
    DIRECTOR = "director"
    CEO = "ceo"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class Capability(str, Enum):
    """Named permissions checked before an operation executes."""

    PAYROLL_RUN = "payroll_run"
    PAYROLL_READ_TOTALS = "payroll_read_totals"
    LEAVE_REQUEST_OWN = "leave_request_own"
    LEAVE_APPROVE = "leave_approve"
    ATTENDANCE_MANAGE = "attendance_manage"


class AccessTier(str, Enum):
    """Payroll read visibility tier."""

    HR = "hr"
    AGGREGATE = "aggregate"
    SELF = "self"


_ALL = frozenset(Capability)
_EXECUTIVE = frozenset({Capability.PAYROLL_READ_TOTALS, Capability.LEAVE_REQUEST_OWN})

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.OWNER: _ALL,
    Role.ADMIN: _ALL,
    Role.HR: _ALL,
    Role.PAYROLL: _ALL,
    Role.FINANCE: _EXECUTIVE,
    Role.DIRECTOR: _EXECUTIVE,
    Role.CEO: _EXECUTIVE,
    Role.MANAGER: frozenset({Capability.LEAVE_REQUEST_OWN, Capability.LEAVE_APPROVE}),
    Role.EMPLOYEE: frozenset({Capability.LEAVE_REQUEST_OWN}),
}


def parse_roles(values: Iterable[str]) -> frozenset[Role]:
    """Convert stored role strings, ignoring unknown ones."""
    roles = set()
    for value in values:
        try:
            roles.add(Role(value.strip().lower()))
        except ValueError:
            continue
    return frozenset(roles)


def role_for_payroll_role(payroll_role: str | None) -> Role:
    """Fallback tenant role when a user has no user_roles row."""
    return Role.ADMIN if payroll_role == PAYROLL_ADMIN else Role.EMPLOYEE


def capabilities_for(roles: Iterable[Role]) -> frozenset[Capability]:
    caps: set[Capability] = set()
    for role in roles:
        caps |= ROLE_CAPABILITIES.get(role, frozenset())
    return frozenset(caps)


@dataclass(frozen=True)
class RequestContext:
    """Authenticated, tenant-scoped caller. Built once per request."""

    user_id: UUID
    tenant_id: UUID
    email: str
    roles: frozenset[Role] = field(default_factory=frozenset)
    is_superadmin: bool = False
    ip_address: str | None = None

    @property
    def capabilities(self) -> frozenset[Capability]:
        if self.is_superadmin:
            return _ALL
        return capabilities_for(self.roles)

    def has_capability(self, capability: Capability) -> bool:
        return self.is_superadmin or capability in self.capabilities

    @property
    def tier(self) -> AccessTier:
        return resolve_tier(self)


def resolve_tier(ctx: RequestContext) -> AccessTier:
    """HR if the caller can run payroll, aggregate if it can read totals, else self."""
    if ctx.has_capability(Capability.PAYROLL_RUN):
        return AccessTier.HR
    if ctx.has_capability(Capability.PAYROLL_READ_TOTALS):
        return AccessTier.AGGREGATE
    return AccessTier.SELF
