"""Authentication, authorization and redaction."""

from payroll_suite.security.capabilities import (
    AccessTier,
    Capability,
    RequestContext,
    Role,
    resolve_tier,
)
from payroll_suite.security.masking import mask_employee, mask_employee_list
from payroll_suite.security.sso import HrIdentity, HrSsoVerifier, derive_payroll_role

__all__ = [
    "AccessTier",
    "Capability",
    "RequestContext",
    "Role",
    "resolve_tier",
    "mask_employee",
    "mask_employee_list",
    "HrIdentity",
    "HrSsoVerifier",
    "derive_payroll_role",
]
