"""ORM models for the payroll suite."""

from payroll_suite.models.attendance import (
    LOSS_OF_PAY,
    AttendanceRecord,
    LeaveRequest,
)
from payroll_suite.models.base import Base
from payroll_suite.models.employee import CompensationStructure, Employee
from payroll_suite.models.organization import (
    PAYROLL_ADMIN,
    PAYROLL_EMPLOYEE,
    Organization,
    User,
    UserRole,
)
from payroll_suite.models.payroll import (
    AuditLogEntry,
    PayrollCycle,
    PayrollItem,
    PayrollSettings,
)
from payroll_suite.models.tax import TaxDeclaration, TaxDocument

__all__ = [
    "Base",
    "Organization",
    "User",
    "UserRole",
    "PAYROLL_ADMIN",
    "PAYROLL_EMPLOYEE",
    "Employee",
    "CompensationStructure",
    "LeaveRequest",
    "AttendanceRecord",
    "LOSS_OF_PAY",
    "PayrollSettings",
    "PayrollCycle",
    "PayrollItem",
    "AuditLogEntry",
    "TaxDeclaration",
    "TaxDocument",
]
