"""Business services: cycle lifecycle, tiered reads, self service and exports."""

from payroll_suite.services.audit import AuditAction, AuditLogger
from payroll_suite.services.cycle_service import PayrollCycleService
from payroll_suite.services.employee_service import EmployeeService
from payroll_suite.services.leave_service import LeaveService
from payroll_suite.services.payroll_reader import PayrollReader
from payroll_suite.services.pin_service import PinService
from payroll_suite.services.report_service import ReportService
from payroll_suite.services.settings_service import PayrollSettingsService
from payroll_suite.services.state_machine import (
    CycleStateMachine,
    CycleStatus,
    InvalidTransitionError,
)
from payroll_suite.services.tax_service import TaxService
from payroll_suite.services.user_provisioning import UserProvisioningService

__all__ = [
    "AuditAction",
    "AuditLogger",
    "PayrollCycleService",
    "EmployeeService",
    "LeaveService",
    "PayrollReader",
    "PinService",
    "ReportService",
    "PayrollSettingsService",
    "CycleStateMachine",
    "CycleStatus",
    "InvalidTransitionError",
    "TaxService",
    "UserProvisioningService",
]
