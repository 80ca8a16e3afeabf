"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CamelModel(BaseModel):
    """Request body accepting camelCase keys as well as field names."""

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# Auth schemas
# ============================================================================


class PinCredentials(BaseModel):
    """Schema for PIN login and setup.

    Both fields are optional here so that a missing value reaches the
    service and gets its 400 response rather than a generic one.
    """

    email: str | None = None
    pin: str | None = None


class SessionUser(BaseModel):
    id: UUID
    email: str
    payrollRole: str | None = None


class PinSessionResponse(BaseModel):
    token: str
    user: SessionUser
    success: bool = True
    message: str | None = None


class SsoResponse(BaseModel):
    success: bool = True
    requiresPinSetup: bool
    token: str
    user: SessionUser
    redirect: str


class SsoClaims(BaseModel):
    hrUserId: str
    orgId: UUID
    email: str
    name: str
    roles: list[str]
    payrollRole: str


class SsoVerifyResponse(BaseModel):
    success: bool = True
    message: str = "SSO token is valid"
    user: SsoClaims


class PinStatusResponse(BaseModel):
    hasPin: bool
    userId: UUID


class SessionInfo(BaseModel):
    userId: UUID


class SessionResponse(BaseModel):
    session: SessionInfo | None = None


# ============================================================================
# Payroll cycle schemas
# ============================================================================


class PayrollCycleCreate(CamelModel):
    """Schema for creating a payroll cycle in draft status."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    payday: int = Field(ge=1, le=31)
    employee_count: int = Field(default=0, ge=0, alias="employeeCount")
    total_compensation: Decimal | None = Field(default=None, ge=0, alias="totalCompensation")


class PayrollCycleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    month: int
    year: int
    payday: int | None = None
    status: str
    total_employees: int
    total_amount: Decimal
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    created_at: datetime


class PayrollCycleEnvelope(BaseModel):
    payrollCycle: PayrollCycleResponse


class PayrollCycleListResponse(BaseModel):
    cycles: list[PayrollCycleResponse]


class CycleActionResponse(BaseModel):
    success: bool = True
    message: str
    payrollCycle: PayrollCycleResponse


class RejectRequest(BaseModel):
    reason: str | None = None


class PayrollLineResponse(BaseModel):
    """Computed payroll line for a preview (not persisted)."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_code: str | None = None
    employee_name: str | None = None
    department: str | None = None
    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal
    gross_salary: Decimal
    pf_deduction: Decimal
    esi_deduction: Decimal
    tds_deduction: Decimal
    pt_deduction: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    lop_days: Decimal
    paid_days: Decimal
    total_working_days: int


class PreviewResponse(BaseModel):
    payrollItems: list[PayrollLineResponse]


class PayrollItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payroll_cycle_id: UUID
    employee_id: UUID
    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal
    gross_salary: Decimal
    pf_deduction: Decimal
    esi_deduction: Decimal
    tds_deduction: Decimal
    pt_deduction: Decimal
    deductions: Decimal
    net_salary: Decimal
    lop_days: Decimal
    paid_days: Decimal
    total_working_days: Decimal


class OwnPayslip(PayrollItemResponse):
    month: int
    year: int
    cycle_status: str


class OwnPayslipListResponse(BaseModel):
    payslips: list[OwnPayslip]


class CyclePayslip(PayrollItemResponse):
    """HR bulk view: item plus identifying and bank details."""

    employee_code: str
    full_name: str
    email: str
    department: str | None = None
    designation: str | None = None
    pan_number: str | None = None
    bank_account_number: str | None = None
    bank_ifsc: str | None = None
    bank_name: str | None = None
    month: int
    year: int


class CyclePayslipListResponse(BaseModel):
    payslips: list[CyclePayslip]


class NewCycleData(BaseModel):
    employeeCount: int
    totalCompensation: Decimal


# ============================================================================
# Aggregate schemas (totals only, no per-employee fields)
# ============================================================================


class OverallTotals(BaseModel):
    total_employees: int
    total_payroll_cost: Decimal
    average_salary: Decimal


class DepartmentTotals(BaseModel):
    department: str
    employee_count: int
    total: Decimal
    average: Decimal


class AggregatesResponse(BaseModel):
    month: int | None = None
    year: int | None = None
    overall: OverallTotals
    departments: list[DepartmentTotals]


class DashboardStats(BaseModel):
    totalEmployees: int
    monthlyPayroll: Decimal
    pendingApprovals: int
    activeCycles: int
    totalNetPayable: Decimal
    completedCycles: int
    totalAnnualPayroll: Decimal
    averageSalary: Decimal


class StatsResponse(BaseModel):
    stats: DashboardStats


class ProfileInfo(BaseModel):
    tenant_id: UUID | None = None
    email: str
    first_name: str | None = None
    last_name: str | None = None


class ProfileResponse(BaseModel):
    profile: ProfileInfo | None = None


class TenantInfo(BaseModel):
    id: UUID
    company_name: str


class TenantResponse(BaseModel):
    tenant: TenantInfo | None = None


# ============================================================================
# Settings schemas
# ============================================================================


class PayrollSettingsUpdate(BaseModel):
    pf_rate: Decimal | None = Field(default=None, ge=0, le=100)
    esi_rate: Decimal | None = Field(default=None, ge=0, le=100)
    pt_rate: Decimal | None = Field(default=None, ge=0)
    tds_threshold: Decimal | None = Field(default=None, ge=0)
    basic_salary_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    hra_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    special_allowance_percentage: Decimal | None = Field(default=None, ge=0, le=100)


class PayrollSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    pf_rate: Decimal
    esi_rate: Decimal
    pt_rate: Decimal
    tds_threshold: Decimal
    basic_salary_percentage: Decimal
    hra_percentage: Decimal
    special_allowance_percentage: Decimal


class PayrollSettingsEnvelope(BaseModel):
    settings: PayrollSettingsResponse | None = None


# ============================================================================
# Employee schemas
# ============================================================================


class EmployeeCreate(BaseModel):
    employee_code: str = Field(min_length=1)
    full_name: str = Field(min_length=1)
    email: EmailStr
    date_of_joining: date
    phone: str | None = None
    date_of_birth: date | None = None
    department: str | None = None
    designation: str | None = None
    pan_number: str | None = None
    aadhaar_number: str | None = None
    bank_account_number: str | None = None
    bank_ifsc: str | None = None
    bank_name: str | None = None


class EmployeeResponse(BaseModel):
    """Employee row. Sensitive fields arrive masked for non-HR callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    employee_code: str
    full_name: str
    email: str
    phone: str | None = None
    date_of_joining: date
    date_of_birth: date | None = None
    department: str | None = None
    designation: str | None = None
    status: str
    pan_number: str | None = None
    aadhaar_number: str | None = None
    bank_account_number: str | None = None
    bank_ifsc: str | None = None
    bank_name: str | None = None


class DirectoryEntry(EmployeeResponse):
    ctc: Decimal | None = None


class EmployeeListResponse(BaseModel):
    employees: list[DirectoryEntry]


class EmployeeEnvelope(BaseModel):
    employee: EmployeeResponse | None = None


class CompensationCreate(BaseModel):
    effective_from: date | None = None
    ctc: Decimal | None = Field(default=None, gt=0)
    basic_salary: Decimal | None = Field(default=None, ge=0)
    hra: Decimal | None = Field(default=None, ge=0)
    special_allowance: Decimal | None = Field(default=None, ge=0)
    da: Decimal | None = Field(default=None, ge=0)
    lta: Decimal | None = Field(default=None, ge=0)
    bonus: Decimal | None = Field(default=None, ge=0)
    pf_contribution: Decimal | None = Field(default=None, ge=0)
    esi_contribution: Decimal | None = Field(default=None, ge=0)


class CompensationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    effective_from: date
    ctc: Decimal
    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal
    da: Decimal
    lta: Decimal
    bonus: Decimal
    pf_contribution: Decimal
    esi_contribution: Decimal


class CompensationEnvelope(BaseModel):
    compensation: CompensationResponse


class SalaryDetails(BaseModel):
    employee_id: UUID
    employee_code: str
    full_name: str
    email: str
    effective_from: date | None = None
    ctc: Decimal | None = None
    basic_salary: Decimal | None = None
    hra: Decimal | None = None
    special_allowance: Decimal | None = None
    gross_salary: Decimal | None = None
    deductions: Decimal | None = None
    net_salary: Decimal | None = None
    bank_account_number: str | None = None
    bank_ifsc: str | None = None
    bank_name: str | None = None
    pan_number: str | None = None


class SalaryDetailsEnvelope(BaseModel):
    compensation: SalaryDetails


# ============================================================================
# Leave and attendance schemas
# ============================================================================


class LeaveRequestCreate(CamelModel):
    leave_type: str = Field(alias="leaveType")
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    reason: str | None = None


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    leave_type: str
    start_date: date
    end_date: date
    days: Decimal
    status: str
    reason: str | None = None
    approved_by: UUID | None = None
    rejected_by: UUID | None = None
    rejection_reason: str | None = None
    created_at: datetime
    employee_name: str | None = None
    employee_code: str | None = None


class LeaveRequestListResponse(BaseModel):
    leaveRequests: list[LeaveRequestResponse]


class LeaveRequestEnvelope(BaseModel):
    leaveRequest: LeaveRequestResponse


class LeaveDecision(BaseModel):
    reason: str | None = None


class LeaveSummary(BaseModel):
    month: int
    year: int
    totalWorkingDays: int
    lopDays: Decimal
    paidDays: Decimal
    paidLeaveDays: Decimal
    totalLeaveDays: Decimal


class LeaveSummaryResponse(BaseModel):
    summary: LeaveSummary


class AttendanceUpsert(CamelModel):
    employee_id: UUID = Field(alias="employeeId")
    attendance_date: date = Field(alias="date")
    status: str
    is_lop: bool | None = Field(default=None, alias="isLop")
    hours_worked: Decimal | None = Field(default=None, ge=0, alias="hoursWorked")


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    attendance_date: date
    status: str
    is_lop: bool
    hours_worked: Decimal | None = None


class AttendanceListResponse(BaseModel):
    attendanceRecords: list[AttendanceResponse]


class AttendanceEnvelope(BaseModel):
    attendanceRecord: AttendanceResponse


# ============================================================================
# Tax schemas
# ============================================================================


class TaxDeclarationUpsert(BaseModel):
    financial_year: str
    section_80c: Decimal | None = None
    section_80d: Decimal | None = None
    section_24b: Decimal | None = None
    other_deductions: Decimal | None = None


class TaxDeclarationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    financial_year: str
    section_80c: Decimal
    section_80d: Decimal
    section_24b: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    submitted_at: datetime | None = None


class TaxDeclarationListResponse(BaseModel):
    taxDeclarations: list[TaxDeclarationResponse]


class TaxDeclarationEnvelope(BaseModel):
    taxDeclaration: TaxDeclarationResponse


class TaxDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    document_type: str
    document_url: str
    financial_year: str | None = None
    uploaded_at: datetime


class TaxDocumentListResponse(BaseModel):
    taxDocuments: list[TaxDocumentResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    error: str
    message: str | None = None
    reason: str | None = None
    field: str | None = None
    details: list[dict[str, Any]] | None = None
