"""Employee self service (payslips, leave, attendance, tax) and leave approvals.

Every self-service read resolves the caller's employee row from the session
email; callers without one get empty lists, never another employee's data.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import Response

from payroll_suite.api.dependencies import (
    AttendanceManager,
    Context,
    DbSession,
    LeaveApprover,
    LeaveRequester,
)
from payroll_suite.api.schemas import (
    AttendanceEnvelope,
    AttendanceListResponse,
    AttendanceResponse,
    AttendanceUpsert,
    ErrorResponse,
    LeaveDecision,
    LeaveRequestCreate,
    LeaveRequestEnvelope,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    LeaveSummaryResponse,
    OwnPayslipListResponse,
    TaxDeclarationEnvelope,
    TaxDeclarationListResponse,
    TaxDeclarationResponse,
    TaxDeclarationUpsert,
    TaxDocumentListResponse,
    TaxDocumentResponse,
)
from payroll_suite.services.leave_service import LeaveService
from payroll_suite.services.payroll_reader import PayrollReader
from payroll_suite.services.report_service import ReportService
from payroll_suite.services.tax_service import TaxService

router = APIRouter(tags=["self-service"])

Month = Annotated[int | None, Query(ge=1, le=12)]
Year = Annotated[int | None, Query(ge=2000, le=2100)]


# ============================================================================
# Payslips
# ============================================================================


@router.get("/payslips", response_model=OwnPayslipListResponse)
async def list_own_payslips(db: DbSession, ctx: Context) -> OwnPayslipListResponse:
    """The caller's own payslips, whatever their role."""
    payslips = await PayrollReader(db).own_payslips(ctx)
    return OwnPayslipListResponse(payslips=payslips)


@router.get(
    "/payslips/{payslip_id}/pdf",
    responses={
        200: {"content": {"application/pdf": {}}},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def download_payslip(
    db: DbSession, ctx: Context, payslip_id: Annotated[UUID, Path()]
) -> Response:
    export = await ReportService(db).payslip_pdf(ctx, payslip_id)
    await db.commit()
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


# ============================================================================
# Leave and attendance (own)
# ============================================================================


@router.get("/leave-requests/me", response_model=LeaveRequestListResponse)
async def list_own_leave_requests(
    db: DbSession,
    ctx: LeaveRequester,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    month: Month = None,
    year: Year = None,
) -> LeaveRequestListResponse:
    rows = await LeaveService(db).own_leave_requests(ctx, status_filter, month, year)
    return LeaveRequestListResponse(leaveRequests=rows)


@router.post(
    "/leave-requests/me",
    response_model=LeaveRequestEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_own_leave_request(
    db: DbSession, ctx: LeaveRequester, payload: LeaveRequestCreate
) -> LeaveRequestEnvelope:
    leave = await LeaveService(db).create_leave_request(
        ctx,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )
    await db.commit()
    return LeaveRequestEnvelope(leaveRequest=LeaveRequestResponse.model_validate(leave))


@router.get("/leave-summary/me", response_model=LeaveSummaryResponse)
async def own_leave_summary(
    db: DbSession, ctx: LeaveRequester, month: Month = None, year: Year = None
) -> LeaveSummaryResponse:
    """Working days, LOP days and paid days of a month (default: current)."""
    summary = await LeaveService(db).own_leave_summary(ctx, month, year)
    return LeaveSummaryResponse(summary=summary)


@router.get("/attendance/me", response_model=AttendanceListResponse)
async def list_own_attendance(
    db: DbSession,
    ctx: LeaveRequester,
    month: Month = None,
    year: Year = None,
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
) -> AttendanceListResponse:
    records = await LeaveService(db).own_attendance(ctx, month, year, start_date, end_date)
    return AttendanceListResponse(
        attendanceRecords=[AttendanceResponse.model_validate(r) for r in records]
    )


# ============================================================================
# Tax
# ============================================================================


@router.get("/tax-declarations", response_model=TaxDeclarationListResponse)
async def list_tax_declarations(db: DbSession, ctx: Context) -> TaxDeclarationListResponse:
    declarations = await TaxService(db).own_declarations(ctx)
    return TaxDeclarationListResponse(
        taxDeclarations=[TaxDeclarationResponse.model_validate(d) for d in declarations]
    )


@router.post(
    "/tax-declarations",
    response_model=TaxDeclarationEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def upsert_tax_declaration(
    db: DbSession, ctx: Context, payload: TaxDeclarationUpsert
) -> TaxDeclarationEnvelope:
    declaration = await TaxService(db).upsert_declaration(
        ctx,
        payload.financial_year,
        payload.model_dump(exclude={"financial_year"}),
    )
    await db.commit()
    return TaxDeclarationEnvelope(
        taxDeclaration=TaxDeclarationResponse.model_validate(declaration)
    )


@router.get("/tax-documents", response_model=TaxDocumentListResponse)
async def list_tax_documents(db: DbSession, ctx: Context) -> TaxDocumentListResponse:
    documents = await TaxService(db).own_documents(ctx)
    return TaxDocumentListResponse(
        taxDocuments=[TaxDocumentResponse.model_validate(d) for d in documents]
    )


# ============================================================================
# Approvers
# ============================================================================


@router.get("/leave-requests", response_model=LeaveRequestListResponse)
async def list_tenant_leave_requests(
    db: DbSession,
    ctx: LeaveApprover,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> LeaveRequestListResponse:
    rows = await LeaveService(db).tenant_leave_requests(ctx, status_filter)
    return LeaveRequestListResponse(leaveRequests=rows)


@router.post(
    "/leave-requests/{leave_id}/approve",
    response_model=LeaveRequestEnvelope,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_leave_request(
    db: DbSession, ctx: LeaveApprover, leave_id: Annotated[UUID, Path()]
) -> LeaveRequestEnvelope:
    leave = await LeaveService(db).approve_leave(ctx, leave_id)
    await db.commit()
    return LeaveRequestEnvelope(leaveRequest=LeaveRequestResponse.model_validate(leave))


@router.post(
    "/leave-requests/{leave_id}/reject",
    response_model=LeaveRequestEnvelope,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_leave_request(
    db: DbSession,
    ctx: LeaveApprover,
    leave_id: Annotated[UUID, Path()],
    payload: LeaveDecision | None = None,
) -> LeaveRequestEnvelope:
    leave = await LeaveService(db).reject_leave(ctx, leave_id, payload.reason if payload else None)
    await db.commit()
    return LeaveRequestEnvelope(leaveRequest=LeaveRequestResponse.model_validate(leave))


@router.post(
    "/attendance",
    response_model=AttendanceEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def upsert_attendance(
    db: DbSession, ctx: AttendanceManager, payload: AttendanceUpsert
) -> AttendanceEnvelope:
    """Create or replace one employee's attendance for a date."""
    record = await LeaveService(db).upsert_attendance(
        ctx,
        employee_id=payload.employee_id,
        attendance_date=payload.attendance_date,
        status=payload.status,
        is_lop=payload.is_lop,
        hours_worked=payload.hours_worked,
    )
    await db.commit()
    return AttendanceEnvelope(attendanceRecord=AttendanceResponse.model_validate(record))
