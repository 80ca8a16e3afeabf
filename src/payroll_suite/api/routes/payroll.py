"""Payroll cycle, dashboard, report and settings endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import Response

from payroll_suite.api.dependencies import Context, DbSession, PayrollRunner, TotalsReader
from payroll_suite.api.schemas import (
    AggregatesResponse,
    CycleActionResponse,
    CyclePayslip,
    CyclePayslipListResponse,
    ErrorResponse,
    NewCycleData,
    PayrollCycleCreate,
    PayrollCycleEnvelope,
    PayrollCycleListResponse,
    PayrollCycleResponse,
    PayrollLineResponse,
    PayrollSettingsEnvelope,
    PayrollSettingsResponse,
    PayrollSettingsUpdate,
    PreviewResponse,
    ProfileInfo,
    ProfileResponse,
    RejectRequest,
    StatsResponse,
    TenantInfo,
    TenantResponse,
)
from payroll_suite.models import Organization, User
from payroll_suite.services.cycle_service import PayrollCycleService
from payroll_suite.services.payroll_reader import PayrollReader
from payroll_suite.services.report_service import ReportService
from payroll_suite.services.settings_service import PayrollSettingsService

router = APIRouter(tags=["payroll"])

CycleId = Annotated[UUID, Path()]


def _download(export) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


# ============================================================================
# Profile, tenant and dashboard
# ============================================================================


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(db: DbSession, ctx: Context) -> ProfileResponse:
    user = await db.get(User, ctx.user_id)
    if user is None:
        return ProfileResponse(profile=None)
    return ProfileResponse(
        profile=ProfileInfo(
            tenant_id=user.org_id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
        )
    )


@router.get("/tenant", response_model=TenantResponse)
async def get_tenant(db: DbSession, ctx: Context) -> TenantResponse:
    organization = await db.get(Organization, ctx.tenant_id)
    if organization is None:
        return TenantResponse(tenant=None)
    return TenantResponse(tenant=TenantInfo(id=organization.id, company_name=organization.name))


@router.get(
    "/stats",
    response_model=StatsResponse,
    responses={403: {"model": ErrorResponse}},
)
async def get_stats(db: DbSession, ctx: TotalsReader) -> StatsResponse:
    """Headline totals for HR and executive dashboards."""
    stats = await PayrollReader(db).dashboard_stats(ctx)
    return StatsResponse(stats=stats)


# ============================================================================
# Payroll cycles
# ============================================================================


@router.get(
    "/payroll-cycles",
    response_model=PayrollCycleListResponse,
    responses={403: {"model": ErrorResponse}},
)
async def list_payroll_cycles(db: DbSession, ctx: TotalsReader) -> PayrollCycleListResponse:
    """List cycles newest first; past months are completed on the way."""
    rows = await PayrollCycleService(db).list_cycles(ctx)
    await db.commit()
    cycles = []
    for cycle, employee_count in rows:
        response = PayrollCycleResponse.model_validate(cycle)
        response.total_employees = employee_count
        cycles.append(response)
    return PayrollCycleListResponse(cycles=cycles)


@router.post(
    "/payroll-cycles",
    response_model=PayrollCycleEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_payroll_cycle(
    db: DbSession, ctx: PayrollRunner, payload: PayrollCycleCreate
) -> PayrollCycleEnvelope:
    cycle = await PayrollCycleService(db).create_cycle(
        ctx,
        month=payload.month,
        year=payload.year,
        payday=payload.payday,
        employee_count=payload.employee_count,
        total_compensation=payload.total_compensation,
    )
    await db.commit()
    return PayrollCycleEnvelope(payrollCycle=PayrollCycleResponse.model_validate(cycle))


@router.get(
    "/payroll-cycles/{cycle_id}/preview",
    response_model=PreviewResponse,
    responses={404: {"model": ErrorResponse}},
)
async def preview_payroll_cycle(
    db: DbSession, ctx: PayrollRunner, cycle_id: CycleId
) -> PreviewResponse:
    """Computed lines for the cycle's month; nothing is persisted."""
    lines = await PayrollCycleService(db).preview(ctx, cycle_id)
    return PreviewResponse(
        payrollItems=[PayrollLineResponse.model_validate(line) for line in lines]
    )


@router.post(
    "/payroll-cycles/{cycle_id}/submit",
    response_model=CycleActionResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def submit_payroll_cycle(
    db: DbSession, ctx: PayrollRunner, cycle_id: CycleId
) -> CycleActionResponse:
    cycle = await PayrollCycleService(db).submit(ctx, cycle_id)
    await db.commit()
    return CycleActionResponse(
        message="Payroll submitted for approval",
        payrollCycle=PayrollCycleResponse.model_validate(cycle),
    )


@router.post(
    "/payroll-cycles/{cycle_id}/approve",
    response_model=CycleActionResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def approve_payroll_cycle(
    db: DbSession, ctx: PayrollRunner, cycle_id: CycleId
) -> CycleActionResponse:
    cycle = await PayrollCycleService(db).approve(ctx, cycle_id)
    await db.commit()
    return CycleActionResponse(
        message="Payroll approved",
        payrollCycle=PayrollCycleResponse.model_validate(cycle),
    )


@router.post(
    "/payroll-cycles/{cycle_id}/reject",
    response_model=CycleActionResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def reject_payroll_cycle(
    db: DbSession,
    ctx: PayrollRunner,
    cycle_id: CycleId,
    payload: RejectRequest | None = None,
) -> CycleActionResponse:
    reason = payload.reason if payload else None
    cycle = await PayrollCycleService(db).reject(ctx, cycle_id, reason)
    await db.commit()
    return CycleActionResponse(
        message="Payroll rejected",
        payrollCycle=PayrollCycleResponse.model_validate(cycle),
    )


@router.post(
    "/payroll-cycles/{cycle_id}/process",
    response_model=CycleActionResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def process_payroll_cycle(
    db: DbSession, ctx: PayrollRunner, cycle_id: CycleId
) -> CycleActionResponse:
    cycle = await PayrollCycleService(db).process(ctx, cycle_id)
    await db.commit()
    return CycleActionResponse(
        message="Payroll processed",
        payrollCycle=PayrollCycleResponse.model_validate(cycle),
    )


@router.get(
    "/payroll-cycles/{cycle_id}/payslips",
    response_model=CyclePayslipListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_cycle_payslips(
    db: DbSession, ctx: PayrollRunner, cycle_id: CycleId
) -> CyclePayslipListResponse:
    """Every payslip of a cycle with bank details (HR only)."""
    rows = await PayrollCycleService(db).cycle_payslips(ctx, cycle_id)
    payslips = []
    for item, employee, cycle in rows:
        row = item.to_dict()
        row.update(
            {
                key: getattr(employee, key)
                for key in (
                    "employee_code",
                    "full_name",
                    "email",
                    "department",
                    "designation",
                    "pan_number",
                    "bank_account_number",
                    "bank_ifsc",
                    "bank_name",
                )
            }
        )
        row.update(month=cycle.month, year=cycle.year)
        payslips.append(CyclePayslip.model_validate(row))
    return CyclePayslipListResponse(payslips=payslips)


@router.get(
    "/payroll-cycles/{cycle_id}/aggregates",
    response_model=AggregatesResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def cycle_aggregates(
    db: DbSession, ctx: TotalsReader, cycle_id: CycleId
) -> AggregatesResponse:
    """Totals and per-department sums for a cycle. No per-employee figures."""
    return AggregatesResponse(**await PayrollReader(db).cycle_aggregates(ctx, cycle_id))


@router.get("/payroll/new-cycle-data", response_model=NewCycleData)
async def new_cycle_data(db: DbSession, ctx: PayrollRunner) -> NewCycleData:
    return NewCycleData(**await PayrollCycleService(db).new_cycle_data(ctx))


# ============================================================================
# Reports
# ============================================================================


@router.get(
    "/reports/payroll-register",
    responses={
        200: {"content": {"text/csv": {}}},
        404: {"model": ErrorResponse},
    },
)
async def payroll_register(
    db: DbSession,
    ctx: PayrollRunner,
    cycle_id: Annotated[UUID, Query(alias="cycleId")],
) -> Response:
    """Full payroll register for a cycle as a CSV download."""
    export = await ReportService(db).payroll_register(ctx, cycle_id)
    await db.commit()
    return _download(export)


# ============================================================================
# Settings
# ============================================================================


@router.get("/payroll-settings", response_model=PayrollSettingsEnvelope)
async def get_payroll_settings(db: DbSession, ctx: PayrollRunner) -> PayrollSettingsEnvelope:
    settings = await PayrollSettingsService(db).get(ctx)
    return PayrollSettingsEnvelope(
        settings=PayrollSettingsResponse.model_validate(settings) if settings else None
    )


@router.post("/payroll-settings", response_model=PayrollSettingsEnvelope)
async def update_payroll_settings(
    db: DbSession, ctx: PayrollRunner, payload: PayrollSettingsUpdate
) -> PayrollSettingsEnvelope:
    settings = await PayrollSettingsService(db).upsert(ctx, payload.model_dump(exclude_none=True))
    await db.commit()
    return PayrollSettingsEnvelope(
        settings=PayrollSettingsResponse.model_validate(settings) if settings else None
    )
