"""Employee directory and compensation endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payroll_suite.api.dependencies import Context, DbSession, PayrollRunner
from payroll_suite.api.schemas import (
    CompensationCreate,
    CompensationEnvelope,
    CompensationResponse,
    EmployeeCreate,
    EmployeeEnvelope,
    EmployeeListResponse,
    EmployeeResponse,
    ErrorResponse,
    SalaryDetailsEnvelope,
)
from payroll_suite.services.employee_service import EmployeeService
from payroll_suite.services.payroll_reader import PayrollReader

router = APIRouter(prefix="/employees", tags=["employees"])

EmployeeId = Annotated[UUID, Path()]


@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    db: DbSession,
    ctx: Context,
    q: Annotated[str | None, Query(max_length=100)] = None,
) -> EmployeeListResponse:
    """Tenant directory. Bank details, tax ids and ctc are masked unless the caller is HR."""
    rows = await EmployeeService(db).list_directory(ctx, q)
    return EmployeeListResponse(employees=rows)


@router.post(
    "",
    response_model=EmployeeEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_employee(
    db: DbSession, ctx: PayrollRunner, payload: EmployeeCreate
) -> EmployeeEnvelope:
    employee = await EmployeeService(db).create_employee(ctx, payload.model_dump())
    await db.commit()
    return EmployeeEnvelope(employee=EmployeeResponse.model_validate(employee))


@router.get("/me", response_model=EmployeeEnvelope)
async def get_own_employee(db: DbSession, ctx: Context) -> EmployeeEnvelope:
    employee = await EmployeeService(db).own_employee(ctx)
    return EmployeeEnvelope(
        employee=EmployeeResponse.model_validate(employee) if employee else None
    )


@router.get(
    "/{employee_id}/compensation",
    response_model=SalaryDetailsEnvelope,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_compensation(
    db: DbSession, ctx: Context, employee_id: EmployeeId
) -> SalaryDetailsEnvelope:
    """Current compensation of one employee: HR sees anyone, others only themselves."""
    details = await PayrollReader(db).compensation(ctx, employee_id)
    await db.commit()
    return SalaryDetailsEnvelope(compensation=details)


@router.post(
    "/{employee_id}/compensation",
    response_model=CompensationEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_compensation(
    db: DbSession,
    ctx: PayrollRunner,
    employee_id: EmployeeId,
    payload: CompensationCreate,
) -> CompensationEnvelope:
    structure = await EmployeeService(db).create_compensation(
        ctx, employee_id, payload.model_dump()
    )
    await db.commit()
    return CompensationEnvelope(compensation=CompensationResponse.model_validate(structure))
