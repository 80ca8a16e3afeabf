"""Tests for the employee directory, compensation, settings and tax declarations."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_suite.exceptions import ConflictError, NotFoundError, ValidationError
from payroll_suite.services.employee_service import EmployeeService
from payroll_suite.services.payroll_reader import PayrollReader
from payroll_suite.services.settings_service import PayrollSettingsService
from payroll_suite.services.tax_service import TaxService

TODAY = date(2024, 6, 15)


@pytest.fixture
def employees(session) -> EmployeeService:
    return EmployeeService(session, today=TODAY)


class TestDirectory:
    async def test_hr_sees_everything(self, employees, hr_ctx):
        rows = await employees.list_directory(hr_ctx)

        assert [row["full_name"] for row in rows] == ["Asha Rao", "Meera Iyer", "Ravi Kumar"]
        asha = rows[0]
        assert asha["bank_account_number"] == "001234567890"
        assert asha["pan_number"] == "ABCDE1234F"
        assert asha["ctc"] == Decimal("360000.00")
        assert rows[1]["ctc"] is None

    async def test_others_see_masked_rows(self, employees, asha_ctx):
        asha = (await employees.list_directory(asha_ctx))[0]

        assert asha["bank_account_number"] == "...-XX-7890"
        assert asha["bank_ifsc"] == "XXXX"
        assert asha["bank_name"] == "****"
        assert asha["pan_number"] == "XXXXX234F"
        assert asha["aadhaar_number"] == "XXXX XXXX 9012"
        assert asha["ctc"] is None

    async def test_search(self, employees, hr_ctx):
        rows = await employees.list_directory(hr_ctx, q="  SALES ")
        assert rows == []

        rows = await employees.list_directory(hr_ctx, q="emp002")
        assert [row["employee_code"] for row in rows] == ["EMP002"]

    async def test_tenant_scoped(self, employees, hr_ctx):
        assert await employees.list_directory(replace(hr_ctx, tenant_id=uuid4())) == []


class TestCreateEmployee:
    async def test_create(self, employees, hr_ctx):
        employee = await employees.create_employee(
            hr_ctx,
            {
                "employee_code": "EMP004",
                "full_name": "Dev Patel",
                "email": "dev@acme.test",
                "date_of_joining": date(2024, 6, 1),
                "department": "Finance",
            },
        )

        assert employee.status == "active"
        assert employee.tenant_id == hr_ctx.tenant_id
        assert employee.created_by == hr_ctx.user_id

    async def test_duplicate_code_conflicts(self, employees, hr_ctx):
        with pytest.raises(ConflictError):
            await employees.create_employee(
                hr_ctx,
                {
                    "employee_code": "EMP001",
                    "full_name": "Another Asha",
                    "email": "asha2@acme.test",
                    "date_of_joining": date(2024, 6, 1),
                },
            )

    async def test_required_fields(self, employees, hr_ctx):
        with pytest.raises(ValidationError) as exc_info:
            await employees.create_employee(
                hr_ctx, {"employee_code": "EMP005", "full_name": "No Email"}
            )
        assert exc_info.value.field == "email"


class TestCompensationHistory:
    async def test_new_structure_becomes_current(self, employees, session, hr_ctx, tenant):
        await employees.create_compensation(
            hr_ctx,
            tenant.meera.id,
            {
                "effective_from": date(2024, 6, 1),
                "ctc": "240000",
                "basic_salary": "12000",
                "hra": "6000",
                "special_allowance": "2000",
            },
        )

        details = await PayrollReader(session, today=TODAY).compensation(hr_ctx, tenant.meera.id)
        assert details["ctc"] == Decimal("240000.00")
        assert details["gross_salary"] == Decimal("20000.00")

    async def test_ctc_required(self, employees, hr_ctx, tenant):
        with pytest.raises(ValidationError):
            await employees.create_compensation(
                hr_ctx, tenant.meera.id, {"effective_from": date(2024, 6, 1)}
            )

    async def test_unknown_employee(self, employees, hr_ctx):
        with pytest.raises(NotFoundError):
            await employees.create_compensation(
                hr_ctx, uuid4(), {"effective_from": date(2024, 6, 1), "ctc": "100000"}
            )


class TestPayrollSettings:
    async def test_defaults_fill_gaps(self, session, hr_ctx):
        service = PayrollSettingsService(session)
        assert await service.get(hr_ctx) is None

        settings = await service.upsert(hr_ctx, {"pf_rate": "10.00"})
        assert settings.pf_rate == Decimal("10.00")
        assert settings.pt_rate == Decimal("200.00")
        assert settings.tds_threshold == Decimal("250000.00")

    async def test_upsert_replaces(self, session, hr_ctx):
        service = PayrollSettingsService(session)
        first = await service.upsert(hr_ctx, {"pf_rate": "10.00"})
        second = await service.upsert(hr_ctx, {"pt_rate": "150"})

        assert second.id == first.id
        # Omitted values return to defaults
        assert second.pf_rate == Decimal("12.00")
        assert second.pt_rate == Decimal("150")


class TestTaxDeclarations:
    async def test_upsert_sums_sections(self, session, asha_ctx):
        service = TaxService(session)
        declaration = await service.upsert_declaration(
            asha_ctx, "2024-25", {"section_80c": "150000", "section_80d": "25000.005"}
        )

        assert declaration.section_80d == Decimal("25000.01")
        assert declaration.total_deductions == Decimal("175000.01")

    async def test_resubmission_replaces(self, session, asha_ctx):
        service = TaxService(session)
        first = await service.upsert_declaration(asha_ctx, "2024-25", {"section_80c": "100000"})
        second = await service.upsert_declaration(asha_ctx, "2024-25", {"section_80c": "120000"})

        assert second.id == first.id
        assert [d.total_deductions for d in await service.own_declarations(asha_ctx)] == [
            Decimal("120000.00")
        ]

    @pytest.mark.parametrize("financial_year", ["2024", "24-25", "2024/25", "2024-25\n", ""])
    async def test_financial_year_format(self, session, asha_ctx, financial_year):
        with pytest.raises(ValidationError):
            await TaxService(session).upsert_declaration(asha_ctx, financial_year, {})

    async def test_negative_amount(self, session, asha_ctx):
        with pytest.raises(ValidationError) as exc_info:
            await TaxService(session).upsert_declaration(
                asha_ctx, "2024-2025", {"section_24b": "-1"}
            )
        assert exc_info.value.field == "section_24b"

    async def test_no_documents_yet(self, session, asha_ctx, hr_ctx):
        assert await TaxService(session).own_documents(asha_ctx) == []
        assert await TaxService(session).own_declarations(hr_ctx) == []
