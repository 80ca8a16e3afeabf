"""Tests for tiered payroll reads."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_suite.exceptions import AuthorizationError, NotFoundError
from payroll_suite.security.masking import SALARY_FIELDS
from payroll_suite.services.cycle_service import PayrollCycleService
from payroll_suite.services.payroll_reader import PayrollReader

TODAY = date(2024, 6, 15)

PER_EMPLOYEE_KEYS = set(SALARY_FIELDS) | {
    "employee_id",
    "employee_code",
    "full_name",
    "bank_account_number",
    "pan_number",
}


@pytest.fixture
def reader(session) -> PayrollReader:
    return PayrollReader(session, today=TODAY)


@pytest.fixture
async def submitted_cycle(session, hr_ctx, tenant):
    service = PayrollCycleService(session, today=TODAY)
    cycle = await service.create_cycle(hr_ctx, month=6, year=2024, payday=28)
    return await service.submit(hr_ctx, cycle.id)


def all_keys(value) -> set[str]:
    """Every dict key anywhere in a nested structure."""
    if isinstance(value, dict):
        keys = set(value)
        for nested in value.values():
            keys |= all_keys(nested)
        return keys
    if isinstance(value, list):
        keys = set()
        for nested in value:
            keys |= all_keys(nested)
        return keys
    return set()


class TestCompensation:
    async def test_hr_reads_anyone(self, reader, hr_ctx, tenant):
        details = await reader.compensation(hr_ctx, tenant.asha.id)

        assert details["ctc"] == Decimal("360000.00")
        assert details["gross_salary"] == Decimal("30000.00")
        assert details["bank_account_number"] == "001234567890"

    async def test_employee_reads_own(self, reader, asha_ctx, tenant):
        details = await reader.compensation(asha_ctx, tenant.asha.id)
        assert details["basic_salary"] == Decimal("20000.00")

    async def test_employee_cannot_read_colleague(self, reader, asha_ctx, tenant):
        with pytest.raises(AuthorizationError):
            await reader.compensation(asha_ctx, tenant.ravi.id)

    async def test_executive_cannot_read_individuals(self, reader, finance_ctx, tenant):
        with pytest.raises(AuthorizationError):
            await reader.compensation(finance_ctx, tenant.asha.id)

    async def test_own_row_without_compensation(self, reader, tenant, asha_ctx):
        meera_ctx = replace(asha_ctx, email="meera@acme.test")
        with pytest.raises(NotFoundError):
            await reader.compensation(meera_ctx, tenant.meera.id)

    async def test_other_tenant_employee_not_found(self, reader, hr_ctx, tenant):
        with pytest.raises(NotFoundError):
            await reader.compensation(replace(hr_ctx, tenant_id=uuid4()), tenant.asha.id)


class TestAggregates:
    async def test_current_ctc_totals(self, reader, finance_ctx, tenant):
        aggregates = await reader.aggregates(finance_ctx)

        assert aggregates["overall"] == {
            "total_employees": 3,
            "total_payroll_cost": Decimal("576000.00"),
            "average_salary": Decimal("192000.00"),
        }
        departments = {d["department"]: d for d in aggregates["departments"]}
        assert departments["Sales"]["employee_count"] == 2
        assert departments["Sales"]["total"] == Decimal("216000.00")
        assert departments["Sales"]["average"] == Decimal("108000.00")

    async def test_no_per_employee_figures(self, reader, finance_ctx, submitted_cycle):
        aggregates = await reader.cycle_aggregates(finance_ctx, submitted_cycle.id)

        assert not all_keys(aggregates) & PER_EMPLOYEE_KEYS
        assert aggregates["overall"]["total_payroll_cost"] == Decimal("43406.67")
        assert aggregates["month"] == 6

    async def test_employees_cannot_read_totals(self, reader, asha_ctx, tenant):
        with pytest.raises(AuthorizationError):
            await reader.aggregates(asha_ctx)

    async def test_empty_tenant(self, reader, hr_ctx, tenant):
        aggregates = await reader.aggregates(replace(hr_ctx, tenant_id=uuid4()))

        assert aggregates["overall"]["total_employees"] == 0
        assert aggregates["overall"]["average_salary"] == Decimal("0.00")
        assert aggregates["departments"] == []

    async def test_dashboard_stats_before_any_cycle(self, reader, finance_ctx, tenant):
        stats = await reader.dashboard_stats(finance_ctx)

        assert stats["totalEmployees"] == 3
        assert stats["monthlyPayroll"] == Decimal("48000.00")
        assert stats["pendingApprovals"] == 0
        assert stats["totalNetPayable"] == Decimal("576000.00")
        assert not all_keys(stats) & PER_EMPLOYEE_KEYS

    async def test_dashboard_stats_after_approval(self, reader, session, hr_ctx, submitted_cycle):
        await PayrollCycleService(session, today=TODAY).approve(hr_ctx, submitted_cycle.id)
        stats = await reader.dashboard_stats(hr_ctx)

        assert stats["monthlyPayroll"] == Decimal("43406.67")
        assert stats["totalAnnualPayroll"] == Decimal("43406.67")


class TestPayslips:
    async def test_own_payslips_only(self, reader, asha_ctx, tenant, submitted_cycle):
        payslips = await reader.own_payslips(asha_ctx)

        assert len(payslips) == 1
        assert payslips[0]["employee_id"] == tenant.asha.id
        assert payslips[0]["net_salary"] == Decimal("26941.67")
        assert payslips[0]["month"] == 6
        assert payslips[0]["cycle_status"] == "pending_approval"

    async def test_caller_without_employee_row(self, reader, hr_ctx, submitted_cycle):
        assert await reader.own_payslips(hr_ctx) == []

    async def test_email_match_is_case_insensitive(self, reader, asha_ctx, submitted_cycle):
        payslips = await reader.own_payslips(replace(asha_ctx, email="ASHA@acme.test"))
        assert len(payslips) == 1

    async def test_download_own(self, reader, asha_ctx, session, tenant, submitted_cycle):
        [own] = await reader.own_payslips(asha_ctx)
        item, employee, cycle = await reader.payslip_for_download(asha_ctx, own["id"])

        assert employee.id == tenant.asha.id
        assert cycle.id == submitted_cycle.id

    async def test_download_colleague_forbidden(self, reader, asha_ctx, ravi_ctx, submitted_cycle):
        [ravis] = await reader.own_payslips(ravi_ctx)
        with pytest.raises(AuthorizationError):
            await reader.payslip_for_download(asha_ctx, ravis["id"])

    async def test_hr_downloads_anyone(self, reader, hr_ctx, ravi_ctx, submitted_cycle):
        [ravis] = await reader.own_payslips(ravi_ctx)
        item, _, _ = await reader.payslip_for_download(hr_ctx, ravis["id"])
        assert item.id == ravis["id"]

    async def test_download_other_tenant_not_found(self, reader, hr_ctx, ravi_ctx, submitted_cycle):
        [ravis] = await reader.own_payslips(ravi_ctx)
        with pytest.raises(NotFoundError):
            await reader.payslip_for_download(replace(hr_ctx, tenant_id=uuid4()), ravis["id"])
