"""Type definitions for the payroll computation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

# Tenant-overridable defaults (payroll_settings row)
DEFAULT_PF_RATE = Decimal("12.00")
DEFAULT_ESI_RATE = Decimal("3.25")
DEFAULT_PT_RATE = Decimal("200.00")
DEFAULT_TDS_THRESHOLD = Decimal("250000.00")
DEFAULT_BASIC_PERCENTAGE = Decimal("40.00")
DEFAULT_HRA_PERCENTAGE = Decimal("40.00")
DEFAULT_SPECIAL_ALLOWANCE_PERCENTAGE = Decimal("20.00")

# Statutory constants that are not tenant settings
ESI_EMPLOYEE_RATE = Decimal("0.75")
ESI_WAGE_CEILING = Decimal("21000.00")
TDS_FLAT_RATE = Decimal("5")


@dataclass(frozen=True)
class StatutoryRates:
    """Tenant statutory rates with defaults for tenants without a settings row."""

    pf_rate: Decimal = DEFAULT_PF_RATE
    esi_rate: Decimal = DEFAULT_ESI_RATE
    pt_rate: Decimal = DEFAULT_PT_RATE
    tds_threshold: Decimal = DEFAULT_TDS_THRESHOLD

    @classmethod
    def from_settings(cls, settings: Any | None) -> StatutoryRates:
        """Build from a PayrollSettings row; None yields the defaults."""
        if settings is None:
            return cls()
        return cls(
            pf_rate=Decimal(settings.pf_rate),
            esi_rate=Decimal(settings.esi_rate),
            pt_rate=Decimal(settings.pt_rate),
            tds_threshold=Decimal(settings.tds_threshold),
        )


@dataclass(frozen=True)
class LopSummary:
    """Working/LOP/paid day counts for one employee in one month."""

    total_working_days: int
    lop_days: Decimal

    @property
    def paid_days(self) -> Decimal:
        # LOP can exceed the month (e.g. stray attendance rows); never go negative
        return max(Decimal("0"), Decimal(self.total_working_days) - self.lop_days)


@dataclass(frozen=True)
class CompensationSnapshot:
    """The salary components in force for an employee at month end."""

    employee_id: UUID
    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal

    @property
    def gross(self) -> Decimal:
        return self.basic_salary + self.hra + self.special_allowance

    @classmethod
    def from_structure(cls, structure: Any) -> CompensationSnapshot:
        return cls(
            employee_id=structure.employee_id,
            basic_salary=Decimal(structure.basic_salary or 0),
            hra=Decimal(structure.hra or 0),
            special_allowance=Decimal(structure.special_allowance or 0),
        )


@dataclass
class PayrollLine:
    """A computed payslip line before persistence."""

    employee_id: UUID
    total_working_days: int
    lop_days: Decimal
    paid_days: Decimal

    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal
    gross_salary: Decimal

    pf_deduction: Decimal
    esi_deduction: Decimal
    pt_deduction: Decimal
    tds_deduction: Decimal

    # Display fields filled in by the preview builder
    employee_code: str | None = None
    employee_name: str | None = None
    department: str | None = None

    @property
    def total_deductions(self) -> Decimal:
        return self.pf_deduction + self.esi_deduction + self.pt_deduction + self.tds_deduction

    @property
    def net_salary(self) -> Decimal:
        return self.gross_salary - self.total_deductions

    def to_item_values(self) -> dict[str, Any]:
        """Column values for a PayrollItem row."""
        return {
            "employee_id": self.employee_id,
            "gross_salary": self.gross_salary,
            "deductions": self.total_deductions,
            "net_salary": self.net_salary,
            "basic_salary": self.basic_salary,
            "hra": self.hra,
            "special_allowance": self.special_allowance,
            "pf_deduction": self.pf_deduction,
            "esi_deduction": self.esi_deduction,
            "tds_deduction": self.tds_deduction,
            "pt_deduction": self.pt_deduction,
            "lop_days": self.lop_days,
            "paid_days": self.paid_days,
            "total_working_days": Decimal(self.total_working_days),
        }
