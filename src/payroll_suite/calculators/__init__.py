"""Payroll calculation: proration, statutory deductions and LOP resolution."""

from payroll_suite.calculators.engine import PayrollCalculator, days_in_month, round_to_cents
from payroll_suite.calculators.lop import LopResolver, lop_days_by_employee
from payroll_suite.calculators.preview import PayrollPreviewBuilder
from payroll_suite.calculators.types import (
    CompensationSnapshot,
    LopSummary,
    PayrollLine,
    StatutoryRates,
)

__all__ = [
    "PayrollCalculator",
    "PayrollPreviewBuilder",
    "LopResolver",
    "lop_days_by_employee",
    "days_in_month",
    "round_to_cents",
    "CompensationSnapshot",
    "LopSummary",
    "PayrollLine",
    "StatutoryRates",
]
