"""Per-employee payroll line computation."""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from payroll_suite.calculators.types import (
    ESI_EMPLOYEE_RATE,
    ESI_WAGE_CEILING,
    TDS_FLAT_RATE,
    CompensationSnapshot,
    LopSummary,
    PayrollLine,
    StatutoryRates,
)

OUTPUT_PRECISION = Decimal("0.01")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places, half up."""
    return amount.quantize(OUTPUT_PRECISION, rounding=ROUND_HALF_UP)


def days_in_month(year: int, month: int) -> int:
    """Calendar days in the month; payroll counts every calendar day as working."""
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


class PayrollCalculator:
    """Fixed-formula payroll line calculator.

    Pipeline (stable order):
    1) gross = basic + hra + special allowance
    2) prorate gross and components by paid_days / total_working_days
    3) PF on prorated basic at the tenant pf_rate
    4) ESI at 0.75% when prorated gross is within the wage ceiling
    5) PT flat at the tenant pt_rate
    6) TDS at a flat 5% of annualised income above the tenant threshold
    7) net = prorated gross - deductions

    Proration always multiplies before dividing so one rounding order is used
    for every amount.
    """

    @staticmethod
    def prorate_raw(amount: Decimal, lop: LopSummary) -> Decimal:
        """Prorated amount without rounding, for chaining into a rate."""
        if lop.total_working_days <= 0:
            return Decimal("0")
        return amount * lop.paid_days / Decimal(lop.total_working_days)

    @classmethod
    def prorate(cls, amount: Decimal, lop: LopSummary) -> Decimal:
        return round_to_cents(cls.prorate_raw(amount, lop))

    @staticmethod
    def esi(adjusted_gross: Decimal) -> Decimal:
        if adjusted_gross > ESI_WAGE_CEILING:
            return Decimal("0.00")
        return round_to_cents(adjusted_gross * ESI_EMPLOYEE_RATE / HUNDRED)

    @staticmethod
    def tds(adjusted_gross: Decimal, threshold: Decimal) -> Decimal:
        annual = adjusted_gross * MONTHS_PER_YEAR
        if annual <= threshold:
            return Decimal("0.00")
        return round_to_cents((annual - threshold) * TDS_FLAT_RATE / HUNDRED / MONTHS_PER_YEAR)

    def calculate(
        self,
        compensation: CompensationSnapshot,
        lop: LopSummary,
        rates: StatutoryRates | None = None,
    ) -> PayrollLine:
        """Compute one employee's line for the month."""
        rates = rates or StatutoryRates()

        adjusted_gross = self.prorate(compensation.gross, lop)
        basic = self.prorate(compensation.basic_salary, lop)
        hra = self.prorate(compensation.hra, lop)
        special_allowance = self.prorate(compensation.special_allowance, lop)

        # PF on the unrounded prorated basic
        pf = round_to_cents(
            self.prorate_raw(compensation.basic_salary, lop) * rates.pf_rate / HUNDRED
        )

        return PayrollLine(
            employee_id=compensation.employee_id,
            total_working_days=lop.total_working_days,
            lop_days=lop.lop_days,
            paid_days=lop.paid_days,
            basic_salary=basic,
            hra=hra,
            special_allowance=special_allowance,
            gross_salary=adjusted_gross,
            pf_deduction=pf,
            esi_deduction=self.esi(adjusted_gross),
            pt_deduction=round_to_cents(rates.pt_rate),
            tds_deduction=self.tds(adjusted_gross, rates.tds_threshold),
        )
