"""Payroll register (CSV) and payslip (PDF) exports."""

from __future__ import annotations

import calendar
import csv
import io
import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.exceptions import NotFoundError
from payroll_suite.models import Employee, Organization, PayrollCycle, PayrollItem
from payroll_suite.security.capabilities import RequestContext
from payroll_suite.services.audit import AuditAction, AuditLogger
from payroll_suite.services.payroll_reader import PayrollReader

logger = logging.getLogger(__name__)

REGISTER_HEADERS = [
    "Employee Code",
    "Employee Name",
    "PAN Number",
    "Bank Account Number",
    "Basic Salary",
    "HRA",
    "Special Allowance",
    "Gross Salary",
    "PF Deduction",
    "ESI Deduction",
    "TDS Deduction",
    "PT Deduction",
    "Total Deductions",
    "Net Salary",
    "LOP Days",
    "Paid Days",
    "Total Working Days",
]


@dataclass(frozen=True)
class ExportFile:
    filename: str
    media_type: str
    content: bytes


def _amount(value: Decimal | None) -> str:
    return f"{Decimal(value or 0):.2f}"


def _days(value: Decimal | None) -> str:
    return f"{Decimal(value or 0).normalize():f}"


class ReportService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.reader = PayrollReader(session)
        self.audit = AuditLogger(session)

    async def payroll_register(self, ctx: RequestContext, cycle_id: UUID) -> ExportFile:
        """Full-detail register of a cycle's items, one row per employee (HR only)."""
        result = await self.session.execute(
            select(PayrollCycle).where(
                PayrollCycle.id == cycle_id, PayrollCycle.tenant_id == ctx.tenant_id
            )
        )
        cycle = result.scalar_one_or_none()
        if cycle is None:
            raise NotFoundError("Payroll cycle not found")

        result = await self.session.execute(
            select(PayrollItem, Employee)
            .join(Employee, Employee.id == PayrollItem.employee_id)
            .where(
                PayrollItem.payroll_cycle_id == cycle.id,
                PayrollItem.tenant_id == ctx.tenant_id,
            )
            .order_by(Employee.employee_code.asc())
        )
        rows = result.all()
        if not rows:
            raise NotFoundError("No payroll data found for this cycle")

        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(REGISTER_HEADERS)
        for item, employee in rows:
            writer.writerow(
                [
                    employee.employee_code or "",
                    employee.full_name or "",
                    employee.pan_number or "",
                    employee.bank_account_number or "",
                    _amount(item.basic_salary),
                    _amount(item.hra),
                    _amount(item.special_allowance),
                    _amount(item.gross_salary),
                    _amount(item.pf_deduction),
                    _amount(item.esi_deduction),
                    _amount(item.tds_deduction),
                    _amount(item.pt_deduction),
                    _amount(item.deductions),
                    _amount(item.net_salary),
                    _days(item.lop_days),
                    _days(item.paid_days),
                    _days(item.total_working_days),
                ]
            )

        await self.audit.record_for(
            ctx,
            AuditAction.PAYROLL_REGISTER_EXPORTED,
            "payroll_cycle",
            cycle.id,
            {"format": "csv", "count": len(rows)},
        )
        month_name = calendar.month_name[cycle.month]
        return ExportFile(
            filename=f"payroll-register-{month_name}-{cycle.year}.csv",
            media_type="text/csv; charset=utf-8",
            content=output.getvalue().encode("utf-8"),
        )

    async def payslip_pdf(self, ctx: RequestContext, item_id: UUID) -> ExportFile:
        item, employee, cycle = await self.reader.payslip_for_download(ctx, item_id)
        organization = await self.session.get(Organization, ctx.tenant_id)
        month_name = calendar.month_name[cycle.month]

        content = render_payslip(
            item,
            employee,
            period=f"{month_name} {cycle.year}",
            company=organization.name if organization else None,
        )
        return ExportFile(
            filename=f"payslip-{employee.employee_code}-{month_name}-{cycle.year}.pdf",
            media_type="application/pdf",
            content=content,
        )


def render_payslip(
    item: PayrollItem, employee: Employee, period: str, company: str | None = None
) -> bytes:
    """Render a one-page A4 payslip."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=40, rightMargin=40, topMargin=40)
    styles = getSampleStyleSheet()

    elements = []
    if company:
        elements.append(Paragraph(company, styles["Heading2"]))
    elements.append(Paragraph("PAYSLIP", styles["Title"]))
    elements.append(Spacer(1, 12))

    details = [
        ["Employee", employee.full_name, "Code", employee.employee_code],
        ["Department", employee.department or "-", "Designation", employee.designation or "-"],
        ["Period", period, "PAN", employee.pan_number or "-"],
        [
            "Working days",
            _days(item.total_working_days),
            "Paid days",
            _days(item.paid_days),
        ],
    ]
    details_table = Table(details, hAlign="LEFT")
    details_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    elements.append(details_table)
    elements.append(Spacer(1, 16))

    lines = [
        ["Earnings", "Amount (INR)", "Deductions", "Amount (INR)"],
        ["Basic Salary", _amount(item.basic_salary), "Provident Fund", _amount(item.pf_deduction)],
        ["HRA", _amount(item.hra), "ESI", _amount(item.esi_deduction)],
        ["Special Allowance", _amount(item.special_allowance), "Professional Tax", _amount(item.pt_deduction)],
        ["", "", "TDS", _amount(item.tds_deduction)],
        ["Gross Salary", _amount(item.gross_salary), "Total Deductions", _amount(item.deductions)],
    ]
    lines_table = Table(lines, hAlign="LEFT")
    lines_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("ALIGN", (3, 0), (3, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
            ]
        )
    )
    elements.append(lines_table)
    elements.append(Spacer(1, 16))
    elements.append(Paragraph(f"Net Salary: INR {_amount(item.net_salary)}", styles["Heading3"]))

    doc.build(elements)
    return buffer.getvalue()
