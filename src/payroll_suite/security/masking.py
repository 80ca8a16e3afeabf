"""PII and salary redaction for non-HR list reads.

Every masker maps its own output to itself, so masking an already-masked
record is a no-op. Records are never mutated; a masked copy is returned.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

SALARY_FIELDS = ("ctc", "basic_salary", "gross_salary", "net_salary")

_NON_DIGITS = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s")


def mask_bank_account(value: Any) -> str | None:
    if not value or not isinstance(value, str):
        return None
    digits = _NON_DIGITS.sub("", value)
    if len(digits) < 4:
        return "****"
    return f"...-XX-{digits[-4:]}"


def mask_pan(value: Any) -> str | None:
    if not value or not isinstance(value, str):
        return None
    cleaned = _WHITESPACE.sub("", value.upper())
    if len(cleaned) < 4:
        return "XXXXXXXXX"
    return f"XXXXX{cleaned[-4:]}"


def mask_aadhaar(value: Any) -> str | None:
    if not value or not isinstance(value, str):
        return None
    digits = _NON_DIGITS.sub("", value)
    if len(digits) < 4:
        return "XXXX XXXX XXXX"
    return f"XXXX XXXX {digits[-4:]}"


def mask_employee(record: Mapping[str, Any] | None, is_hr: bool = False) -> dict[str, Any] | None:
    """Return a masked copy of an employee-shaped record.

    HR callers get an unmodified copy. Salary fields are nulled only when the
    key is present; absent keys are not introduced.
    """
    if record is None:
        return None
    masked = dict(record)
    if is_hr:
        return masked

    masked["bank_account_number"] = mask_bank_account(record.get("bank_account_number"))
    masked["bank_ifsc"] = "XXXX" if record.get("bank_ifsc") else None
    masked["bank_name"] = "****" if record.get("bank_name") else None
    masked["pan_number"] = mask_pan(record.get("pan_number"))
    masked["aadhaar_number"] = mask_aadhaar(record.get("aadhaar_number"))

    for key in SALARY_FIELDS:
        if key in masked:
            masked[key] = None
    return masked


def mask_employee_list(
    records: Iterable[Mapping[str, Any]], is_hr: bool = False
) -> list[dict[str, Any]]:
    return [mask_employee(record, is_hr) for record in records]
