"""6-digit PIN format check and bcrypt hashing (passlib)."""

from __future__ import annotations

import re
from functools import lru_cache

from passlib.context import CryptContext

from payroll_suite.config import get_settings

PIN_PATTERN = re.compile(r"[0-9]{6}")


def is_valid_pin(pin: object) -> bool:
    return isinstance(pin, str) and PIN_PATTERN.fullmatch(pin) is not None


@lru_cache(maxsize=4)
def _context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def pin_context() -> CryptContext:
    return _context(get_settings().pin_hash_rounds)


def hash_pin(pin: str) -> str:
    return pin_context().hash(pin)


def verify_pin(pin: str, pin_hash: str) -> bool:
    """Constant-time compare; a malformed stored hash counts as a mismatch."""
    try:
        return pin_context().verify(pin, pin_hash)
    except ValueError:
        return False
