"""PIN setup, PIN login and session lookup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from payroll_suite.models import User
from payroll_suite.security.pins import hash_pin, is_valid_pin, verify_pin
from payroll_suite.security.tokens import create_session_token, decode_session_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    user: User
    token: str

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "user": {"id": self.user.id, "email": self.user.email}}


def _normalize(email: str | None) -> str:
    return (email or "").strip().lower()


def _check_credentials(email: str | None, pin: str | None) -> str:
    if not email or not pin:
        raise ValidationError("email and pin required")
    if not is_valid_pin(pin):
        raise ValidationError("PIN must be exactly 6 digits", field="pin")
    return _normalize(email)


class PinService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _user_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(func.lower(User.email) == email))
        return result.scalar_one_or_none()

    async def setup(self, email: str | None, pin: str | None) -> IssuedSession:
        """First-time PIN for an SSO-provisioned user."""
        email = _check_credentials(email, pin)
        user = await self._user_by_email(email)
        if user is None:
            raise NotFoundError(
                "User not found",
                "Please sign up in the HR Portal first. Users are created automatically when added by HR.",
            )
        if user.pin_hash:
            raise ConflictError("PIN already set. Use login to sign in.")

        user.pin_hash = hash_pin(pin)
        user.pin_set_at = datetime.now(timezone.utc)
        await self.session.flush()
        logger.info("PIN set for user %s", user.id)
        return IssuedSession(user, create_session_token(user.id, email))

    async def login(self, email: str | None, pin: str | None) -> IssuedSession:
        # Format is checked before the user lookup.
        email = _check_credentials(email, pin)
        user = await self._user_by_email(email)
        if user is None:
            raise AuthenticationError("Invalid credentials", reason="invalid_credentials")
        if not user.pin_hash:
            raise AuthorizationError(
                "PIN not set",
                "Please set up your PIN first. You can do this through SSO from the HR Portal.",
            )
        if not verify_pin(pin, user.pin_hash):
            logger.info("PIN login failed for user %s", user.id)
            raise AuthenticationError("Invalid PIN", reason="invalid_pin")

        return IssuedSession(user, create_session_token(user.id, email))

    async def status(self, email: str | None) -> dict[str, Any]:
        email = _normalize(email)
        if not email:
            raise ValidationError("email required", field="email")
        user = await self._user_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        return {"hasPin": bool(user.pin_hash), "userId": user.id}


def session_for(token: str | None) -> dict[str, Any] | None:
    """The caller's session summary, or None when the token is absent or invalid."""
    try:
        claims = decode_session_token(token)
    except AuthenticationError:
        return None
    return {"userId": claims.user_id}
