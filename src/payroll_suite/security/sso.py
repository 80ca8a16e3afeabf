"""Verification of HR-portal SSO tokens.

The HR portal signs an HS256 token with a secret shared with payroll only
(``HR_JWT_SECRET``). The token asserts the external identity::

    {"sub": <hr user id>, "org_id": <uuid>, "email": ..., "name": ...,
     "roles": [...], "payroll_role": "payroll_admin" | "payroll_employee",
     "iss": "hr-app", "aud": "payroll-app", "exp": ...}

Each failure maps to a distinct ``reason`` on the AuthenticationError so
clients can tell an expired token from a misrouted one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from payroll_suite.config import Settings, get_settings
from payroll_suite.exceptions import AuthenticationError, ConfigurationError
from payroll_suite.models import PAYROLL_ADMIN, PAYROLL_EMPLOYEE

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_HR_ROLES = frozenset({"ceo", "admin", "hr"})


@dataclass(frozen=True)
class HrIdentity:
    """Verified external identity asserted by the HR portal."""

    hr_user_id: str
    org_id: UUID
    email: str
    name: str
    payroll_role: str
    roles: tuple[str, ...] = field(default_factory=tuple)

    @property
    def first_name(self) -> str:
        return self.name.split(" ", 1)[0]

    @property
    def last_name(self) -> str | None:
        parts = self.name.split(" ", 1)
        return parts[1] if len(parts) > 1 else None

    def to_claims(self) -> dict[str, Any]:
        return {
            "hrUserId": self.hr_user_id,
            "orgId": str(self.org_id),
            "email": self.email,
            "name": self.name,
            "roles": list(self.roles),
            "payrollRole": self.payroll_role,
        }


def derive_payroll_role(hr_roles: Iterable[Any]) -> str:
    """CEO, Admin or HR in any case maps to payroll_admin."""
    for role in hr_roles:
        if isinstance(role, str) and role.strip().lower() in ADMIN_HR_ROLES:
            return PAYROLL_ADMIN
    return PAYROLL_EMPLOYEE


class HrSsoVerifier:
    """Verifies SSO tokens against the configured issuer and audience."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _secret(self) -> str:
        secret = self.settings.hr_jwt_secret
        if not secret:
            logger.error("HR_JWT_SECRET is not configured; SSO is unavailable")
            raise ConfigurationError("SSO configuration error", "JWT secret not configured")
        return secret

    def verify(self, token: str | None) -> HrIdentity:
        if not token:
            raise AuthenticationError(
                "SSO token required",
                "Please provide a valid SSO token from HR system",
                reason="token_missing",
            )

        secret = self._secret()
        try:
            # Issuer and audience are checked below to report them separately
            payload = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                options={
                    "verify_aud": False,
                    "verify_iss": False,
                    "verify_sub": False,
                    "require_exp": True,
                },
            )
        except ExpiredSignatureError:
            logger.info("SSO token rejected: expired")
            raise AuthenticationError(
                "Token expired",
                "SSO token has expired. Please try again from HR system.",
                reason="token_expired",
            )
        except JWTError as e:
            logger.info("SSO token rejected: %s", e)
            raise AuthenticationError(
                "Invalid token",
                "SSO token is invalid or malformed",
                reason="invalid_token",
            )

        issuer = payload.get("iss")
        if issuer != self.settings.hr_sso_issuer:
            logger.info("SSO token rejected: issuer %r", issuer)
            raise AuthenticationError(
                "Invalid token issuer",
                f"Expected issuer '{self.settings.hr_sso_issuer}', got '{issuer}'",
                reason="invalid_issuer",
            )

        audience = payload.get("aud")
        audiences = audience if isinstance(audience, list) else [audience]
        if self.settings.hr_sso_audience not in audiences:
            logger.info("SSO token rejected: audience %r", audience)
            raise AuthenticationError(
                "Invalid token audience",
                f"Expected audience '{self.settings.hr_sso_audience}', got '{audience}'",
                reason="invalid_audience",
            )

        identity = self._identity_from(payload)
        logger.info(
            "SSO token verified: %s (%s) from org %s",
            identity.email, identity.payroll_role, identity.org_id,
        )
        return identity

    def _identity_from(self, payload: dict[str, Any]) -> HrIdentity:
        sub = payload.get("sub")
        org_id = payload.get("org_id")
        email = payload.get("email")
        if not sub or not org_id or not email or not isinstance(email, str):
            raise AuthenticationError(
                "Invalid token claims",
                "Token missing required claims: sub, org_id, or email",
                reason="invalid_claims",
            )

        try:
            org_uuid = UUID(str(org_id))
        except ValueError:
            raise AuthenticationError(
                "Invalid token claims",
                "org_id must be a UUID",
                reason="invalid_claims",
            )

        roles = payload.get("roles") or []
        if not isinstance(roles, list):
            roles = [roles]

        payroll_role = payload.get("payroll_role")
        if payroll_role is None:
            payroll_role = derive_payroll_role(roles)
        elif payroll_role not in (PAYROLL_ADMIN, PAYROLL_EMPLOYEE):
            raise AuthenticationError(
                "Invalid token claims",
                f"Unknown payroll_role '{payroll_role}'",
                reason="invalid_claims",
            )

        normalized_email = email.strip().lower()
        return HrIdentity(
            hr_user_id=str(sub),
            org_id=org_uuid,
            email=normalized_email,
            name=payload.get("name") or normalized_email,
            payroll_role=payroll_role,
            roles=tuple(str(r) for r in roles),
        )
