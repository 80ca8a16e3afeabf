"""Local session tokens (HS256, python-jose)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from payroll_suite.config import Settings, get_settings
from payroll_suite.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_COOKIE = "session"


@dataclass(frozen=True)
class SessionClaims:
    user_id: UUID
    email: str | None
    expires_at: datetime


def create_session_token(
    user_id: UUID,
    email: str | None = None,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> str:
    """Issue a session token valid for ``session_ttl_days``."""
    settings = settings or get_settings()
    issued_at = now or datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "iat": int(issued_at.timestamp()),
        "exp": issued_at + timedelta(days=settings.session_ttl_days),
        "type": "session",
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def decode_session_token(token: str | None, settings: Settings | None = None) -> SessionClaims:
    """Verify a session token, raising AuthenticationError on any problem."""
    if not token:
        raise AuthenticationError("Unauthorized", "No session token provided", reason="token_missing")

    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[ALGORITHM], options={"require_exp": True}
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Unauthorized", "Session expired", reason="token_expired")
    except JWTError as e:
        logger.debug("Session token rejected: %s", e)
        raise AuthenticationError("Unauthorized", "Invalid session token", reason="invalid_token")

    if payload.get("type") != "session":
        raise AuthenticationError("Unauthorized", "Invalid session token", reason="invalid_token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Unauthorized", "Invalid session token", reason="invalid_claims")

    return SessionClaims(
        user_id=user_id,
        email=payload.get("email"),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
