"""Error taxonomy shared by services and the HTTP layer.

Every error carries the HTTP status it maps to, a short ``error`` string
that clients can match on, and an optional human-readable ``message``.
"""

from __future__ import annotations

from typing import Any


class PayrollSuiteError(Exception):
    """Base class for expected, client-facing errors."""

    status_code: int = 500
    default_error: str = "Internal server error"

    def __init__(self, error: str | None = None, message: str | None = None):
        self.error = error or self.default_error
        self.message = message
        super().__init__(message or self.error)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class ValidationError(PayrollSuiteError):
    """Malformed input or missing required field."""

    status_code = 400
    default_error = "Validation failed"

    def __init__(
        self,
        error: str | None = None,
        message: str | None = None,
        field: str | None = None,
    ):
        self.field = field
        super().__init__(error, message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class AuthenticationError(PayrollSuiteError):
    """Missing, expired or otherwise unusable credentials."""

    status_code = 401
    default_error = "Unauthorized"

    def __init__(
        self,
        error: str | None = None,
        message: str | None = None,
        reason: str = "unauthenticated",
    ):
        self.reason = reason
        super().__init__(error, message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["reason"] = self.reason
        return body


class AuthorizationError(PayrollSuiteError):
    """Authenticated, but not allowed to perform the operation."""

    status_code = 403
    default_error = "Access denied"


class NotFoundError(PayrollSuiteError):
    status_code = 404
    default_error = "Not found"


class ConflictError(PayrollSuiteError):
    status_code = 409
    default_error = "Conflict"


class ConfigurationError(PayrollSuiteError):
    """Server-side misconfiguration (e.g. missing signing secret)."""

    status_code = 500
    default_error = "Configuration error"
