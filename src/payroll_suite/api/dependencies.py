"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator, Callable, Coroutine
from typing import Annotated, Any

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.config import get_settings
from payroll_suite.database import apply_tenant_scope, get_session
from payroll_suite.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from payroll_suite.models import User, UserRole
from payroll_suite.security.capabilities import (
    Capability,
    RequestContext,
    parse_roles,
    role_for_payroll_role,
)
from payroll_suite.security.tokens import SESSION_COOKIE, decode_session_token


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency (committed when the request succeeds)."""
    async with get_session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def session_token(request: Request, authorization: str | None) -> str | None:
    """Bearer header first, then the session cookie."""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return request.cookies.get(SESSION_COOKIE)


async def get_request_context(
    request: Request,
    db: DbSession,
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Authenticate the caller and bind the request to its tenant."""
    claims = decode_session_token(session_token(request, authorization))

    user = await db.get(User, claims.user_id)
    if user is None:
        raise AuthenticationError("Unauthorized", "User no longer exists", reason="invalid_claims")
    if user.org_id is None:
        raise NotFoundError(
            "Organization not found",
            "User is not associated with an organization",
        )

    # user_roles is tenant-scoped under row-level security
    await apply_tenant_scope(db, user.org_id)
    result = await db.execute(
        select(UserRole.role).where(
            UserRole.user_id == user.id,
            UserRole.tenant_id == user.org_id,
        )
    )
    roles = parse_roles(result.scalars().all())
    if not roles:
        roles = frozenset({role_for_payroll_role(user.payroll_role)})

    return RequestContext(
        user_id=user.id,
        tenant_id=user.org_id,
        email=user.email,
        roles=roles,
        is_superadmin=get_settings().is_superadmin(user.email),
        ip_address=request.client.host if request.client else None,
    )


Context = Annotated[RequestContext, Depends(get_request_context)]


def require_capability(
    capability: Capability,
) -> Callable[[RequestContext], Coroutine[Any, Any, RequestContext]]:
    """Dependency factory: the caller must hold ``capability``."""

    async def dependency(ctx: Context) -> RequestContext:
        if not ctx.has_capability(capability):
            raise AuthorizationError("Insufficient permissions")
        return ctx

    return dependency


# Type aliases for cleaner dependency injection
PayrollRunner = Annotated[RequestContext, Depends(require_capability(Capability.PAYROLL_RUN))]
TotalsReader = Annotated[
    RequestContext, Depends(require_capability(Capability.PAYROLL_READ_TOTALS))
]
LeaveApprover = Annotated[RequestContext, Depends(require_capability(Capability.LEAVE_APPROVE))]
AttendanceManager = Annotated[
    RequestContext, Depends(require_capability(Capability.ATTENDANCE_MANAGE))
]
LeaveRequester = Annotated[
    RequestContext, Depends(require_capability(Capability.LEAVE_REQUEST_OWN))
]
