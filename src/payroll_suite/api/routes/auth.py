"""SSO entry from the HR portal and local PIN credentials."""

import logging
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Header, Query, Request, Response

from payroll_suite.api.dependencies import DbSession, session_token
from payroll_suite.api.schemas import (
    ErrorResponse,
    PinCredentials,
    PinSessionResponse,
    PinStatusResponse,
    SessionResponse,
    SessionUser,
    SsoClaims,
    SsoResponse,
    SsoVerifyResponse,
)
from payroll_suite.config import get_settings
from payroll_suite.database import apply_tenant_scope
from payroll_suite.models import PAYROLL_ADMIN
from payroll_suite.security.sso import HrSsoVerifier
from payroll_suite.security.tokens import SESSION_COOKIE, create_session_token
from payroll_suite.services.audit import AuditAction, AuditLogger
from payroll_suite.services.pin_service import PinService, session_for
from payroll_suite.services.user_provisioning import UserProvisioningService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


# ============================================================================
# SSO
# ============================================================================


@router.get(
    "/sso",
    response_model=SsoResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def sso_login(
    request: Request,
    response: Response,
    db: DbSession,
    token: Annotated[str | None, Query()] = None,
) -> SsoResponse:
    """Verify an HR-portal token, provision the local user and start a session."""
    identity = HrSsoVerifier().verify(token)
    provisioned = await UserProvisioningService(db).upsert_from_sso(identity)
    user = provisioned.user

    await apply_tenant_scope(db, identity.org_id)
    await AuditLogger(db).record(
        AuditAction.SSO_LOGIN,
        "sso",
        tenant_id=identity.org_id,
        actor_id=user.id,
        entity_id=user.id,
        details={
            "hr_user": identity.email,
            "payroll_role": user.payroll_role,
            "outcome": provisioned.outcome,
        },
        ip_address=request.client.host if request.client else None,
    )
    await db.commit()

    session = create_session_token(user.id, user.email)
    _set_session_cookie(response, session)

    if provisioned.requires_pin_setup:
        redirect = f"/payroll/setup-pin?email={quote(user.email, safe='')}"
    elif user.payroll_role == PAYROLL_ADMIN:
        redirect = "/payroll/dashboard"
    else:
        redirect = "/payroll/employee-portal"

    return SsoResponse(
        requiresPinSetup=provisioned.requires_pin_setup,
        token=session,
        user=SessionUser(id=user.id, email=user.email, payrollRole=user.payroll_role),
        redirect=redirect,
    )


@router.get(
    "/sso/verify",
    response_model=SsoVerifyResponse,
    responses={401: {"model": ErrorResponse}},
)
async def sso_verify(token: Annotated[str | None, Query()] = None) -> SsoVerifyResponse:
    """Echo the verified claims without provisioning anything."""
    identity = HrSsoVerifier().verify(token)
    return SsoVerifyResponse(user=SsoClaims(**identity.to_claims()))


# ============================================================================
# PIN credentials
# ============================================================================


@router.post(
    "/login-pin",
    response_model=PinSessionResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def login_pin(
    response: Response, db: DbSession, payload: PinCredentials
) -> PinSessionResponse:
    issued = await PinService(db).login(payload.email, payload.pin)
    _set_session_cookie(response, issued.token)
    return PinSessionResponse(
        token=issued.token,
        user=SessionUser(id=issued.user.id, email=issued.user.email),
    )


@router.post(
    "/setup-pin",
    response_model=PinSessionResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def setup_pin(
    response: Response, db: DbSession, payload: PinCredentials
) -> PinSessionResponse:
    issued = await PinService(db).setup(payload.email, payload.pin)
    await db.commit()
    _set_session_cookie(response, issued.token)
    return PinSessionResponse(
        token=issued.token,
        user=SessionUser(id=issued.user.id, email=issued.user.email),
        message="PIN set successfully",
    )


@router.get(
    "/pin-status",
    response_model=PinStatusResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def pin_status(
    db: DbSession, email: Annotated[str | None, Query()] = None
) -> PinStatusResponse:
    return PinStatusResponse(**await PinService(db).status(email))


@router.post("/logout")
async def logout(response: Response) -> dict[str, bool]:
    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}


@router.get("/session", response_model=SessionResponse)
async def current_session(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> SessionResponse:
    """The caller's session, or ``{"session": null}``; never an error."""
    return SessionResponse(session=session_for(session_token(request, authorization)))
