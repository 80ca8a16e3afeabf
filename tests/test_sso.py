"""Tests for HR-portal SSO token verification."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from jose import jwt

from payroll_suite.config import get_settings
from payroll_suite.exceptions import AuthenticationError, ConfigurationError
from payroll_suite.security.sso import HrSsoVerifier, derive_payroll_role


def sso_token(secret: str | None = None, **overrides) -> str:
    claims = {
        "sub": "hr-user-42",
        "org_id": str(uuid4()),
        "email": "Asha@Acme.test",
        "name": "Asha Rao",
        "roles": ["Employee"],
        "iss": "hr-app",
        "aud": "payroll-app",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    claims.update(overrides)
    claims = {key: value for key, value in claims.items() if value is not None}
    return jwt.encode(claims, secret or get_settings().hr_jwt_secret, algorithm="HS256")


def rejection(token: str | None) -> AuthenticationError:
    with pytest.raises(AuthenticationError) as exc_info:
        HrSsoVerifier().verify(token)
    return exc_info.value


class TestDerivePayrollRole:
    @pytest.mark.parametrize("roles", [["CEO"], ["admin"], ["Employee", "HR"], [" hr "]])
    def test_admin_roles(self, roles):
        assert derive_payroll_role(roles) == "payroll_admin"

    @pytest.mark.parametrize("roles", [[], ["Employee"], ["Manager", "Finance"], [None, 3]])
    def test_other_roles(self, roles):
        assert derive_payroll_role(roles) == "payroll_employee"


class TestHrSsoVerifier:
    def test_valid_token(self):
        org_id = uuid4()
        identity = HrSsoVerifier().verify(sso_token(org_id=str(org_id)))

        assert identity.hr_user_id == "hr-user-42"
        assert identity.org_id == org_id
        assert identity.email == "asha@acme.test"
        assert identity.first_name == "Asha"
        assert identity.last_name == "Rao"
        assert identity.payroll_role == "payroll_employee"
        assert identity.roles == ("Employee",)

    def test_role_derived_from_hr_roles(self):
        identity = HrSsoVerifier().verify(sso_token(roles=["Admin"]))
        assert identity.payroll_role == "payroll_admin"

    def test_explicit_payroll_role_wins(self):
        identity = HrSsoVerifier().verify(sso_token(roles=["CEO"], payroll_role="payroll_employee"))
        assert identity.payroll_role == "payroll_employee"

    def test_unknown_payroll_role(self):
        assert rejection(sso_token(payroll_role="superuser")).reason == "invalid_claims"

    def test_missing_token(self):
        error = rejection(None)
        assert error.reason == "token_missing"
        assert error.error == "SSO token required"

    def test_expired(self):
        expired = datetime.now(timezone.utc) - timedelta(minutes=1)
        error = rejection(sso_token(exp=expired))
        assert error.reason == "token_expired"
        assert error.error == "Token expired"

    def test_token_without_expiry(self):
        assert rejection(sso_token(exp=None)).reason == "invalid_token"

    def test_bad_signature(self):
        assert rejection(sso_token(secret="not-the-shared-secret")).reason == "invalid_token"

    def test_garbage(self):
        assert rejection("not.a.jwt").reason == "invalid_token"

    def test_wrong_issuer(self):
        error = rejection(sso_token(iss="someone-else"))
        assert error.reason == "invalid_issuer"
        assert error.error == "Invalid token issuer"

    def test_wrong_audience(self):
        error = rejection(sso_token(aud="billing-app"))
        assert error.reason == "invalid_audience"

    @pytest.mark.parametrize("claim", ["sub", "org_id", "email"])
    def test_missing_required_claim(self, claim):
        error = rejection(sso_token(**{claim: None}))
        assert error.reason == "invalid_claims"

    def test_org_id_must_be_uuid(self):
        assert rejection(sso_token(org_id="acme")).reason == "invalid_claims"

    def test_name_defaults_to_email(self):
        identity = HrSsoVerifier().verify(sso_token(name=None))
        assert identity.name == "asha@acme.test"

    def test_missing_secret(self):
        verifier = HrSsoVerifier(replace(get_settings(), hr_jwt_secret=None))
        with pytest.raises(ConfigurationError) as exc_info:
            verifier.verify(sso_token())
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "JWT secret not configured"

    def test_claims_echo(self):
        claims = HrSsoVerifier().verify(sso_token()).to_claims()
        assert claims["hrUserId"] == "hr-user-42"
        assert claims["payrollRole"] == "payroll_employee"
