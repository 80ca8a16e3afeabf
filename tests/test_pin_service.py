"""Tests for PIN setup and login."""

import pytest

from payroll_suite.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from payroll_suite.security.tokens import create_session_token, decode_session_token
from payroll_suite.services.pin_service import PinService, session_for


@pytest.fixture
def pins(session) -> PinService:
    return PinService(session)


class TestSetup:
    async def test_first_pin_issues_session(self, pins, tenant):
        issued = await pins.setup("asha@acme.test", "482913")

        assert issued.user.id == tenant.asha_user.id
        assert issued.user.pin_hash != "482913"
        assert issued.user.pin_set_at is not None
        assert decode_session_token(issued.token).user_id == tenant.asha_user.id

    async def test_email_is_normalized(self, pins, tenant):
        issued = await pins.setup("  Asha@ACME.test ", "482913")
        assert issued.user.id == tenant.asha_user.id

    async def test_second_setup_conflicts(self, pins, tenant):
        await pins.setup("asha@acme.test", "482913")

        with pytest.raises(ConflictError) as exc_info:
            await pins.setup("asha@acme.test", "111111")
        assert exc_info.value.error == "PIN already set. Use login to sign in."

    async def test_unknown_user(self, pins, tenant):
        with pytest.raises(NotFoundError) as exc_info:
            await pins.setup("nobody@acme.test", "482913")
        assert exc_info.value.error == "User not found"

    @pytest.mark.parametrize("pin", ["12345", "1234567", "12a456", ""])
    async def test_malformed_pin(self, pins, tenant, pin):
        with pytest.raises(ValidationError):
            await pins.setup("asha@acme.test", pin)


class TestLogin:
    async def test_correct_pin(self, pins, tenant):
        await pins.setup("ravi@acme.test", "246810")
        issued = await pins.login("ravi@acme.test", "246810")

        assert issued.user.id == tenant.ravi_user.id
        assert issued.to_dict()["user"]["email"] == "ravi@acme.test"

    async def test_wrong_pin(self, pins, tenant):
        await pins.setup("ravi@acme.test", "246810")

        with pytest.raises(AuthenticationError) as exc_info:
            await pins.login("ravi@acme.test", "000000")
        assert exc_info.value.error == "Invalid PIN"
        assert exc_info.value.reason == "invalid_pin"

    async def test_unknown_email(self, pins, tenant):
        with pytest.raises(AuthenticationError) as exc_info:
            await pins.login("ghost@acme.test", "246810")
        assert exc_info.value.reason == "invalid_credentials"

    async def test_pin_not_set(self, pins, tenant):
        with pytest.raises(AuthorizationError) as exc_info:
            await pins.login("ravi@acme.test", "246810")
        assert exc_info.value.error == "PIN not set"

    async def test_format_checked_before_lookup(self, pins, tenant):
        with pytest.raises(ValidationError) as exc_info:
            await pins.login("ghost@acme.test", "12")
        assert exc_info.value.field == "pin"

    async def test_missing_fields(self, pins, tenant):
        with pytest.raises(ValidationError) as exc_info:
            await pins.login(None, "246810")
        assert exc_info.value.error == "email and pin required"


class TestStatus:
    async def test_reports_pin_state(self, pins, tenant):
        assert await pins.status("ravi@acme.test") == {
            "hasPin": False,
            "userId": tenant.ravi_user.id,
        }
        await pins.setup("ravi@acme.test", "246810")
        assert (await pins.status("ravi@acme.test"))["hasPin"] is True

    async def test_unknown_user(self, pins, tenant):
        with pytest.raises(NotFoundError):
            await pins.status("ghost@acme.test")


class TestSessionFor:
    async def test_valid_token(self, tenant):
        token = create_session_token(tenant.asha_user.id, tenant.asha_user.email)
        assert session_for(token) == {"userId": tenant.asha_user.id}

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    def test_invalid_token(self, token):
        assert session_for(token) is None
