"""Tests for SSO user provisioning."""

from uuid import uuid4

from sqlalchemy import func, select

from payroll_suite.models import PAYROLL_ADMIN, PAYROLL_EMPLOYEE, Organization, User
from payroll_suite.security.sso import HrIdentity
from payroll_suite.services.user_provisioning import UserProvisioningService


def identity(org_id, **overrides) -> HrIdentity:
    values = {
        "hr_user_id": "hr-42",
        "org_id": org_id,
        "email": "kiran@acme.test",
        "name": "Kiran Shah",
        "payroll_role": PAYROLL_EMPLOYEE,
    }
    values.update(overrides)
    return HrIdentity(**values)


async def user_count(session, email) -> int:
    result = await session.execute(
        select(func.count()).select_from(User).where(User.email == email)
    )
    return result.scalar_one()


class TestUpsertFromSso:
    async def test_creates_user(self, session, tenant):
        provisioned = await UserProvisioningService(session).upsert_from_sso(identity(tenant.org.id))

        assert provisioned.outcome == "created"
        assert provisioned.requires_pin_setup
        user = provisioned.user
        assert user.hr_user_id == "hr-42"
        assert user.org_id == tenant.org.id
        assert user.first_name == "Kiran"
        assert user.last_name == "Shah"

    async def test_second_login_updates_same_row(self, session, tenant):
        service = UserProvisioningService(session)
        first = await service.upsert_from_sso(identity(tenant.org.id))
        second = await service.upsert_from_sso(identity(tenant.org.id))

        assert second.outcome == "updated"
        assert second.user.id == first.user.id
        assert await user_count(session, "kiran@acme.test") == 1

    async def test_links_existing_email(self, session, tenant):
        provisioned = await UserProvisioningService(session).upsert_from_sso(
            identity(tenant.org.id, hr_user_id="hr-7", email="asha@acme.test", name="Asha Rao")
        )

        assert provisioned.outcome == "linked"
        assert provisioned.user.id == tenant.asha_user.id
        assert provisioned.user.hr_user_id == "hr-7"
        assert await user_count(session, "asha@acme.test") == 1

    async def test_role_follows_hr_portal(self, session, tenant):
        service = UserProvisioningService(session)
        await service.upsert_from_sso(identity(tenant.org.id))
        promoted = await service.upsert_from_sso(
            identity(tenant.org.id, payroll_role=PAYROLL_ADMIN)
        )

        assert promoted.user.payroll_role == PAYROLL_ADMIN

    async def test_unknown_organization_created(self, session):
        org_id = uuid4()
        provisioned = await UserProvisioningService(session).upsert_from_sso(identity(org_id))

        assert provisioned.user.org_id == org_id
        assert await session.get(Organization, org_id) is not None

    async def test_pin_user_needs_no_setup(self, session, tenant):
        tenant.asha_user.pin_hash = "$2b$04$existing"
        await session.flush()

        provisioned = await UserProvisioningService(session).upsert_from_sso(
            identity(tenant.org.id, hr_user_id="hr-7", email="asha@acme.test", name="Asha Rao")
        )
        assert not provisioned.requires_pin_setup

    async def test_concurrent_insert_retries_lookup(self, session, tenant, monkeypatch):
        service = UserProvisioningService(session)
        # Row written by a login that won the race
        session.add(User(email="kiran@acme.test", hr_user_id="hr-42", org_id=tenant.org.id))
        await session.flush()

        upsert = service._upsert
        attempts = []

        async def upsert_after_stale_lookup(ident):
            attempts.append(ident.email)
            if len(attempts) == 1:
                session.add(User(email=ident.email, hr_user_id=ident.hr_user_id))
                await session.flush()
            return await upsert(ident)

        monkeypatch.setattr(service, "_upsert", upsert_after_stale_lookup)
        provisioned = await service.upsert_from_sso(identity(tenant.org.id))

        assert len(attempts) == 2
        assert provisioned.outcome == "updated"
        assert await user_count(session, "kiran@acme.test") == 1
