"""Just-in-time provisioning of local users from verified SSO identities."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_suite.models import Organization, User
from payroll_suite.security.sso import HrIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionedUser:
    user: User
    outcome: str  # created, updated or linked

    @property
    def requires_pin_setup(self) -> bool:
        return not self.user.pin_hash


class UserProvisioningService:
    """Upserts a local User for an HR identity.

    Lookup order is external id, then email; the first SSO login for an
    email that already exists links it to the external id. Running twice
    with the same identity leaves one row with identical fields.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert_from_sso(self, identity: HrIdentity) -> ProvisionedUser:
        try:
            async with self.session.begin_nested():
                return await self._upsert(identity)
        except IntegrityError:
            # A concurrent login inserted the same user first; look it up again.
            logger.info("Provisioning race for %s, retrying lookup", identity.email)
            async with self.session.begin_nested():
                return await self._upsert(identity)

    async def _ensure_organization(self, identity: HrIdentity) -> None:
        organization = await self.session.get(Organization, identity.org_id)
        if organization is None:
            self.session.add(Organization(id=identity.org_id, name=f"Organization {identity.org_id}"))
            await self.session.flush()
            logger.info("Created organization %s from SSO", identity.org_id)

    async def _upsert(self, identity: HrIdentity) -> ProvisionedUser:
        await self._ensure_organization(identity)

        result = await self.session.execute(
            select(User).where(User.hr_user_id == identity.hr_user_id).with_for_update()
        )
        user = result.scalar_one_or_none()
        if user is not None:
            self._apply(user, identity)
            await self.session.flush()
            logger.info("Updated payroll user %s (%s)", user.email, user.payroll_role)
            return ProvisionedUser(user, "updated")

        result = await self.session.execute(
            select(User).where(func.lower(User.email) == identity.email).with_for_update()
        )
        user = result.scalar_one_or_none()
        if user is not None:
            if user.hr_user_id and user.hr_user_id != identity.hr_user_id:
                logger.warning(
                    "User %s already linked to different HR user %s; relinking to %s",
                    identity.email, user.hr_user_id, identity.hr_user_id,
                )
            self._apply(user, identity)
            await self.session.flush()
            logger.info(
                "Linked payroll user %s to HR user %s (%s)",
                user.email, identity.hr_user_id, user.payroll_role,
            )
            return ProvisionedUser(user, "linked")

        user = User(email=identity.email)
        self._apply(user, identity)
        self.session.add(user)
        await self.session.flush()
        logger.info("Created payroll user %s (%s)", user.email, user.payroll_role)
        return ProvisionedUser(user, "created")

    @staticmethod
    def _apply(user: User, identity: HrIdentity) -> None:
        user.hr_user_id = identity.hr_user_id
        user.email = identity.email
        user.org_id = identity.org_id
        user.payroll_role = identity.payroll_role
        user.first_name = identity.first_name or user.first_name
        user.last_name = identity.last_name or user.last_name
