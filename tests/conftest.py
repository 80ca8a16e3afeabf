"""Pytest fixtures for payroll suite tests."""

from __future__ import annotations

import os

# Settings are read lazily; these must be in place before the first get_settings()
os.environ["JWT_SECRET"] = "test-session-secret"
os.environ["HR_JWT_SECRET"] = "test-hr-secret"
os.environ["HR_SSO_ISSUER"] = "hr-app"
os.environ["HR_SSO_AUDIENCE"] = "payroll-app"
os.environ["PIN_HASH_ROUNDS"] = "4"
os.environ["ADMIN_EMAILS"] = "root@payroll.test"
os.environ["CORS_ORIGINS"] = "*"

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_suite.api.app import create_app
from payroll_suite.api.dependencies import get_db_session
from payroll_suite.config import get_settings
from payroll_suite.models import (
    PAYROLL_ADMIN,
    PAYROLL_EMPLOYEE,
    Base,
    CompensationStructure,
    Employee,
    Organization,
    User,
    UserRole,
)
from payroll_suite.security.capabilities import RequestContext, Role
from payroll_suite.security.tokens import create_session_token

get_settings.cache_clear()

# In-memory SQLite, one database per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create a fresh test database with the full schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_user(session: AsyncSession):
    async def _make_user(
        org: Organization,
        email: str,
        payroll_role: str = PAYROLL_EMPLOYEE,
        role: Role | None = None,
        first_name: str | None = None,
    ) -> User:
        user = User(
            id=uuid4(),
            email=email,
            first_name=first_name or email.split("@")[0].title(),
            org_id=org.id,
            payroll_role=payroll_role,
        )
        session.add(user)
        await session.flush()
        if role is not None:
            session.add(UserRole(user_id=user.id, tenant_id=org.id, role=role.value))
            await session.flush()
        return user

    return _make_user


@pytest.fixture
def make_employee(session: AsyncSession):
    async def _make_employee(
        org: Organization,
        code: str,
        full_name: str,
        email: str,
        department: str | None = "Engineering",
        date_of_joining: date = date(2023, 1, 1),
        **extra,
    ) -> Employee:
        employee = Employee(
            id=uuid4(),
            tenant_id=org.id,
            employee_code=code,
            full_name=full_name,
            email=email,
            department=department,
            date_of_joining=date_of_joining,
            status=extra.pop("status", "active"),
            **extra,
        )
        session.add(employee)
        await session.flush()
        return employee

    return _make_employee


@pytest.fixture
def make_compensation(session: AsyncSession):
    async def _make_compensation(
        employee: Employee,
        basic: str,
        hra: str = "0",
        special: str = "0",
        ctc: str | None = None,
        effective_from: date = date(2023, 1, 1),
    ) -> CompensationStructure:
        monthly = Decimal(basic) + Decimal(hra) + Decimal(special)
        structure = CompensationStructure(
            tenant_id=employee.tenant_id,
            employee_id=employee.id,
            effective_from=effective_from,
            ctc=Decimal(ctc) if ctc is not None else monthly * 12,
            basic_salary=Decimal(basic),
            hra=Decimal(hra),
            special_allowance=Decimal(special),
        )
        session.add(structure)
        await session.flush()
        return structure

    return _make_compensation


# ============================================================================
# A seeded tenant
# ============================================================================


@dataclass
class SeededTenant:
    org: Organization
    hr_user: User
    finance_user: User
    asha_user: User
    ravi_user: User
    asha: Employee
    ravi: Employee
    meera: Employee


def context_for(user: User, *roles: Role) -> RequestContext:
    return RequestContext(
        user_id=user.id,
        tenant_id=user.org_id,
        email=user.email,
        roles=frozenset(roles),
        ip_address="127.0.0.1",
    )


@pytest.fixture
async def tenant(
    session: AsyncSession, make_user, make_employee, make_compensation
) -> SeededTenant:
    """One organization with HR, finance and two employee users.

    asha and ravi have compensation; meera has none and is skipped by payroll.
    """
    org = Organization(id=uuid4(), name="Acme Payroll Pvt Ltd")
    session.add(org)
    await session.flush()

    hr_user = await make_user(org, "hr@acme.test", PAYROLL_ADMIN, Role.HR)
    finance_user = await make_user(org, "cfo@acme.test", PAYROLL_EMPLOYEE, Role.FINANCE)
    asha_user = await make_user(org, "asha@acme.test", PAYROLL_EMPLOYEE, Role.EMPLOYEE)
    ravi_user = await make_user(org, "ravi@acme.test", PAYROLL_EMPLOYEE)

    asha = await make_employee(
        org,
        "EMP001",
        "Asha Rao",
        "asha@acme.test",
        department="Engineering",
        pan_number="ABCDE1234F",
        aadhaar_number="1234 5678 9012",
        bank_account_number="001234567890",
        bank_ifsc="HDFC0001234",
        bank_name="HDFC Bank",
    )
    ravi = await make_employee(
        org,
        "EMP002",
        "Ravi Kumar",
        "ravi@acme.test",
        department="Sales",
        bank_account_number="009876543210",
    )
    meera = await make_employee(org, "EMP003", "Meera Iyer", "meera@acme.test", department="Sales")

    # 30000 gross: above the ESI ceiling, TDS applies
    await make_compensation(asha, basic="20000", hra="8000", special="2000", ctc="360000")
    # 18000 gross: ESI applies, below the TDS threshold
    await make_compensation(ravi, basic="10000", hra="5000", special="3000", ctc="216000")

    await session.commit()
    return SeededTenant(
        org=org,
        hr_user=hr_user,
        finance_user=finance_user,
        asha_user=asha_user,
        ravi_user=ravi_user,
        asha=asha,
        ravi=ravi,
        meera=meera,
    )


@pytest.fixture
def hr_ctx(tenant: SeededTenant) -> RequestContext:
    return context_for(tenant.hr_user, Role.HR)


@pytest.fixture
def finance_ctx(tenant: SeededTenant) -> RequestContext:
    return context_for(tenant.finance_user, Role.FINANCE)


@pytest.fixture
def asha_ctx(tenant: SeededTenant) -> RequestContext:
    return context_for(tenant.asha_user, Role.EMPLOYEE)


@pytest.fixture
def ravi_ctx(tenant: SeededTenant) -> RequestContext:
    return context_for(tenant.ravi_user, Role.EMPLOYEE)


# ============================================================================
# HTTP client
# ============================================================================


@pytest.fixture
def app(session_factory):
    """Application wired to the test database."""
    app = create_app()

    async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_db_session
    return app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    """Bearer headers carrying a fresh session token for a user."""

    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_session_token(user.id, user.email)}"}

    return _auth_headers
