"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, core HR, payroll, currency, etc.).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import hashlib
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from workforce.common.constants import UserRole
from workforce.config import settings
from workforce.database import Base, get_db
from workforce.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import workforce.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
    )
    dbapi_conn.create_function(
        "gen_random_uuid", 0, lambda: str(uuid.uuid4()),
    )

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from workforce.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_organization(
    *,
    name: str = "Acme Corp",
    slug: str = "acme",
    country: str = "US",
    base_currency: str = "USD",
    timezone: str = "America/Los_Angeles",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        slug=slug,
        country=country,
        base_currency=base_currency,
        timezone=timezone,
        is_active=True,
    )


def _make_location(
    *,
    organization_id: uuid.UUID,
    location_name: str = "San Francisco HQ",
    location_code: str = "SF-HQ",
    city: str = "San Francisco",
    state_province: str = "CA",
    country: str = "US",
    timezone: str = "America/Los_Angeles",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        organization_id=organization_id,
        location_name=location_name,
        location_code=location_code,
        city=city,
        state_province=state_province,
        country=country,
        timezone=timezone,
        is_active=True,
    )


def _make_department(
    *,
    organization_id: uuid.UUID,
    department_name: str = "Engineering",
    department_code: str = "ENG",
    location_id: uuid.UUID | None = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        organization_id=organization_id,
        department_name=department_name,
        department_code=department_code,
        location_id=location_id,
        is_active=True,
    )


def _make_employee(
    *,
    organization_id: uuid.UUID,
    email: str = "test.user@acme.example",
    first_name: str = "Test",
    last_name: str = "User",
    department_id: uuid.UUID | None = None,
    location_id: uuid.UUID | None = None,
    manager_id: uuid.UUID | None = None,
    hire_date: date = date(2024, 1, 15),
    employment_status: str = "active",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        organization_id=organization_id,
        employee_number=f"E-{uuid.uuid4().hex[:6].upper()}",
        first_name=first_name,
        last_name=last_name,
        email=email,
        hire_date=hire_date,
        employment_type="full_time",
        employment_status=employment_status,
        department_id=department_id,
        location_id=location_id,
        manager_id=manager_id,
        job_title="Engineer",
    )


async def create_employee(db: AsyncSession, **kwargs) -> dict:
    """Insert an employee built by ``_make_employee`` and commit it."""
    from workforce.core_hr.models import Employee

    data = _make_employee(**kwargs)
    db.add(Employee(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_organization(db) -> dict:
    """Insert the default tenant and return its data dict."""
    from workforce.core_hr.models import Organization

    data = _make_organization()
    db.add(Organization(**data))
    await db.commit()
    return data


@pytest.fixture
async def other_organization(db) -> dict:
    """A second tenant, used by isolation tests."""
    from workforce.core_hr.models import Organization

    data = _make_organization(name="Globex", slug="globex", base_currency="EUR", country="DE")
    db.add(Organization(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_location(db, test_organization) -> dict:
    """Insert a test location and return its data dict."""
    from workforce.core_hr.models import Location

    data = _make_location(organization_id=test_organization["id"])
    db.add(Location(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_department(db, test_location) -> dict:
    """Insert a test department linked to test_location."""
    from workforce.core_hr.models import Department

    data = _make_department(
        organization_id=test_location["organization_id"],
        location_id=test_location["id"],
    )
    db.add(Department(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_employee(db, test_department, test_location) -> dict:
    """Insert an active employee with department + location."""
    return await create_employee(
        db,
        organization_id=test_location["organization_id"],
        department_id=test_department["id"],
        location_id=test_location["id"],
    )


@pytest.fixture
async def other_employee(db, test_employee) -> dict:
    """A colleague of ``test_employee`` reporting to them."""
    return await create_employee(
        db,
        organization_id=test_employee["organization_id"],
        email="jane.doe@acme.example",
        first_name="Jane",
        last_name="Doe",
        department_id=test_employee["department_id"],
        location_id=test_employee["location_id"],
        manager_id=test_employee["id"],
    )


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    organization_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(employee_id),
        "org": str(organization_id),
        "role": role.value,
        "type": "access",
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(
    employee_id: uuid.UUID,
    organization_id: uuid.UUID,
    expired: bool = False,
) -> str:
    """Generate a JWT refresh token for testing (with unique jti)."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(days=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(days=7)
    payload = {
        "sub": str(employee_id),
        "org": str(organization_id),
        "type": "refresh",
        "jti": uuid.uuid4().hex,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def make_auth_headers(
    db: AsyncSession,
    employee: dict,
    role: UserRole = UserRole.employee,
) -> dict[str, str]:
    """Persist a live session for *employee* and return Bearer headers."""
    from workforce.auth.models import UserSession

    token = create_access_token(employee["id"], employee["organization_id"], role)
    db.add(UserSession(
        id=uuid.uuid4(),
        employee_id=employee["id"],
        token_hash=hashlib.sha256(token.encode()).hexdigest(),
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
        is_revoked=False,
        created_at=datetime.now(timezone.utc),
    ))
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def auth_headers(db, test_employee) -> dict[str, str]:
    """Bearer headers for ``test_employee`` with the plain employee role."""
    return await make_auth_headers(db, test_employee)


@pytest.fixture
async def manager_headers(db, test_employee) -> dict[str, str]:
    return await make_auth_headers(db, test_employee, UserRole.manager)


@pytest.fixture
async def hr_headers(db, test_employee) -> dict[str, str]:
    return await make_auth_headers(db, test_employee, UserRole.hr_admin)


@pytest.fixture
async def payroll_headers(db, test_employee) -> dict[str, str]:
    return await make_auth_headers(db, test_employee, UserRole.payroll_admin)


@pytest.fixture
async def admin_headers(db, test_employee) -> dict[str, str]:
    return await make_auth_headers(db, test_employee, UserRole.system_admin)


@pytest.fixture
async def approver(db, test_employee) -> dict:
    """A second payroll admin who can vote on ``test_employee``'s requests.

    The returned dict carries the employee data plus ``headers``.
    """
    employee = await create_employee(
        db, organization_id=test_employee["organization_id"], email="approver@acme.example",
    )
    headers = await make_auth_headers(db, employee, UserRole.payroll_admin)
    return {**employee, "headers": headers}


@pytest.fixture
def mock_google_oauth():
    """Patch verify_google_token to return a fake Google user."""

    def _mock(email: str = "test.user@acme.example", name: str = "Test User"):
        google_info = {
            "email": email,
            "name": name,
            "picture": "https://lh3.googleusercontent.com/fake",
            "google_id": f"google-{uuid.uuid4().hex[:12]}",
        }
        return patch(
            "workforce.auth.router.verify_google_token",
            new_callable=AsyncMock,
            return_value=google_info,
        )

    return _mock
