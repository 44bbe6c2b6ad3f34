"""Tests for common utilities — filters, pagination, tenant-scoped CRUD, dates.

Exercises the apply_filters, apply_sorting, apply_search, pagination and
crud helpers shared by every service.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    ensure_unique,
    get_scoped_or_404,
    scoped_select,
)
from workforce.common.dates import ensure_utc, hours_between
from workforce.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from workforce.common.filters import _get_column, apply_filters, apply_search, apply_sorting
from workforce.common.pagination import PaginationParams, paginate
from workforce.core_hr.models import Department, Employee, Organization
from tests.conftest import _make_employee, _make_organization


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_employee(db: AsyncSession, org_id, **kwargs) -> Employee:
    emp = Employee(**_make_employee(organization_id=org_id, **kwargs))
    db.add(emp)
    await db.flush()
    return emp


@pytest.fixture
async def org(db) -> Organization:
    org = Organization(**_make_organization())
    db.add(org)
    await db.flush()
    return org


# ═════════════════════════════════════════════════════════════════════
# FILTER TESTS
# ═════════════════════════════════════════════════════════════════════


class TestApplyFilters:
    """Tests for apply_filters utility."""

    async def test_filter_by_equality(self, db: AsyncSession, org):
        await _seed_employee(db, org.id, first_name="Alice", email="alice@acme.example")
        await _seed_employee(db, org.id, first_name="Bob", email="bob@acme.example")

        query = apply_filters(select(Employee), Employee, {"first_name": "Alice"})
        employees = (await db.execute(query)).scalars().all()
        assert len(employees) == 1
        assert employees[0].first_name == "Alice"

    async def test_filter_none_values_skipped(self, db: AsyncSession, org):
        await _seed_employee(db, org.id, email="x@acme.example")

        query = apply_filters(select(Employee), Employee, {"first_name": None, "job_title": "Engineer"})
        assert len((await db.execute(query)).scalars().all()) == 1

    async def test_filter_by_ilike(self, db: AsyncSession, org):
        await _seed_employee(db, org.id, first_name="Alexander", email="alex@acme.example")
        await _seed_employee(db, org.id, first_name="Bobby", email="bobby@acme.example")

        query = apply_filters(select(Employee), Employee, {"first_name__ilike": "alex"})
        employees = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in employees] == ["Alexander"]

    async def test_filter_by_from_to_range(self, db: AsyncSession, org):
        for name, hired in (("E1", date(2024, 1, 1)), ("E2", date(2025, 6, 1)), ("E3", date(2026, 1, 1))):
            await _seed_employee(
                db, org.id, first_name=name, email=f"{name.lower()}@acme.example", hire_date=hired,
            )

        query = apply_filters(select(Employee), Employee, {
            "hire_date__from": date(2025, 1, 1),
            "hire_date__to": date(2025, 12, 31),
        })
        employees = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in employees] == ["E2"]

    async def test_filter_by_in(self, db: AsyncSession, org):
        for name in ("Alice", "Bob", "Charlie"):
            await _seed_employee(db, org.id, first_name=name, email=f"{name.lower()}@acme.example")

        query = apply_filters(select(Employee), Employee, {"first_name__in": ["Alice", "Charlie"]})
        names = {e.first_name for e in (await db.execute(query)).scalars().all()}
        assert names == {"Alice", "Charlie"}

    async def test_filter_nonexistent_column_ignored(self, db: AsyncSession, org):
        await _seed_employee(db, org.id, email="safe@acme.example")

        query = apply_filters(select(Employee), Employee, {"nonexistent_field": "value"})
        assert len((await db.execute(query)).scalars().all()) == 1


class TestApplySearch:

    async def test_search_matches_any_column(self, db: AsyncSession, org):
        await _seed_employee(db, org.id, first_name="Nadia", email="nadia@acme.example")
        await _seed_employee(db, org.id, first_name="Omar", last_name="Nadir", email="omar@acme.example")
        await _seed_employee(db, org.id, first_name="Pia", email="pia@acme.example")

        query = apply_search(select(Employee), Employee, "nad", ["first_name", "last_name"])
        names = {e.first_name for e in (await db.execute(query)).scalars().all()}
        assert names == {"Nadia", "Omar"}

    async def test_blank_search_is_noop(self):
        query = select(Employee)
        assert apply_search(query, Employee, "   ", ["first_name"]) is query
        assert apply_search(query, Employee, "x", ["no_such_column"]) is query


class TestApplySorting:
    """Tests for apply_sorting utility."""

    async def test_sort_ascending_and_descending(self, db: AsyncSession, org):
        for name in ("Charlie", "Alice", "Bob"):
            await _seed_employee(db, org.id, first_name=name, email=f"{name.lower()}@acme.example")

        asc = (await db.execute(apply_sorting(select(Employee), Employee, "first_name"))).scalars().all()
        desc = (await db.execute(apply_sorting(select(Employee), Employee, "-first_name"))).scalars().all()
        assert [e.first_name for e in asc] == ["Alice", "Bob", "Charlie"]
        assert [e.first_name for e in desc] == ["Charlie", "Bob", "Alice"]

    def test_sort_none_or_unknown_is_noop(self):
        query = select(Employee)
        assert apply_sorting(query, Employee, None) is query
        assert apply_sorting(query, Employee, "nonexistent_field") is query


class TestGetColumn:

    def test_get_existing_column(self):
        assert _get_column(Employee, "first_name") is not None

    def test_property_is_not_a_column(self):
        assert _get_column(Employee, "full_name") is None
        assert _get_column(Employee, "totally_fake_column") is None


class TestPagination:
    """Tests for pagination helper."""

    async def test_paginate_with_sort(self, db: AsyncSession, org):
        for i in range(5):
            await _seed_employee(db, org.id, first_name=f"P{i}", email=f"p{i}@acme.example")

        params = PaginationParams(page=1, page_size=3, sort="-first_name")
        result = await paginate(db, select(Employee), params, model=Employee)
        assert [e.first_name for e in result.data] == ["P4", "P3", "P2"]
        assert result.meta.total == 5
        assert result.meta.total_pages == 2
        assert result.meta.has_next is True

    async def test_paginate_page_2(self, db: AsyncSession, org):
        for i in range(5):
            await _seed_employee(db, org.id, first_name=f"Q{i}", email=f"q{i}@acme.example")

        params = PaginationParams(page=2, page_size=3, sort=None)
        result = await paginate(db, select(Employee), params, model=Employee)
        assert len(result.data) == 2
        assert result.meta.has_prev is True
        assert result.meta.has_next is False

    async def test_paginate_empty_result(self, db: AsyncSession):
        query = select(Employee).where(Employee.first_name == "ZZZ_NONEXISTENT")
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, query, params, model=Employee)
        assert len(result.data) == 0
        assert result.meta.total == 0
        assert result.meta.total_pages == 0


# ═════════════════════════════════════════════════════════════════════
# TENANT-SCOPED CRUD
# ═════════════════════════════════════════════════════════════════════


class TestScopedCrud:

    async def test_scoped_select_hides_other_tenants_and_deleted(self, db: AsyncSession, org):
        other = Organization(**_make_organization(name="Other", slug="other"))
        db.add(other)
        await db.flush()
        mine = await _seed_employee(db, org.id, email="mine@acme.example")
        gone = await _seed_employee(db, org.id, email="gone@acme.example")
        await _seed_employee(db, other.id, email="theirs@other.example")
        gone.soft_delete()
        await db.flush()

        rows = (await db.execute(scoped_select(Employee, org.id))).scalars().all()
        assert [e.id for e in rows] == [mine.id]
        with_deleted = (await db.execute(
            scoped_select(Employee, org.id, include_deleted=True),
        )).scalars().all()
        assert len(with_deleted) == 2

    async def test_get_scoped_or_404(self, db: AsyncSession, org):
        emp = await _seed_employee(db, org.id)
        assert (await get_scoped_or_404(db, Employee, emp.id, org.id)).id == emp.id
        with pytest.raises(NotFoundException):
            await get_scoped_or_404(db, Employee, emp.id, uuid.uuid4())

    async def test_ensure_exists(self, db: AsyncSession, org):
        assert await ensure_exists(db, Department, None, org.id, "department_id") is None
        with pytest.raises(ValidationException) as exc:
            await ensure_exists(db, Department, uuid.uuid4(), org.id, "department_id")
        assert "department_id" in exc.value.errors

    async def test_ensure_unique(self, db: AsyncSession, org):
        emp = await _seed_employee(db, org.id, email="Dup@acme.example")
        with pytest.raises(ConflictError):
            await ensure_unique(db, Employee, org.id, "email", "dup@acme.example", case_insensitive=True)
        # Excluding the row itself passes
        await ensure_unique(
            db, Employee, org.id, "email", "dup@acme.example",
            exclude_id=emp.id, case_insensitive=True,
        )

    async def test_apply_changes_returns_old_values(self, db: AsyncSession, org):
        emp = await _seed_employee(db, org.id, first_name="Before")
        actor = uuid.uuid4()
        old = apply_changes(emp, {"first_name": "After"}, actor_id=actor)
        assert old == {"first_name": "Before"}
        assert emp.first_name == "After"
        assert emp.updated_by == actor


# ═════════════════════════════════════════════════════════════════════
# DATES / ERRORS
# ═════════════════════════════════════════════════════════════════════


def test_ensure_utc_attaches_timezone():
    naive = datetime(2025, 3, 1, 9, 0)
    assert ensure_utc(naive).tzinfo == timezone.utc
    assert ensure_utc(None) is None


def test_hours_between():
    start = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert hours_between(start, start + timedelta(hours=7, minutes=45)) == 7.75


async def test_not_found_is_problem_json(client, hr_headers):
    resp = await client.get(f"/api/v1/hris/departments/{uuid.uuid4()}", headers=hr_headers)
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["status"] == 404
    assert body["type"].endswith("/not-found")


async def test_request_validation_is_problem_json(client, hr_headers):
    resp = await client.get("/api/v1/hris/departments/not-a-uuid", headers=hr_headers)
    assert resp.status_code == 422
    assert "department_id" in resp.json()["errors"]


async def test_health_check(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
