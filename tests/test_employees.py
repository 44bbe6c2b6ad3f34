"""Employee module test suite — CRUD, search, pagination, filters,
validation errors, soft delete and tenant isolation.

Tests exercise the service layer and the HTTP API (via router).
Uses the shared conftest.py pattern with in-memory SQLite.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import select

from workforce.common.audit import AuditTrail
from workforce.common.constants import UserRole
from workforce.common.exceptions import ConflictError, ValidationException
from workforce.core_hr.schemas import EmployeeCreate
from workforce.core_hr.service import EmployeeService
from workforce.employment.models import EmploymentHistory
from tests.conftest import TestSessionFactory, create_employee, make_auth_headers

BASE = "/api/v1/hris/employees"


def _payload(**overrides) -> dict:
    body = {
        "employee_number": "E-1001",
        "first_name": "Maria",
        "last_name": "Lopez",
        "email": "Maria.Lopez@acme.example",
        "hire_date": "2025-02-01",
        "job_title": "Accountant",
    }
    body.update(overrides)
    return body


# ═════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════


class TestCreateEmployee:

    async def test_create_employee(self, client, hr_headers, test_department):
        resp = await client.post(
            BASE, json=_payload(department_id=str(test_department["id"])), headers=hr_headers,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["email"] == "maria.lopez@acme.example"
        assert data["employment_status"] == "active"
        assert data["department_id"] == str(test_department["id"])

    async def test_create_opens_employment_history(self, client, hr_headers, test_employee):
        resp = await client.post(BASE, json=_payload(), headers=hr_headers)
        emp_id = uuid.UUID(resp.json()["data"]["id"])

        async with TestSessionFactory() as session:
            rows = (await session.execute(
                select(EmploymentHistory).where(EmploymentHistory.employee_id == emp_id),
            )).scalars().all()
            audit = (await session.execute(
                select(AuditTrail).where(AuditTrail.entity_id == emp_id, AuditTrail.action == "create"),
            )).scalars().all()
        assert len(rows) == 1
        assert rows[0].is_current is True
        assert rows[0].start_date == date(2025, 2, 1)
        assert len(audit) == 1

    async def test_duplicate_email_case_insensitive(self, client, hr_headers, test_employee):
        resp = await client.post(
            BASE, json=_payload(email=test_employee["email"].upper()), headers=hr_headers,
        )
        assert resp.status_code == 409
        assert "email" in resp.json()["errors"]

    async def test_duplicate_employee_number(self, client, hr_headers, test_employee):
        resp = await client.post(
            BASE, json=_payload(employee_number=test_employee["employee_number"]), headers=hr_headers,
        )
        assert resp.status_code == 409

    async def test_unknown_department_rejected(self, client, hr_headers, test_employee):
        resp = await client.post(
            BASE, json=_payload(department_id=str(uuid.uuid4())), headers=hr_headers,
        )
        assert resp.status_code == 422
        assert "department_id" in resp.json()["errors"]

    async def test_birth_after_hire_rejected(self, client, hr_headers, test_employee):
        resp = await client.post(
            BASE, json=_payload(date_of_birth="2026-01-01"), headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_invalid_email_rejected(self, client, hr_headers, test_employee):
        resp = await client.post(BASE, json=_payload(email="not-an-email"), headers=hr_headers)
        assert resp.status_code == 422

    async def test_employee_role_cannot_create(self, client, auth_headers):
        resp = await client.post(BASE, json=_payload(), headers=auth_headers)
        assert resp.status_code == 403

    async def test_same_email_allowed_in_other_tenant(self, db, test_employee, other_organization):
        data = EmployeeCreate(**_payload(email=test_employee["email"]))
        emp = await EmployeeService.create_employee(db, other_organization["id"], data)
        assert emp.organization_id == other_organization["id"]

    async def test_service_conflict_raised(self, db, test_employee):
        data = EmployeeCreate(**_payload(email=test_employee["email"]))
        with pytest.raises(ConflictError):
            await EmployeeService.create_employee(db, test_employee["organization_id"], data)


# ═════════════════════════════════════════════════════════════════════
# READ / LIST
# ═════════════════════════════════════════════════════════════════════


class TestReadEmployees:

    async def test_list_paginated(self, client, db, manager_headers, test_employee):
        for i in range(3):
            await create_employee(
                db, organization_id=test_employee["organization_id"], email=f"p{i}@acme.example",
            )
        resp = await client.get(f"{BASE}?page=1&page_size=2", headers=manager_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 2
        assert body["meta"]["total"] == 4
        assert body["meta"]["has_next"] is True

    async def test_list_filters_by_status(self, client, db, manager_headers, test_employee):
        await create_employee(
            db, organization_id=test_employee["organization_id"],
            email="leave@acme.example", employment_status="on_leave",
        )
        resp = await client.get(f"{BASE}?employment_status=on_leave", headers=manager_headers)
        assert [e["email"] for e in resp.json()["data"]] == ["leave@acme.example"]

    async def test_list_excludes_other_tenant(
        self, client, db, manager_headers, test_employee, other_organization,
    ):
        await create_employee(db, organization_id=other_organization["id"], email="x@globex.example")
        resp = await client.get(BASE, headers=manager_headers)
        assert resp.json()["meta"]["total"] == 1

    async def test_search(self, client, other_employee, manager_headers):
        resp = await client.get(f"{BASE}/search?q=jane", headers=manager_headers)
        assert resp.status_code == 200
        assert [e["first_name"] for e in resp.json()["data"]] == ["Jane"]

    async def test_lookup_by_email_and_number(self, client, other_employee, manager_headers):
        by_email = await client.get(f"{BASE}/by-email/JANE.DOE@acme.example", headers=manager_headers)
        by_number = await client.get(
            f"{BASE}/by-number/{other_employee['employee_number']}", headers=manager_headers,
        )
        assert by_email.json()["data"]["id"] == str(other_employee["id"])
        assert by_number.json()["data"]["id"] == str(other_employee["id"])
        missing = await client.get(f"{BASE}/by-number/NOPE", headers=manager_headers)
        assert missing.status_code == 404

    async def test_get_detail_with_relationships(
        self, client, other_employee, test_employee, manager_headers,
    ):
        resp = await client.get(f"{BASE}/{other_employee['id']}", headers=manager_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["manager"]["id"] == str(test_employee["id"])
        assert data["department"]["department_name"] == "Engineering"
        assert data["location"]["location_name"] == "San Francisco HQ"

    async def test_employee_can_read_self_but_not_others(
        self, client, test_employee, other_employee, auth_headers,
    ):
        own = await client.get(f"{BASE}/{test_employee['id']}", headers=auth_headers)
        other = await client.get(f"{BASE}/{other_employee['id']}", headers=auth_headers)
        assert own.status_code == 200
        assert own.json()["data"]["direct_reports_count"] == 1
        assert other.status_code == 403

    async def test_direct_reports(self, client, test_employee, other_employee, auth_headers):
        resp = await client.get(f"{BASE}/{test_employee['id']}/direct-reports", headers=auth_headers)
        assert resp.status_code == 200
        assert [e["id"] for e in resp.json()["data"]] == [str(other_employee["id"])]


# ═════════════════════════════════════════════════════════════════════
# UPDATE / DELETE
# ═════════════════════════════════════════════════════════════════════


class TestUpdateEmployee:

    async def test_partial_update(self, client, other_employee, hr_headers):
        resp = await client.patch(
            f"{BASE}/{other_employee['id']}",
            json={"job_title": "Staff Engineer", "phone": "+1-555-0100"},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["job_title"] == "Staff Engineer"
        assert data["first_name"] == "Jane"

    async def test_cannot_be_own_manager(self, client, other_employee, hr_headers):
        resp = await client.patch(
            f"{BASE}/{other_employee['id']}",
            json={"manager_id": str(other_employee["id"])},
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_status_terminated_rejected(self, client, other_employee, hr_headers):
        resp = await client.patch(
            f"{BASE}/{other_employee['id']}",
            json={"employment_status": "terminated"},
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_null_required_field_rejected(self, db, other_employee):
        from workforce.core_hr.schemas import EmployeeUpdate

        with pytest.raises(ValidationException):
            await EmployeeService.update_employee(
                db, other_employee["organization_id"], other_employee["id"],
                EmployeeUpdate(first_name=None),
            )

    async def test_email_conflict(self, client, test_employee, other_employee, hr_headers):
        resp = await client.patch(
            f"{BASE}/{other_employee['id']}",
            json={"email": test_employee["email"]},
            headers=hr_headers,
        )
        assert resp.status_code == 409


class TestDeleteEmployee:

    async def test_soft_delete_hides_employee(self, client, other_employee, hr_headers):
        resp = await client.delete(f"{BASE}/{other_employee['id']}", headers=hr_headers)
        assert resp.status_code == 200
        again = await client.get(f"{BASE}/{other_employee['id']}", headers=hr_headers)
        assert again.status_code == 404

    async def test_deleted_email_can_be_reused(self, client, other_employee, hr_headers):
        await client.delete(f"{BASE}/{other_employee['id']}", headers=hr_headers)
        resp = await client.post(
            BASE, json=_payload(email=other_employee["email"]), headers=hr_headers,
        )
        assert resp.status_code == 201

    async def test_manager_cannot_delete(self, client, other_employee, manager_headers):
        resp = await client.delete(f"{BASE}/{other_employee['id']}", headers=manager_headers)
        assert resp.status_code == 403

    async def test_other_tenant_cannot_see_employee(
        self, client, db, other_employee, other_organization,
    ):
        outsider = await create_employee(
            db, organization_id=other_organization["id"], email="boss@globex.example",
        )
        headers = await make_auth_headers(db, outsider, UserRole.hr_admin)
        resp = await client.get(f"{BASE}/{other_employee['id']}", headers=headers)
        assert resp.status_code == 404
