"""Employment history tests — initial period, terminate, rehire eligibility, rehire."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from workforce.core_hr.models import Employee
from workforce.employment.models import EmploymentHistory
from tests.conftest import TestSessionFactory

EMPLOYEES = "/api/v1/hris/employees"


@pytest.fixture
async def hired(client, hr_headers, test_department) -> dict:
    """An employee created through the API, so an employment period exists."""
    resp = await client.post(
        EMPLOYEES,
        json={
            "employee_number": "E-2001",
            "first_name": "Sam",
            "last_name": "Reyes",
            "email": "sam.reyes@acme.example",
            "hire_date": "2024-03-01",
            "department_id": str(test_department["id"]),
            "job_title": "Analyst",
        },
        headers=hr_headers,
    )
    assert resp.status_code == 201
    return resp.json()["data"]


async def _terminate(client, headers, emp_id, **overrides):
    body = {
        "termination_date": "2025-06-30",
        "termination_reason": "resignation",
        "termination_notes": "Moving abroad",
    }
    body.update(overrides)
    return await client.post(f"{EMPLOYEES}/{emp_id}/terminate", json=body, headers=headers)


# ═════════════════════════════════════════════════════════════════════
# HISTORY
# ═════════════════════════════════════════════════════════════════════


async def test_current_period_after_hire(client, hired, manager_headers):
    resp = await client.get(
        f"{EMPLOYEES}/{hired['id']}/employment-history/current", headers=manager_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["is_current"] is True
    assert data["start_date"] == "2024-03-01"
    assert data["job_title"] == "Analyst"


async def test_history_unknown_employee(client, manager_headers):
    resp = await client.get(
        f"{EMPLOYEES}/{uuid.uuid4()}/employment-history", headers=manager_headers,
    )
    assert resp.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# TERMINATE
# ═════════════════════════════════════════════════════════════════════


async def test_terminate_closes_period_and_employee(client, hired, hr_headers):
    resp = await _terminate(client, hr_headers, hired["id"], is_rehire_eligible=False)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["employee"]["employment_status"] == "terminated"
    assert data["employee"]["termination_date"] == "2025-06-30"
    assert data["employment_history"]["is_current"] is False
    assert data["employment_history"]["end_date"] == "2025-06-30"
    assert data["employment_history"]["termination_reason"] == "resignation"
    assert data["employment_history"]["is_rehire_eligible"] is False


async def test_terminate_twice_rejected(client, hired, hr_headers):
    await _terminate(client, hr_headers, hired["id"])
    resp = await _terminate(client, hr_headers, hired["id"])
    assert resp.status_code == 409
    assert "already terminated" in resp.json()["detail"]


async def test_terminate_before_start_rejected_without_writes(client, hired, hr_headers):
    resp = await _terminate(client, hr_headers, hired["id"], termination_date="2024-01-01")
    assert resp.status_code == 409

    async with TestSessionFactory() as session:
        emp = await session.get(Employee, uuid.UUID(hired["id"]))
        periods = (await session.execute(
            select(EmploymentHistory).where(EmploymentHistory.employee_id == emp.id),
        )).scalars().all()
    assert emp.employment_status == "active"
    assert [p.is_current for p in periods] == [True]


async def test_terminate_without_period_rejected(client, other_employee, hr_headers):
    """Fixture employees are inserted directly and have no employment period."""
    resp = await _terminate(client, hr_headers, other_employee["id"])
    assert resp.status_code == 409
    assert "No active employment record" in resp.json()["detail"]


async def test_terminate_invalid_reason(client, hired, hr_headers):
    resp = await _terminate(client, hr_headers, hired["id"], termination_reason="vanished")
    assert resp.status_code == 422


async def test_manager_cannot_terminate(client, hired, manager_headers):
    resp = await _terminate(client, manager_headers, hired["id"])
    assert resp.status_code == 403


async def test_terminated_employee_cannot_log_in(client, hired, hr_headers, mock_google_oauth):
    await _terminate(client, hr_headers, hired["id"])
    with mock_google_oauth(email=hired["email"]):
        resp = await client.post(
            "/api/v1/auth/google",
            json={"code": "c", "redirect_uri": "http://localhost:3000/callback"},
        )
    assert resp.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# REHIRE
# ═════════════════════════════════════════════════════════════════════


async def test_eligibility_for_active_employee(client, hired, hr_headers):
    resp = await client.get(f"{EMPLOYEES}/{hired['id']}/rehire-eligibility", headers=hr_headers)
    data = resp.json()["data"]
    assert data["eligible"] is False
    assert data["reason"] == "Employee is not terminated"


async def test_eligibility_after_termination(client, hired, hr_headers):
    await _terminate(client, hr_headers, hired["id"])
    resp = await client.get(f"{EMPLOYEES}/{hired['id']}/rehire-eligibility", headers=hr_headers)
    data = resp.json()["data"]
    assert data["eligible"] is True
    assert data["termination_reason"] == "resignation"
    assert data["termination_date"] == "2025-06-30"


async def test_rehire_opens_new_period(client, hired, hr_headers):
    await _terminate(client, hr_headers, hired["id"])
    resp = await client.post(
        f"{EMPLOYEES}/{hired['id']}/rehire",
        json={"rehire_date": "2026-01-05", "job_title": "Senior Analyst", "rehire_notes": "Welcome back"},
        headers=hr_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["employee"]["employment_status"] == "active"
    assert data["employee"]["hire_date"] == "2026-01-05"
    assert data["employee"]["termination_date"] is None
    assert data["employee"]["department_id"] == hired["department_id"]
    assert data["employment_history"]["is_rehire"] is True
    assert data["employment_history"]["job_title"] == "Senior Analyst"

    history = await client.get(
        f"{EMPLOYEES}/{hired['id']}/employment-history", headers=hr_headers,
    )
    periods = history.json()["data"]
    assert [p["is_current"] for p in periods] == [True, False]


async def test_rehire_not_eligible(client, hired, hr_headers):
    await _terminate(client, hr_headers, hired["id"], is_rehire_eligible=False)
    resp = await client.post(
        f"{EMPLOYEES}/{hired['id']}/rehire", json={"rehire_date": "2026-01-05"}, headers=hr_headers,
    )
    assert resp.status_code == 409
    assert "not eligible" in resp.json()["detail"]


async def test_rehire_date_must_follow_termination(client, hired, hr_headers):
    await _terminate(client, hr_headers, hired["id"])
    resp = await client.post(
        f"{EMPLOYEES}/{hired['id']}/rehire", json={"rehire_date": "2025-06-30"}, headers=hr_headers,
    )
    assert resp.status_code == 409


async def test_rehire_active_employee_rejected(client, hired, hr_headers):
    resp = await client.post(
        f"{EMPLOYEES}/{hired['id']}/rehire", json={"rehire_date": "2026-01-05"}, headers=hr_headers,
    )
    assert resp.status_code == 409


async def test_rehire_unknown_department_rejected(client, hired, hr_headers):
    await _terminate(client, hr_headers, hired["id"])
    resp = await client.post(
        f"{EMPLOYEES}/{hired['id']}/rehire",
        json={"rehire_date": "2026-01-05", "department_id": str(uuid.uuid4())},
        headers=hr_headers,
    )
    assert resp.status_code == 422
