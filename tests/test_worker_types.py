"""Worker type tests — templates, assignment rollover, bulk assign, counts."""

from __future__ import annotations

import uuid

import pytest

BASE = "/api/v1/payroll/worker-types"


@pytest.fixture
async def contractor(client, payroll_headers) -> dict:
    resp = await client.post(
        BASE,
        json={
            "name": "Contractor",
            "code": "ctr",
            "default_pay_frequency": "monthly",
            "default_payment_method": "wire",
            "benefits_eligible": False,
            "pto_eligible": False,
        },
        headers=payroll_headers,
    )
    assert resp.status_code == 201
    return resp.json()["data"]


async def _assign(client, headers, employee_id, worker_type_id, effective_from="2025-01-01"):
    return await client.post(
        f"{BASE}/assignments",
        json={
            "employee_id": str(employee_id),
            "worker_type_id": str(worker_type_id),
            "effective_from": effective_from,
        },
        headers=headers,
    )


class TestWorkerTypes:

    async def test_code_upper_cased(self, contractor):
        assert contractor["code"] == "CTR"
        assert contractor["benefits_eligible"] is False
        assert contractor["is_active"] is True

    async def test_duplicate_code(self, client, payroll_headers, contractor):
        resp = await client.post(
            BASE, json={"name": "Other", "code": "CTR"}, headers=payroll_headers,
        )
        assert resp.status_code == 409

    async def test_bad_code_pattern(self, client, payroll_headers, test_employee):
        resp = await client.post(
            BASE, json={"name": "Spaces", "code": "has space"}, headers=payroll_headers,
        )
        assert resp.status_code == 422

    async def test_list_and_search(self, client, payroll_headers, contractor):
        await client.post(BASE, json={"name": "Full Time", "code": "FT"}, headers=payroll_headers)
        resp = await client.get(f"{BASE}?search=contract", headers=payroll_headers)
        assert [w["code"] for w in resp.json()["data"]] == ["CTR"]

    async def test_deactivate(self, client, payroll_headers, contractor):
        resp = await client.patch(
            f"{BASE}/{contractor['id']}", json={"is_active": False}, headers=payroll_headers,
        )
        assert resp.json()["data"]["is_active"] is False
        inactive = await client.get(f"{BASE}?is_active=false", headers=payroll_headers)
        assert len(inactive.json()["data"]) == 1

    async def test_hr_admin_cannot_write(self, client, hr_headers, test_employee):
        resp = await client.post(BASE, json={"name": "X", "code": "X"}, headers=hr_headers)
        assert resp.status_code == 403


class TestAssignments:

    async def test_assign_and_rollover(self, client, payroll_headers, contractor, other_employee):
        full_time = await client.post(BASE, json={"name": "Full Time", "code": "FT"}, headers=payroll_headers)
        first = await _assign(client, payroll_headers, other_employee["id"], contractor["id"])
        assert first.status_code == 201

        second = await _assign(
            client, payroll_headers, other_employee["id"], full_time.json()["data"]["id"], "2025-04-01",
        )
        assert second.status_code == 201

        history = await client.get(
            f"{BASE}/employees/{other_employee['id']}/history", headers=payroll_headers,
        )
        rows = history.json()["data"]
        assert [r["is_current"] for r in rows] == [True, False]
        assert rows[1]["effective_to"] == "2025-03-31"

        current = await client.get(
            f"{BASE}/employees/{other_employee['id']}/current", headers=payroll_headers,
        )
        assert current.json()["data"]["worker_type_id"] == full_time.json()["data"]["id"]

    async def test_assignment_must_move_forward(
        self, client, payroll_headers, contractor, other_employee,
    ):
        await _assign(client, payroll_headers, other_employee["id"], contractor["id"], "2025-04-01")
        resp = await _assign(client, payroll_headers, other_employee["id"], contractor["id"], "2025-04-01")
        assert resp.status_code == 422
        assert "effective_from" in resp.json()["errors"]

    async def test_inactive_type_cannot_be_assigned(
        self, client, payroll_headers, contractor, other_employee,
    ):
        await client.patch(f"{BASE}/{contractor['id']}", json={"is_active": False}, headers=payroll_headers)
        resp = await _assign(client, payroll_headers, other_employee["id"], contractor["id"])
        assert resp.status_code == 409

    async def test_no_current_assignment(self, client, payroll_headers, other_employee):
        resp = await client.get(
            f"{BASE}/employees/{other_employee['id']}/current", headers=payroll_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"] is None

    async def test_bulk_assign_reports_per_employee(
        self, client, payroll_headers, contractor, test_employee, other_employee,
    ):
        ghost = uuid.uuid4()
        resp = await client.post(
            f"{BASE}/assignments/bulk",
            json={
                "worker_type_id": contractor["id"],
                "employee_ids": [str(test_employee["id"]), str(other_employee["id"]), str(ghost)],
                "effective_from": "2025-01-01",
            },
            headers=payroll_headers,
        )
        assert resp.status_code == 200
        results = resp.json()["data"]
        assert [r["success"] for r in results] == [True, True, False]
        assert results[2]["error"]

        counts = await client.get(f"{BASE}/counts", headers=payroll_headers)
        assert counts.json()["data"][0]["employee_count"] == 2

        members = await client.get(f"{BASE}/{contractor['id']}/employees", headers=payroll_headers)
        assert members.json()["meta"]["total"] == 2

    async def test_delete_blocked_while_assigned(
        self, client, payroll_headers, contractor, other_employee,
    ):
        await _assign(client, payroll_headers, other_employee["id"], contractor["id"])
        blocked = await client.delete(f"{BASE}/{contractor['id']}", headers=payroll_headers)
        assert blocked.status_code == 409

    async def test_delete_unused_type(self, client, payroll_headers, contractor):
        resp = await client.delete(f"{BASE}/{contractor['id']}", headers=payroll_headers)
        assert resp.status_code == 200
        assert (await client.get(f"{BASE}/{contractor['id']}", headers=payroll_headers)).status_code == 404
