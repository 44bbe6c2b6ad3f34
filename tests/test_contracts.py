"""Contract tests — CRUD, activation, termination, expiry window."""

from __future__ import annotations

import uuid
from datetime import date, timedelta

BASE = "/api/v1/hris/contracts"


async def _contract(client, headers, employee_id, **overrides):
    body = {
        "contract_number": f"C-{uuid.uuid4().hex[:6]}",
        "employee_id": str(employee_id),
        "contract_type": "permanent",
        "start_date": "2024-01-15",
        "salary_amount": "90000",
        "currency": "USD",
        "pay_frequency": "monthly",
    }
    body.update(overrides)
    return await client.post(BASE, json=body, headers=headers)


class TestCreate:

    async def test_create_draft(self, client, hr_headers, test_employee):
        resp = await _contract(client, hr_headers, test_employee["id"], contract_number="C-001")
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["status"] == "draft"
        assert data["contract_number"] == "C-001"

    async def test_duplicate_number(self, client, hr_headers, test_employee):
        await _contract(client, hr_headers, test_employee["id"], contract_number="C-001")
        resp = await _contract(client, hr_headers, test_employee["id"], contract_number="C-001")
        assert resp.status_code == 409
        assert "contract_number" in resp.json()["errors"]

    async def test_fixed_term_needs_end_date(self, client, hr_headers, test_employee):
        resp = await _contract(client, hr_headers, test_employee["id"], contract_type="fixed_term")
        assert resp.status_code == 422

    async def test_end_before_start(self, client, hr_headers, test_employee):
        resp = await _contract(client, hr_headers, test_employee["id"], end_date="2023-01-01")
        assert resp.status_code == 422

    async def test_unknown_employee(self, client, hr_headers, test_employee):
        resp = await _contract(client, hr_headers, uuid.uuid4())
        assert resp.status_code == 422
        assert "employee_id" in resp.json()["errors"]

    async def test_requires_contract_permission(self, client, manager_headers, payroll_headers, test_employee):
        assert (await _contract(client, manager_headers, test_employee["id"])).status_code == 403
        assert (await client.get(BASE, headers=payroll_headers)).status_code == 403


class TestLifecycle:

    async def test_activation_expires_previous(self, client, hr_headers, test_employee):
        first = await _contract(client, hr_headers, test_employee["id"])
        first_id = first.json()["data"]["id"]
        await client.post(f"{BASE}/{first_id}/activate", headers=hr_headers)

        second = await _contract(client, hr_headers, test_employee["id"], start_date="2025-01-01")
        activated = await client.post(f"{BASE}/{second.json()['data']['id']}/activate", headers=hr_headers)
        assert activated.json()["data"]["status"] == "active"

        previous = await client.get(f"{BASE}/{first_id}", headers=hr_headers)
        assert previous.json()["data"]["status"] == "expired"

    async def test_activate_twice(self, client, hr_headers, test_employee):
        created = await _contract(client, hr_headers, test_employee["id"])
        contract_id = created.json()["data"]["id"]
        await client.post(f"{BASE}/{contract_id}/activate", headers=hr_headers)
        resp = await client.post(f"{BASE}/{contract_id}/activate", headers=hr_headers)
        assert resp.status_code == 409

    async def test_terminate(self, client, hr_headers, test_employee):
        created = await _contract(client, hr_headers, test_employee["id"])
        contract_id = created.json()["data"]["id"]

        draft = await client.post(
            f"{BASE}/{contract_id}/terminate", json={"termination_date": "2025-06-30"}, headers=hr_headers,
        )
        assert draft.status_code == 409

        await client.post(f"{BASE}/{contract_id}/activate", headers=hr_headers)
        too_early = await client.post(
            f"{BASE}/{contract_id}/terminate", json={"termination_date": "2023-06-30"}, headers=hr_headers,
        )
        assert too_early.status_code == 422

        resp = await client.post(
            f"{BASE}/{contract_id}/terminate",
            json={"termination_date": "2025-06-30", "termination_reason": "Restructuring"},
            headers=hr_headers,
        )
        data = resp.json()["data"]
        assert data["status"] == "terminated"
        assert data["termination_reason"] == "Restructuring"

        edit = await client.patch(f"{BASE}/{contract_id}", json={"terms": "x"}, headers=hr_headers)
        assert edit.status_code == 409

    async def test_update_validates_fixed_term(self, client, hr_headers, test_employee):
        created = await _contract(client, hr_headers, test_employee["id"])
        resp = await client.patch(
            f"{BASE}/{created.json()['data']['id']}", json={"contract_type": "fixed_term"}, headers=hr_headers,
        )
        assert resp.status_code == 422
        assert "end_date" in resp.json()["errors"]

    async def test_only_draft_deleted(self, client, hr_headers, test_employee):
        draft = await _contract(client, hr_headers, test_employee["id"])
        active = await _contract(client, hr_headers, test_employee["id"])
        await client.post(f"{BASE}/{active.json()['data']['id']}/activate", headers=hr_headers)

        assert (await client.delete(f"{BASE}/{draft.json()['data']['id']}", headers=hr_headers)).status_code == 200
        assert (await client.delete(f"{BASE}/{active.json()['data']['id']}", headers=hr_headers)).status_code == 409

    async def test_expiring_window(self, client, hr_headers, test_employee, other_employee):
        soon = await _contract(
            client, hr_headers, test_employee["id"],
            contract_type="fixed_term", end_date=(date.today() + timedelta(days=10)).isoformat(),
        )
        later = await _contract(
            client, hr_headers, other_employee["id"],
            contract_type="fixed_term", end_date=(date.today() + timedelta(days=200)).isoformat(),
        )
        for created in (soon, later):
            await client.post(f"{BASE}/{created.json()['data']['id']}/activate", headers=hr_headers)

        resp = await client.get(f"{BASE}/expiring?days=30", headers=hr_headers)
        assert [c["id"] for c in resp.json()["data"]] == [soon.json()["data"]["id"]]

    async def test_filter_by_status(self, client, hr_headers, test_employee):
        await _contract(client, hr_headers, test_employee["id"])
        active = await _contract(client, hr_headers, test_employee["id"])
        await client.post(f"{BASE}/{active.json()['data']['id']}/activate", headers=hr_headers)
        resp = await client.get(f"{BASE}?status=active", headers=hr_headers)
        assert [c["id"] for c in resp.json()["data"]] == [active.json()["data"]["id"]]
