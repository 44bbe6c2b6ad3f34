"""Admin tests — role management and audit trail queries."""

from __future__ import annotations

import uuid

BASE = "/api/v1/admin"


class TestRoles:

    async def test_list_roles(self, client, hr_headers, test_employee, other_employee):
        resp = await client.get(f"{BASE}/roles", headers=hr_headers)
        assert resp.status_code == 200
        rows = resp.json()
        assert [r["display_name"] for r in rows] == ["Jane Doe", "Test User"]
        assert {r["role"] for r in rows} == {"employee"}

    async def test_assign_and_replace_role(self, client, hr_headers, other_employee):
        resp = await client.put(
            f"{BASE}/roles",
            json={"employee_id": str(other_employee["id"]), "role": "payroll_admin"},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "payroll_admin"

        await client.put(
            f"{BASE}/roles",
            json={"employee_id": str(other_employee["id"]), "role": "manager"},
            headers=hr_headers,
        )
        rows = (await client.get(f"{BASE}/roles", headers=hr_headers)).json()
        jane = next(r for r in rows if r["employee_id"] == str(other_employee["id"]))
        assert jane["role"] == "manager"

    async def test_demote_to_employee(self, client, hr_headers, other_employee):
        body = {"employee_id": str(other_employee["id"])}
        await client.put(f"{BASE}/roles", json={**body, "role": "manager"}, headers=hr_headers)
        await client.put(f"{BASE}/roles", json={**body, "role": "employee"}, headers=hr_headers)
        rows = (await client.get(f"{BASE}/roles", headers=hr_headers)).json()
        jane = next(r for r in rows if r["employee_id"] == str(other_employee["id"]))
        assert jane["role"] == "employee"

    async def test_only_system_admin_grants_system_admin(
        self, client, hr_headers, admin_headers, other_employee,
    ):
        body = {"employee_id": str(other_employee["id"]), "role": "system_admin"}
        assert (await client.put(f"{BASE}/roles", json=body, headers=hr_headers)).status_code == 403
        assert (await client.put(f"{BASE}/roles", json=body, headers=admin_headers)).status_code == 200

    async def test_unknown_employee(self, client, hr_headers, test_employee):
        resp = await client.put(
            f"{BASE}/roles", json={"employee_id": str(uuid.uuid4()), "role": "manager"}, headers=hr_headers,
        )
        assert resp.status_code == 404

    async def test_lower_roles_blocked(self, client, manager_headers, payroll_headers):
        assert (await client.get(f"{BASE}/roles", headers=manager_headers)).status_code == 403
        assert (await client.get(f"{BASE}/roles", headers=payroll_headers)).status_code == 403


class TestAuditTrail:

    async def test_role_change_is_audited(self, client, hr_headers, test_employee, other_employee):
        await client.put(
            f"{BASE}/roles",
            json={"employee_id": str(other_employee["id"]), "role": "manager"},
            headers=hr_headers,
        )
        resp = await client.get(f"{BASE}/audit-trail?action=assign_role", headers=hr_headers)
        entries = resp.json()["data"]
        assert len(entries) == 1
        assert entries[0]["entity_id"] == str(other_employee["id"])
        assert entries[0]["actor_id"] == str(test_employee["id"])
        assert entries[0]["old_values"] == {"role": "employee"}
        assert entries[0]["new_values"] == {"role": "manager"}
        assert resp.json()["meta"]["total"] == 1

    async def test_filters(self, client, hr_headers, test_employee):
        created = await client.post(
            "/api/v1/hris/contracts",
            json={
                "contract_number": "C-1",
                "employee_id": str(test_employee["id"]),
                "contract_type": "permanent",
                "start_date": "2024-01-15",
            },
            headers=hr_headers,
        )
        contract_id = created.json()["data"]["id"]
        await client.post(f"/api/v1/hris/contracts/{contract_id}/activate", headers=hr_headers)

        by_entity = await client.get(f"{BASE}/audit-trail?entity_id={contract_id}", headers=hr_headers)
        assert len(by_entity.json()["data"]) == 2

        recent = await client.get(f"{BASE}/audit-trail?from_date=2000-01-01", headers=hr_headers)
        assert len(recent.json()["data"]) >= 2
        ancient = await client.get(f"{BASE}/audit-trail?to_date=2000-01-01", headers=hr_headers)
        assert ancient.json()["data"] == []

    async def test_manager_cannot_read(self, client, manager_headers):
        resp = await client.get(f"{BASE}/audit-trail", headers=manager_headers)
        assert resp.status_code == 403
