"""Department and location API tests — CRUD, uniqueness, deletion guards, stats."""

from __future__ import annotations

import uuid

from tests.conftest import create_employee

DEPARTMENTS = "/api/v1/hris/departments"
LOCATIONS = "/api/v1/hris/locations"


# ═════════════════════════════════════════════════════════════════════
# DEPARTMENTS
# ═════════════════════════════════════════════════════════════════════


class TestDepartments:

    async def test_list_with_employee_counts(self, client, test_employee, manager_headers):
        resp = await client.get(DEPARTMENTS, headers=manager_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data) == 1
        assert data[0]["department_name"] == "Engineering"
        assert data[0]["employee_count"] == 1

    async def test_create_department(self, client, hr_headers, test_location):
        resp = await client.post(
            DEPARTMENTS,
            json={
                "department_name": "Finance",
                "department_code": "FIN",
                "location_id": str(test_location["id"]),
                "cost_center": "CC-200",
            },
            headers=hr_headers,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["department_code"] == "FIN"
        assert data["employee_count"] == 0

    async def test_duplicate_name_case_insensitive(self, client, hr_headers, test_department):
        resp = await client.post(
            DEPARTMENTS, json={"department_name": "ENGINEERING"}, headers=hr_headers,
        )
        assert resp.status_code == 409

    async def test_duplicate_code(self, client, hr_headers, test_department):
        resp = await client.post(
            DEPARTMENTS,
            json={"department_name": "Platform", "department_code": "ENG"},
            headers=hr_headers,
        )
        assert resp.status_code == 409

    async def test_subdepartment_and_parent_guards(self, client, hr_headers, test_department):
        child = await client.post(
            DEPARTMENTS,
            json={"department_name": "Platform", "parent_department_id": str(test_department["id"])},
            headers=hr_headers,
        )
        assert child.status_code == 201
        child_id = child.json()["data"]["id"]

        self_parent = await client.patch(
            f"{DEPARTMENTS}/{child_id}",
            json={"parent_department_id": child_id},
            headers=hr_headers,
        )
        assert self_parent.status_code == 422

        filtered = await client.get(
            f"{DEPARTMENTS}?parent_department_id={test_department['id']}", headers=hr_headers,
        )
        assert [d["department_name"] for d in filtered.json()["data"]] == ["Platform"]

    async def test_unknown_parent_rejected(self, client, hr_headers, test_employee):
        resp = await client.post(
            DEPARTMENTS,
            json={"department_name": "Ghost", "parent_department_id": str(uuid.uuid4())},
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_update_department(self, client, hr_headers, test_department):
        resp = await client.patch(
            f"{DEPARTMENTS}/{test_department['id']}",
            json={"description": "Builds the product"},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["description"] == "Builds the product"

    async def test_delete_blocked_with_employees(self, client, hr_headers, test_employee):
        resp = await client.delete(
            f"{DEPARTMENTS}/{test_employee['department_id']}", headers=hr_headers,
        )
        assert resp.status_code == 409

    async def test_delete_blocked_with_children(self, client, hr_headers, test_employee):
        parent = await client.post(DEPARTMENTS, json={"department_name": "Ops"}, headers=hr_headers)
        parent_id = parent.json()["data"]["id"]
        await client.post(
            DEPARTMENTS,
            json={"department_name": "Ops East", "parent_department_id": parent_id},
            headers=hr_headers,
        )
        resp = await client.delete(f"{DEPARTMENTS}/{parent_id}", headers=hr_headers)
        assert resp.status_code == 409
        assert "sub-departments" in resp.json()["detail"]

    async def test_delete_empty_department(self, client, hr_headers, test_employee):
        created = await client.post(DEPARTMENTS, json={"department_name": "Legal"}, headers=hr_headers)
        dept_id = created.json()["data"]["id"]
        resp = await client.delete(f"{DEPARTMENTS}/{dept_id}", headers=hr_headers)
        assert resp.status_code == 200
        assert (await client.get(f"{DEPARTMENTS}/{dept_id}", headers=hr_headers)).status_code == 404

    async def test_employee_role_cannot_list(self, client, auth_headers):
        resp = await client.get(DEPARTMENTS, headers=auth_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# LOCATIONS
# ═════════════════════════════════════════════════════════════════════


class TestLocations:

    async def test_create_and_lookup_by_code(self, client, hr_headers, test_employee):
        resp = await client.post(
            LOCATIONS,
            json={
                "location_name": "Berlin Office",
                "location_code": "BER",
                "city": "Berlin",
                "country": "DE",
                "timezone": "Europe/Berlin",
            },
            headers=hr_headers,
        )
        assert resp.status_code == 201
        by_code = await client.get(f"{LOCATIONS}/by-code/BER", headers=hr_headers)
        assert by_code.json()["data"]["location_name"] == "Berlin Office"

    async def test_country_must_be_two_letters(self, client, hr_headers, test_employee):
        resp = await client.post(
            LOCATIONS, json={"location_name": "Nowhere", "country": "USA"}, headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_duplicate_location_name(self, client, hr_headers, test_location):
        resp = await client.post(
            LOCATIONS, json={"location_name": "san francisco hq"}, headers=hr_headers,
        )
        assert resp.status_code == 409

    async def test_list_filters_by_country(self, client, hr_headers, test_employee):
        await client.post(
            LOCATIONS, json={"location_name": "Toronto", "country": "CA"}, headers=hr_headers,
        )
        resp = await client.get(f"{LOCATIONS}?country=CA", headers=hr_headers)
        assert [loc["location_name"] for loc in resp.json()["data"]] == ["Toronto"]

    async def test_primary_location_is_exclusive(self, client, hr_headers, test_location):
        other = await client.post(LOCATIONS, json={"location_name": "Austin"}, headers=hr_headers)
        other_id = other.json()["data"]["id"]

        await client.put(f"{LOCATIONS}/{test_location['id']}/primary", headers=hr_headers)
        await client.put(f"{LOCATIONS}/{other_id}/primary", headers=hr_headers)

        primary = await client.get(f"{LOCATIONS}/primary", headers=hr_headers)
        assert primary.json()["data"]["id"] == other_id
        first = await client.get(f"{LOCATIONS}/{test_location['id']}", headers=hr_headers)
        assert first.json()["data"]["is_primary"] is False

    async def test_no_primary_location(self, client, hr_headers, test_employee):
        resp = await client.get(f"{LOCATIONS}/primary", headers=hr_headers)
        assert resp.status_code == 200
        assert resp.json()["data"] is None

    async def test_location_stats(self, client, db, hr_headers, test_employee):
        await create_employee(
            db,
            organization_id=test_employee["organization_id"],
            email="leave@acme.example",
            location_id=test_employee["location_id"],
            employment_status="on_leave",
        )
        resp = await client.get(f"{LOCATIONS}/{test_employee['location_id']}/stats", headers=hr_headers)
        assert resp.status_code == 200
        stats = resp.json()["data"]
        assert stats["total_employees"] == 2
        assert stats["active_employees"] == 1
        assert stats["departments"] == 1

    async def test_delete_blocked_with_employees(self, client, hr_headers, test_employee):
        resp = await client.delete(f"{LOCATIONS}/{test_employee['location_id']}", headers=hr_headers)
        assert resp.status_code == 409

    async def test_update_and_delete_empty_location(self, client, hr_headers, test_employee):
        created = await client.post(LOCATIONS, json={"location_name": "Remote"}, headers=hr_headers)
        loc_id = created.json()["data"]["id"]
        patched = await client.patch(
            f"{LOCATIONS}/{loc_id}", json={"location_type": "remote"}, headers=hr_headers,
        )
        assert patched.json()["data"]["location_type"] == "remote"
        resp = await client.delete(f"{LOCATIONS}/{loc_id}", headers=hr_headers)
        assert resp.status_code == 200
