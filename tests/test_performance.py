"""Performance review tests — workflow, validation, summary."""

from __future__ import annotations

import uuid

BASE = "/api/v1/hris/performance-reviews"


async def _review(client, headers, employee, reviewer, **overrides):
    body = {
        "employee_id": str(employee["id"]),
        "reviewer_id": str(reviewer["id"]),
        "review_type": "annual",
        "review_period_start": "2024-01-01",
        "review_period_end": "2024-12-31",
        "goals": [{"title": "Ship v2", "weight": 50}],
    }
    body.update(overrides)
    return await client.post(BASE, json=body, headers=headers)


class TestCreate:

    async def test_manager_creates_draft(self, client, manager_headers, test_employee, other_employee):
        resp = await _review(client, manager_headers, other_employee, test_employee)
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["status"] == "draft"
        assert data["goals"] == [{"title": "Ship v2", "weight": 50}]

    async def test_self_review_rejected(self, client, manager_headers, test_employee):
        resp = await _review(client, manager_headers, test_employee, test_employee)
        assert resp.status_code == 422

    async def test_rating_range(self, client, manager_headers, test_employee, other_employee):
        resp = await _review(client, manager_headers, other_employee, test_employee, overall_rating=6)
        assert resp.status_code == 422

    async def test_unknown_reviewer(self, client, manager_headers, other_employee):
        resp = await _review(client, manager_headers, other_employee, {"id": uuid.uuid4()})
        assert resp.status_code == 422
        assert "reviewer_id" in resp.json()["errors"]

    async def test_employee_cannot_write(self, client, auth_headers, test_employee, other_employee):
        resp = await _review(client, auth_headers, other_employee, test_employee)
        assert resp.status_code == 403


class TestWorkflow:

    async def test_edit_moves_to_in_progress(self, client, manager_headers, test_employee, other_employee):
        created = await _review(client, manager_headers, other_employee, test_employee)
        resp = await client.patch(
            f"{BASE}/{created.json()['data']['id']}", json={"strengths": "Ownership"}, headers=manager_headers,
        )
        assert resp.json()["data"]["status"] == "in_progress"

    async def test_update_cannot_make_self_review(self, client, manager_headers, test_employee, other_employee):
        created = await _review(client, manager_headers, other_employee, test_employee)
        resp = await client.patch(
            f"{BASE}/{created.json()['data']['id']}",
            json={"reviewer_id": str(other_employee["id"])},
            headers=manager_headers,
        )
        assert resp.status_code == 422

    async def test_submit_needs_rating(self, client, manager_headers, test_employee, other_employee):
        created = await _review(client, manager_headers, other_employee, test_employee)
        resp = await client.post(f"{BASE}/{created.json()['data']['id']}/submit", headers=manager_headers)
        assert resp.status_code == 422
        assert "overall_rating" in resp.json()["errors"]

    async def test_submit_then_complete(self, client, manager_headers, test_employee, other_employee):
        created = await _review(client, manager_headers, other_employee, test_employee, overall_rating=4)
        review_id = created.json()["data"]["id"]

        early = await client.post(f"{BASE}/{review_id}/complete", headers=manager_headers)
        assert early.status_code == 409

        submitted = await client.post(f"{BASE}/{review_id}/submit", headers=manager_headers)
        assert submitted.json()["data"]["submitted_at"] is not None

        completed = await client.post(
            f"{BASE}/{review_id}/complete", json={"employee_comments": "Agreed"}, headers=manager_headers,
        )
        data = completed.json()["data"]
        assert data["status"] == "completed"
        assert data["employee_comments"] == "Agreed"

        edit = await client.patch(f"{BASE}/{review_id}", json={"strengths": "x"}, headers=manager_headers)
        assert edit.status_code == 409
        cancel = await client.post(f"{BASE}/{review_id}/cancel", json={}, headers=manager_headers)
        assert cancel.status_code == 409

    async def test_cancel_and_delete(self, client, manager_headers, test_employee, other_employee):
        first = await _review(client, manager_headers, other_employee, test_employee)
        second = await _review(client, manager_headers, other_employee, test_employee, review_type="mid_year")

        cancelled = await client.post(
            f"{BASE}/{first.json()['data']['id']}/cancel", json={"reason": "Left team"}, headers=manager_headers,
        )
        assert cancelled.json()["data"]["status"] == "cancelled"
        blocked = await client.delete(f"{BASE}/{first.json()['data']['id']}", headers=manager_headers)
        assert blocked.status_code == 409

        deleted = await client.delete(f"{BASE}/{second.json()['data']['id']}", headers=manager_headers)
        assert deleted.status_code == 200

    async def test_summary_averages_completed(self, client, manager_headers, test_employee, other_employee):
        for rating in (4, 5):
            created = await _review(client, manager_headers, other_employee, test_employee, overall_rating=rating)
            review_id = created.json()["data"]["id"]
            await client.post(f"{BASE}/{review_id}/submit", headers=manager_headers)
            await client.post(f"{BASE}/{review_id}/complete", json={}, headers=manager_headers)
        await _review(client, manager_headers, other_employee, test_employee, overall_rating=1)

        resp = await client.get(f"{BASE}/employee/{other_employee['id']}/summary", headers=manager_headers)
        data = resp.json()["data"]
        assert data["total_reviews"] == 3
        assert data["by_status"] == {"completed": 2, "draft": 1}
        assert data["average_rating"] == 4.5

    async def test_filter_by_employee(self, client, manager_headers, test_employee, other_employee):
        await _review(client, manager_headers, other_employee, test_employee)
        resp = await client.get(f"{BASE}?employee_id={test_employee['id']}", headers=manager_headers)
        assert resp.json()["data"] == []
