"""Scheduling tests — schedule lifecycle, shift overlap, ranges, visibility."""

from __future__ import annotations

import uuid
from datetime import time

import pytest

from workforce.schedules.service import _overlaps

BASE = "/api/v1/payroll/schedules"


@pytest.fixture
async def schedule(client, hr_headers) -> dict:
    resp = await client.post(
        BASE,
        json={"name": "Week 10", "start_date": "2025-03-03", "end_date": "2025-03-09"},
        headers=hr_headers,
    )
    assert resp.status_code == 201
    return resp.json()["data"]


async def _shift(client, headers, schedule_id, employee_id, start="09:00", end="17:00", day="2025-03-04"):
    return await client.post(
        f"{BASE}/{schedule_id}/shifts",
        json={
            "employee_id": str(employee_id),
            "shift_date": day,
            "start_time": start,
            "end_time": end,
            "break_minutes": 30,
        },
        headers=headers,
    )


class TestOverlap:

    def test_plain_overlap(self):
        assert _overlaps((time(9), time(17)), (time(16), time(20)))

    def test_adjacent_shifts_do_not_overlap(self):
        assert not _overlaps((time(9), time(17)), (time(17), time(21)))

    def test_overnight_shift(self):
        assert _overlaps((time(22), time(6)), (time(23), time(23, 30)))
        assert not _overlaps((time(22), time(6)), (time(12), time(16)))


class TestSchedules:

    async def test_create_starts_as_draft(self, schedule):
        assert schedule["status"] == "draft"

    async def test_end_before_start_rejected(self, client, hr_headers):
        resp = await client.post(
            BASE,
            json={"name": "Bad", "start_date": "2025-03-09", "end_date": "2025-03-03"},
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_publish_then_archive(self, client, hr_headers, schedule):
        published = await client.post(f"{BASE}/{schedule['id']}/publish", headers=hr_headers)
        assert published.json()["data"]["status"] == "published"

        again = await client.post(f"{BASE}/{schedule['id']}/publish", headers=hr_headers)
        assert again.status_code == 409

        archived = await client.post(f"{BASE}/{schedule['id']}/archive", headers=hr_headers)
        assert archived.json()["data"]["status"] == "archived"

        edit = await client.patch(f"{BASE}/{schedule['id']}", json={"name": "Late"}, headers=hr_headers)
        assert edit.status_code == 409

    async def test_only_draft_can_be_deleted(self, client, hr_headers, schedule, other_employee):
        await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        await client.post(f"{BASE}/{schedule['id']}/publish", headers=hr_headers)
        blocked = await client.delete(f"{BASE}/{schedule['id']}", headers=hr_headers)
        assert blocked.status_code == 409

    async def test_delete_draft_removes_shifts(self, client, hr_headers, schedule, other_employee):
        created = await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        resp = await client.delete(f"{BASE}/{schedule['id']}", headers=hr_headers)
        assert resp.status_code == 200
        gone = await client.get(f"{BASE}/shifts/{created.json()['data']['id']}", headers=hr_headers)
        assert gone.status_code == 404

    async def test_list_by_status(self, client, hr_headers, schedule):
        await client.post(
            BASE, json={"name": "Week 11", "start_date": "2025-03-10", "end_date": "2025-03-16"},
            headers=hr_headers,
        )
        await client.post(f"{BASE}/{schedule['id']}/publish", headers=hr_headers)
        resp = await client.get(f"{BASE}?status=published", headers=hr_headers)
        assert [s["name"] for s in resp.json()["data"]] == ["Week 10"]

    async def test_payroll_admin_reads_but_cannot_write(self, client, payroll_headers, hr_headers, schedule):
        assert (await client.get(BASE, headers=payroll_headers)).status_code == 200
        resp = await client.post(
            BASE, json={"name": "X", "start_date": "2025-03-10", "end_date": "2025-03-16"},
            headers=payroll_headers,
        )
        assert resp.status_code == 403


class TestShifts:

    async def test_add_shift_and_detail(self, client, hr_headers, schedule, other_employee):
        resp = await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        assert resp.status_code == 201
        assert resp.json()["data"]["status"] == "scheduled"

        detail = await client.get(f"{BASE}/{schedule['id']}", headers=hr_headers)
        shifts = detail.json()["data"]["shifts"]
        assert [s["start_time"] for s in shifts] == ["09:00:00"]

    async def test_overlapping_shift_rejected(self, client, hr_headers, schedule, other_employee):
        await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        resp = await _shift(client, hr_headers, schedule["id"], other_employee["id"], "16:00", "20:00")
        assert resp.status_code == 409
        assert "shift" in resp.json()["errors"]

    async def test_cancelled_shift_frees_the_slot(self, client, hr_headers, schedule, other_employee):
        first = await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        await client.post(f"{BASE}/shifts/{first.json()['data']['id']}/cancel", headers=hr_headers)
        resp = await _shift(client, hr_headers, schedule["id"], other_employee["id"], "10:00", "14:00")
        assert resp.status_code == 201

    async def test_shift_outside_schedule(self, client, hr_headers, schedule, other_employee):
        resp = await _shift(client, hr_headers, schedule["id"], other_employee["id"], day="2025-04-01")
        assert resp.status_code == 422
        assert "shift_date" in resp.json()["errors"]

    async def test_zero_length_shift(self, client, hr_headers, schedule, other_employee):
        resp = await _shift(client, hr_headers, schedule["id"], other_employee["id"], "09:00", "09:00")
        assert resp.status_code == 422

    async def test_unknown_employee(self, client, hr_headers, schedule):
        resp = await _shift(client, hr_headers, schedule["id"], uuid.uuid4())
        assert resp.status_code == 422

    async def test_status_transitions(self, client, hr_headers, schedule, other_employee):
        created = await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        shift_id = created.json()["data"]["id"]

        confirmed = await client.post(f"{BASE}/shifts/{shift_id}/confirm", headers=hr_headers)
        assert confirmed.json()["data"]["status"] == "confirmed"
        completed = await client.post(f"{BASE}/shifts/{shift_id}/complete", headers=hr_headers)
        assert completed.json()["data"]["status"] == "completed"

        cancel = await client.post(f"{BASE}/shifts/{shift_id}/cancel", headers=hr_headers)
        assert cancel.status_code == 409
        edit = await client.patch(f"{BASE}/shifts/{shift_id}", json={"notes": "x"}, headers=hr_headers)
        assert edit.status_code == 409

    async def test_move_shift_checks_overlap(self, client, hr_headers, schedule, other_employee):
        await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        second = await _shift(client, hr_headers, schedule["id"], other_employee["id"], day="2025-03-05")
        resp = await client.patch(
            f"{BASE}/shifts/{second.json()['data']['id']}",
            json={"shift_date": "2025-03-04"},
            headers=hr_headers,
        )
        assert resp.status_code == 409

    async def test_range_listing(self, client, hr_headers, schedule, other_employee, test_employee):
        await _shift(client, hr_headers, schedule["id"], other_employee["id"])
        await _shift(client, hr_headers, schedule["id"], test_employee["id"], day="2025-03-08")
        resp = await client.get(
            f"{BASE}/shifts?from_date=2025-03-03&to_date=2025-03-05", headers=hr_headers,
        )
        assert len(resp.json()["data"]) == 1

        inverted = await client.get(
            f"{BASE}/shifts?from_date=2025-03-05&to_date=2025-03-03", headers=hr_headers,
        )
        assert inverted.status_code == 422

    async def test_employee_sees_only_own_shifts(
        self, client, hr_headers, auth_headers, schedule, test_employee, other_employee,
    ):
        await _shift(client, hr_headers, schedule["id"], test_employee["id"])
        own = await client.get(f"{BASE}/shifts/employee/{test_employee['id']}", headers=auth_headers)
        other = await client.get(f"{BASE}/shifts/employee/{other_employee['id']}", headers=auth_headers)
        assert len(own.json()["data"]) == 1
        assert other.status_code == 403
