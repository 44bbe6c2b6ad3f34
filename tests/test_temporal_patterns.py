"""Temporal pattern tests — consecutive runs, thresholds, combinations, preview."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest

from workforce.temporal_patterns.service import compare_value, count_consecutive

BASE = "/api/v1/payroll/temporal-patterns"


async def _approved(db, employee: dict, day: str, hours: str = "8", **extra) -> None:
    """Insert an approved time entry straight into the database."""
    from workforce.timesheets.models import TimeEntry

    worked = Decimal(hours)
    extra.setdefault("status", "approved")
    db.add(TimeEntry(
        organization_id=employee["organization_id"],
        employee_id=employee["id"],
        entry_date=date.fromisoformat(day),
        worked_hours=worked,
        regular_hours=worked,
        overtime_hours=Decimal("0"),
        **extra,
    ))
    await db.commit()


SUNDAYS = {"pattern_type": "day_of_week", "day_of_week": "sunday", "consecutive_count": 3}


class TestHelpers:

    def test_count_consecutive_weekly(self):
        dates = [date(2025, 3, 2), date(2025, 3, 9), date(2025, 3, 16), date(2025, 3, 30), date(2025, 3, 9)]
        result = count_consecutive(dates, 7)
        assert result["max_consecutive"] == 3
        assert [r["count"] for r in result["consecutive_runs"]] == [3]
        assert len(result["matching_dates"]) == 4

    def test_count_consecutive_empty(self):
        assert count_consecutive([], 1)["max_consecutive"] == 0

    def test_single_date_has_no_runs(self):
        result = count_consecutive([date(2025, 1, 1)], 1)
        assert result["max_consecutive"] == 1
        assert result["consecutive_runs"] == []

    @pytest.mark.parametrize(
        ("value", "operator", "threshold", "expected"),
        [
            (41, "greater_than", 40, True),
            (40, "greater_than", 40, False),
            (40.005, "equals", 40, True),
            (40, "greater_or_equal", 40, True),
            (39, "less_than", 40, True),
            (41, "less_or_equal", 40, False),
        ],
    )
    def test_compare_value(self, value, operator, threshold, expected):
        assert compare_value(value, operator, threshold) is expected


class TestValidate:

    async def test_valid_pattern_normalized(self, client, payroll_headers):
        resp = await client.post(f"{BASE}/validate", json=SUNDAYS, headers=payroll_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["lookback_period_days"] == 90

    async def test_missing_type_field(self, client, payroll_headers):
        resp = await client.post(
            f"{BASE}/validate",
            json={"pattern_type": "hours_threshold", "consecutive_count": 5, "hours_threshold": 40},
            headers=payroll_headers,
        )
        assert resp.status_code == 422

    async def test_nested_pattern_validated(self, client, payroll_headers):
        resp = await client.post(
            f"{BASE}/validate",
            json={
                "pattern_type": "combined",
                "consecutive_count": 1,
                "logical_operator": "AND",
                "combined_patterns": [{"pattern_type": "station", "consecutive_count": 2}],
            },
            headers=payroll_headers,
        )
        assert resp.status_code == 422

    async def test_requires_pay_component_access(self, client, hr_headers):
        resp = await client.post(f"{BASE}/validate", json=SUNDAYS, headers=hr_headers)
        assert resp.status_code == 403


class TestEvaluate:

    async def test_consecutive_sundays(self, client, db, payroll_headers, test_employee):
        for day in ("2025-03-02", "2025-03-09", "2025-03-16", "2025-03-30", "2025-03-17"):
            await _approved(db, test_employee, day)
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(test_employee["id"]), "pattern": SUNDAYS, "as_of_date": "2025-04-01"},
            headers=payroll_headers,
        )
        data = resp.json()["data"]
        assert data["qualified"] is True
        assert data["metadata"]["actual_max_consecutive"] == 3
        assert data["metadata"]["total_matching_days"] == 4

    async def test_lookback_window_limits_history(self, client, db, payroll_headers, test_employee):
        for day in ("2025-03-02", "2025-03-09", "2025-03-16"):
            await _approved(db, test_employee, day)
        pattern = {**SUNDAYS, "lookback_period_days": 10}
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(test_employee["id"]), "pattern": pattern, "as_of_date": "2025-03-20"},
            headers=payroll_headers,
        )
        assert resp.json()["data"]["qualified"] is False

    async def test_unapproved_entries_ignored(self, client, db, payroll_headers, test_employee):
        for day in ("2025-03-02", "2025-03-09"):
            await _approved(db, test_employee, day)
        await _approved(db, test_employee, "2025-03-16", status="draft")
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(test_employee["id"]), "pattern": SUNDAYS, "as_of_date": "2025-04-01"},
            headers=payroll_headers,
        )
        assert resp.json()["data"]["qualified"] is False

    async def test_hours_threshold_windows(self, client, db, payroll_headers, test_employee):
        for day, hours in (("2025-03-03", "10"), ("2025-03-04", "10"), ("2025-03-05", "4")):
            await _approved(db, test_employee, day, hours)
        pattern = {
            "pattern_type": "hours_threshold",
            "consecutive_count": 2,
            "hours_threshold": 18,
            "comparison_operator": "greater_than",
        }
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(test_employee["id"]), "pattern": pattern, "as_of_date": "2025-03-31"},
            headers=payroll_headers,
        )
        data = resp.json()["data"]
        assert data["qualified"] is True
        assert data["metadata"]["qualifying_periods"] == [
            {"start_date": "2025-03-03", "end_date": "2025-03-04", "total_hours": 20.0, "days_in_period": 2},
        ]

    async def test_shift_type_runs(self, client, db, payroll_headers, test_employee):
        night = uuid.uuid4()
        for day in ("2025-03-03", "2025-03-04", "2025-03-05"):
            await _approved(db, test_employee, day, shift_type_id=night)
        await _approved(db, test_employee, "2025-03-06")
        pattern = {"pattern_type": "shift_type", "shift_type_id": str(night), "consecutive_count": 3}
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(test_employee["id"]), "pattern": pattern, "as_of_date": "2025-03-31"},
            headers=payroll_headers,
        )
        assert resp.json()["data"]["qualified"] is True

    async def test_station_uses_worked_shifts(self, client, hr_headers, payroll_headers, test_employee):
        station = uuid.uuid4()
        schedule = await client.post(
            "/api/v1/payroll/schedules",
            json={"name": "March", "start_date": "2025-03-01", "end_date": "2025-03-31"},
            headers=hr_headers,
        )
        schedule_id = schedule.json()["data"]["id"]
        for day in ("2025-03-03", "2025-03-04", "2025-03-05"):
            shift = await client.post(
                f"/api/v1/payroll/schedules/{schedule_id}/shifts",
                json={
                    "employee_id": str(test_employee["id"]),
                    "shift_date": day,
                    "start_time": "08:00",
                    "end_time": "16:00",
                    "station_id": str(station),
                },
                headers=hr_headers,
            )
            if day != "2025-03-05":
                await client.post(
                    f"/api/v1/payroll/schedules/shifts/{shift.json()['data']['id']}/confirm", headers=hr_headers,
                )

        pattern = {"pattern_type": "station", "station_id": str(station), "consecutive_count": 2}
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(test_employee["id"]), "pattern": pattern, "as_of_date": "2025-03-31"},
            headers=payroll_headers,
        )
        data = resp.json()["data"]
        assert data["qualified"] is True
        assert data["metadata"]["actual_max_consecutive"] == 2

    @pytest.mark.parametrize(("operator", "expected"), [("AND", False), ("OR", True)])
    async def test_combined(self, client, db, payroll_headers, test_employee, operator, expected):
        for day in ("2025-03-02", "2025-03-09", "2025-03-16"):
            await _approved(db, test_employee, day)
        pattern = {
            "pattern_type": "combined",
            "consecutive_count": 1,
            "logical_operator": operator,
            "combined_patterns": [
                SUNDAYS,
                {"pattern_type": "hours_threshold", "consecutive_count": 1,
                 "hours_threshold": 12, "comparison_operator": "greater_or_equal"},
            ],
        }
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(test_employee["id"]), "pattern": pattern, "as_of_date": "2025-03-31"},
            headers=payroll_headers,
        )
        data = resp.json()["data"]
        assert data["qualified"] is expected
        assert [r["qualified"] for r in data["metadata"]["sub_pattern_results"]] == [True, False]

    async def test_unknown_employee(self, client, payroll_headers, test_employee):
        resp = await client.post(
            f"{BASE}/evaluate",
            json={"employee_id": str(uuid.uuid4()), "pattern": SUNDAYS, "as_of_date": "2025-04-01"},
            headers=payroll_headers,
        )
        assert resp.status_code == 422
        assert "employee_id" in resp.json()["errors"]


class TestPreview:

    async def test_preview_several_workers(self, client, db, payroll_headers, test_employee, other_employee):
        for day in ("2025-03-02", "2025-03-09", "2025-03-16"):
            await _approved(db, test_employee, day)
        missing = uuid.uuid4()
        resp = await client.post(
            f"{BASE}/test",
            json={
                "pattern": SUNDAYS,
                "employee_ids": [str(test_employee["id"]), str(other_employee["id"]), str(missing)],
                "as_of_date": "2025-03-31",
            },
            headers=payroll_headers,
        )
        data = resp.json()["data"]
        assert data["total_tested"] == 3
        assert data["qualified_count"] == 1
        assert data["qualified_workers"][0]["full_name"] == "Test User"
        unknown = [r for r in data["all_results"] if r["employee_id"] == str(missing)][0]
        assert unknown["full_name"] == "Unknown"
        assert unknown["qualified"] is False
