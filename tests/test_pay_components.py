"""Pay component tests — catalogue rules, employee assignments, amount math."""

from __future__ import annotations

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from workforce.pay_components.service import PayComponentService

BASE = "/api/v1/payroll/pay-components"


@pytest.fixture
async def meal_allowance(client, payroll_headers) -> dict:
    resp = await client.post(
        BASE,
        json={
            "code": "meal",
            "name": "Meal allowance",
            "component_type": "earning",
            "category": "allowance",
            "default_amount": "150.00",
        },
        headers=payroll_headers,
    )
    assert resp.status_code == 201
    return resp.json()["data"]


async def _assign(client, headers, employee_id, component_id, **overrides):
    body = {
        "employee_id": str(employee_id),
        "pay_component_id": str(component_id),
        "effective_from": "2025-01-01",
    }
    body.update(overrides)
    return await client.post(f"{BASE}/assignments", json=body, headers=headers)


class TestCatalogue:

    async def test_create_component(self, meal_allowance):
        assert meal_allowance["code"] == "MEAL"
        assert meal_allowance["calculation_type"] == "fixed_amount"
        assert meal_allowance["is_taxable"] is True

    async def test_category_must_match_type(self, client, payroll_headers, test_employee):
        resp = await client.post(
            BASE,
            json={"code": "BAD", "name": "Bad", "component_type": "earning", "category": "garnishment"},
            headers=payroll_headers,
        )
        assert resp.status_code == 422

    async def test_category_checked_on_update(self, client, payroll_headers, meal_allowance):
        resp = await client.patch(
            f"{BASE}/{meal_allowance['id']}", json={"component_type": "deduction"}, headers=payroll_headers,
        )
        assert resp.status_code == 422
        assert "category" in resp.json()["errors"]

    async def test_temporal_condition_validated(self, client, payroll_headers, test_employee):
        ok = await client.post(
            BASE,
            json={
                "code": "SUNDAY",
                "name": "Sunday premium",
                "component_type": "earning",
                "category": "other",
                "temporal_condition": {
                    "pattern_type": "day_of_week", "day_of_week": "sunday", "consecutive_count": 3,
                },
            },
            headers=payroll_headers,
        )
        missing = await client.post(
            BASE,
            json={
                "code": "BROKEN",
                "name": "Broken",
                "component_type": "earning",
                "category": "other",
                "temporal_condition": {"pattern_type": "day_of_week", "consecutive_count": 3},
            },
            headers=payroll_headers,
        )
        assert ok.status_code == 201
        assert ok.json()["data"]["temporal_condition"]["day_of_week"] == "sunday"
        assert missing.status_code == 422

    async def test_duplicate_code(self, client, payroll_headers, meal_allowance):
        resp = await client.post(
            BASE,
            json={"code": "Meal", "name": "Again", "component_type": "earning", "category": "allowance"},
            headers=payroll_headers,
        )
        assert resp.status_code == 409

    async def test_filter_by_type(self, client, payroll_headers, meal_allowance):
        await client.post(
            BASE,
            json={"code": "LOAN", "name": "Loan", "component_type": "deduction", "category": "loan"},
            headers=payroll_headers,
        )
        resp = await client.get(f"{BASE}?component_type=deduction", headers=payroll_headers)
        assert [c["code"] for c in resp.json()["data"]] == ["LOAN"]


class TestAssignments:

    async def test_assign_and_list(self, client, payroll_headers, meal_allowance, other_employee):
        resp = await _assign(client, payroll_headers, other_employee["id"], meal_allowance["id"], amount="200")
        assert resp.status_code == 201

        listed = await client.get(f"{BASE}/employees/{other_employee['id']}", headers=payroll_headers)
        assert len(listed.json()["data"]) == 1
        assert Decimal(listed.json()["data"][0]["amount"]) == Decimal("200")

    async def test_overlapping_assignment_rejected(
        self, client, payroll_headers, meal_allowance, other_employee,
    ):
        await _assign(client, payroll_headers, other_employee["id"], meal_allowance["id"])
        resp = await _assign(
            client, payroll_headers, other_employee["id"], meal_allowance["id"], effective_from="2025-06-01",
        )
        assert resp.status_code == 409

    async def test_ended_assignment_allows_new_one(
        self, client, payroll_headers, meal_allowance, other_employee,
    ):
        await _assign(
            client, payroll_headers, other_employee["id"], meal_allowance["id"], effective_to="2025-03-31",
        )
        resp = await _assign(
            client, payroll_headers, other_employee["id"], meal_allowance["id"], effective_from="2025-04-01",
        )
        assert resp.status_code == 201

    async def test_inactive_component_cannot_be_assigned(
        self, client, payroll_headers, meal_allowance, other_employee,
    ):
        await client.patch(f"{BASE}/{meal_allowance['id']}", json={"is_active": False}, headers=payroll_headers)
        resp = await _assign(client, payroll_headers, other_employee["id"], meal_allowance["id"])
        assert resp.status_code == 409

    async def test_update_assignment_range(self, client, payroll_headers, meal_allowance, other_employee):
        created = await _assign(client, payroll_headers, other_employee["id"], meal_allowance["id"])
        assignment_id = created.json()["data"]["id"]
        bad = await client.patch(
            f"{BASE}/assignments/{assignment_id}", json={"effective_to": "2024-12-31"}, headers=payroll_headers,
        )
        good = await client.patch(
            f"{BASE}/assignments/{assignment_id}", json={"rate": "2.5"}, headers=payroll_headers,
        )
        assert bad.status_code == 422
        assert Decimal(good.json()["data"]["rate"]) == Decimal("2.5")

    async def test_delete_component_blocked_by_assignment(
        self, client, payroll_headers, meal_allowance, other_employee,
    ):
        created = await _assign(client, payroll_headers, other_employee["id"], meal_allowance["id"])
        blocked = await client.delete(f"{BASE}/{meal_allowance['id']}", headers=payroll_headers)
        assert blocked.status_code == 409

        await client.delete(f"{BASE}/assignments/{created.json()['data']['id']}", headers=payroll_headers)
        resp = await client.delete(f"{BASE}/{meal_allowance['id']}", headers=payroll_headers)
        assert resp.status_code == 200

    async def test_unknown_component(self, client, payroll_headers, other_employee):
        resp = await _assign(client, payroll_headers, other_employee["id"], uuid.uuid4())
        assert resp.status_code == 422
        assert "pay_component_id" in resp.json()["errors"]


class TestComputeAmount:

    def _component(self, calculation_type, default_amount=None, default_rate=None):
        return SimpleNamespace(
            calculation_type=calculation_type, default_amount=default_amount, default_rate=default_rate,
        )

    def test_fixed_amount_prefers_assignment(self):
        assignment = SimpleNamespace(amount=Decimal("75"), rate=None)
        component = self._component("fixed_amount", default_amount=Decimal("50"))
        amount = PayComponentService.compute_amount(
            assignment, component, base_pay=Decimal("1000"), hours=Decimal("0"),
        )
        assert amount == Decimal("75.00")

    def test_fixed_amount_falls_back_to_default(self):
        assignment = SimpleNamespace(amount=None, rate=None)
        component = self._component("fixed_amount", default_amount=Decimal("50"))
        amount = PayComponentService.compute_amount(
            assignment, component, base_pay=Decimal("1000"), hours=Decimal("0"),
        )
        assert amount == Decimal("50.00")

    def test_percentage_of_base_pay(self):
        assignment = SimpleNamespace(amount=None, rate=None)
        component = self._component("percentage", default_rate=Decimal("12.5"))
        amount = PayComponentService.compute_amount(
            assignment, component, base_pay=Decimal("2000"), hours=Decimal("0"),
        )
        assert amount == Decimal("250.00")

    def test_hourly_rate(self):
        assignment = SimpleNamespace(amount=None, rate=Decimal("3.333"))
        component = self._component("hourly_rate")
        amount = PayComponentService.compute_amount(
            assignment, component, base_pay=Decimal("0"), hours=Decimal("10"),
        )
        assert amount == Decimal("33.33")
