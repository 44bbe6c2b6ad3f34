"""Compensation tests — current record rollover, history, defaults, VIP gate."""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import select

from workforce.compensation.models import EmployeeCompensation
from tests.conftest import TestSessionFactory

BASE = "/api/v1/payroll/compensation"


def _payload(employee_id, **overrides) -> dict:
    body = {
        "employee_id": str(employee_id),
        "compensation_type": "salary",
        "amount": "85000.00",
        "pay_frequency": "monthly",
        "effective_from": "2025-01-01",
    }
    body.update(overrides)
    return body


class TestCreateCompensation:

    async def test_create_defaults(self, client, other_employee, payroll_headers):
        resp = await client.post(BASE, json=_payload(other_employee["id"]), headers=payroll_headers)
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["is_current"] is True
        assert data["currency"] == "USD"
        assert Decimal(data["amount"]) == Decimal("85000")
        assert Decimal(data["overtime_multiplier"]) == Decimal("1.5")

    async def test_currency_upper_cased(self, client, other_employee, payroll_headers):
        resp = await client.post(
            BASE, json=_payload(other_employee["id"], currency="eur"), headers=payroll_headers,
        )
        assert resp.json()["data"]["currency"] == "EUR"

    async def test_new_record_closes_previous(self, client, other_employee, payroll_headers):
        first = await client.post(BASE, json=_payload(other_employee["id"]), headers=payroll_headers)
        second = await client.post(
            BASE,
            json=_payload(other_employee["id"], amount="92000.00", effective_from="2025-07-01"),
            headers=payroll_headers,
        )
        assert second.status_code == 201

        old = await client.get(f"{BASE}/{first.json()['data']['id']}", headers=payroll_headers)
        assert old.json()["data"]["is_current"] is False
        assert old.json()["data"]["effective_to"] == "2025-06-30"

        current = await client.get(
            f"{BASE}/employees/{other_employee['id']}/current", headers=payroll_headers,
        )
        assert Decimal(current.json()["data"]["amount"]) == Decimal("92000")

        history = await client.get(f"{BASE}/employees/{other_employee['id']}", headers=payroll_headers)
        assert [c["effective_from"] for c in history.json()["data"]] == ["2025-07-01", "2025-01-01"]

    async def test_backdated_record_rejected(self, client, other_employee, payroll_headers):
        await client.post(BASE, json=_payload(other_employee["id"]), headers=payroll_headers)
        resp = await client.post(
            BASE, json=_payload(other_employee["id"], effective_from="2024-12-01"), headers=payroll_headers,
        )
        assert resp.status_code == 409

        async with TestSessionFactory() as session:
            rows = (await session.execute(
                select(EmployeeCompensation).where(
                    EmployeeCompensation.employee_id == other_employee["id"],
                ),
            )).scalars().all()
        assert [r.is_current for r in rows] == [True]

    async def test_invalid_payloads(self, client, other_employee, payroll_headers):
        negative = await client.post(
            BASE, json=_payload(other_employee["id"], amount="-1"), headers=payroll_headers,
        )
        multiplier = await client.post(
            BASE, json=_payload(other_employee["id"], overtime_multiplier="7"), headers=payroll_headers,
        )
        dates = await client.post(
            BASE, json=_payload(other_employee["id"], effective_to="2024-06-01"), headers=payroll_headers,
        )
        assert negative.status_code == 422
        assert multiplier.status_code == 422
        assert dates.status_code == 422

    async def test_unknown_employee(self, client, test_employee, payroll_headers):
        resp = await client.post(BASE, json=_payload(uuid.uuid4()), headers=payroll_headers)
        assert resp.status_code == 422
        assert "employee_id" in resp.json()["errors"]

    async def test_hr_admin_lacks_compensation_permission(self, client, other_employee, hr_headers):
        resp = await client.post(BASE, json=_payload(other_employee["id"]), headers=hr_headers)
        assert resp.status_code == 403


class TestUpdateCompensation:

    async def test_update_and_delete(self, client, other_employee, payroll_headers):
        created = await client.post(BASE, json=_payload(other_employee["id"]), headers=payroll_headers)
        comp_id = created.json()["data"]["id"]

        patched = await client.patch(
            f"{BASE}/{comp_id}", json={"notes": "Annual review"}, headers=payroll_headers,
        )
        assert patched.json()["data"]["notes"] == "Annual review"

        bad_end = await client.patch(
            f"{BASE}/{comp_id}", json={"effective_to": "2024-01-01"}, headers=payroll_headers,
        )
        assert bad_end.status_code == 422

        deleted = await client.delete(f"{BASE}/{comp_id}", headers=payroll_headers)
        assert deleted.status_code == 200
        current = await client.get(
            f"{BASE}/employees/{other_employee['id']}/current", headers=payroll_headers,
        )
        assert current.json()["data"] is None

    async def test_null_amount_rejected(self, client, other_employee, payroll_headers):
        created = await client.post(BASE, json=_payload(other_employee["id"]), headers=payroll_headers)
        resp = await client.patch(
            f"{BASE}/{created.json()['data']['id']}", json={"amount": None}, headers=payroll_headers,
        )
        assert resp.status_code == 422


class TestCompensationVIP:

    async def test_restricted_employee_blocks_create(
        self, client, other_employee, hr_headers, payroll_headers,
    ):
        await client.put(
            f"/api/v1/hris/vip/employees/{other_employee['id']}",
            json={
                "is_vip": True,
                "is_restricted": True,
                "restriction_level": "executive",
                "restrict_compensation": True,
            },
            headers=hr_headers,
        )
        resp = await client.post(BASE, json=_payload(other_employee["id"]), headers=payroll_headers)
        assert resp.status_code == 403

    async def test_other_tenant_record_is_hidden(
        self, client, db, other_employee, payroll_headers, other_organization,
    ):
        from workforce.common.constants import UserRole
        from tests.conftest import create_employee, make_auth_headers

        created = await client.post(BASE, json=_payload(other_employee["id"]), headers=payroll_headers)
        outsider = await create_employee(
            db, organization_id=other_organization["id"], email="pay@globex.example",
        )
        headers = await make_auth_headers(db, outsider, UserRole.payroll_admin)
        resp = await client.get(f"{BASE}/{created.json()['data']['id']}", headers=headers)
        assert resp.status_code == 404
