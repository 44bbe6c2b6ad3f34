"""VIP / restricted-employee tests — flags, access decisions, audit log."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from workforce.common.constants import UserRole
from workforce.core_hr.models import Employee
from workforce.vip.models import RestrictedAccessLog
from workforce.vip.service import VIPService
from tests.conftest import TestSessionFactory, create_employee, make_auth_headers

VIP = "/api/v1/hris/vip"
COMPENSATION = "/api/v1/payroll/compensation"


async def _restrict(client, headers, emp_id, **overrides):
    body = {
        "is_vip": True,
        "is_restricted": True,
        "restriction_level": "executive",
        "restriction_reason": "Board member",
        "restrict_compensation": True,
    }
    body.update(overrides)
    return await client.put(f"{VIP}/employees/{emp_id}", json=body, headers=headers)


async def _access_log(employee_id) -> list[RestrictedAccessLog]:
    async with TestSessionFactory() as session:
        return (await session.execute(
            select(RestrictedAccessLog)
            .where(RestrictedAccessLog.employee_id == employee_id)
            .order_by(RestrictedAccessLog.accessed_at),
        )).scalars().all()


# ═════════════════════════════════════════════════════════════════════
# VIP MANAGEMENT
# ═════════════════════════════════════════════════════════════════════


class TestVIPManagement:

    async def test_mark_restricted_creates_rules(self, client, other_employee, hr_headers):
        resp = await _restrict(client, hr_headers, other_employee["id"], allowed_roles=["payroll_admin"])
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["is_vip"] is True
        assert data["is_restricted"] is True
        assert data["restriction_level"] == "executive"
        assert data["access_control"]["allowed_roles"] == ["payroll_admin"]
        assert data["access_control"]["restrict_compensation"] is True

        status = await client.get(f"{VIP}/employees/{other_employee['id']}", headers=hr_headers)
        assert status.json()["data"]["restriction_reason"] == "Board member"

    async def test_restricted_requires_level(self, client, other_employee, hr_headers):
        resp = await _restrict(client, hr_headers, other_employee["id"], restriction_level=None)
        assert resp.status_code == 422

    async def test_unrestricted_vip_has_no_rules(self, client, other_employee, hr_headers):
        resp = await _restrict(
            client, hr_headers, other_employee["id"], is_restricted=False, restriction_level=None,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["access_control"] is None

    async def test_count_and_list(self, client, db, other_employee, hr_headers):
        third = await create_employee(
            db, organization_id=other_employee["organization_id"], email="vip2@acme.example",
        )
        await _restrict(client, hr_headers, other_employee["id"])
        await _restrict(client, hr_headers, third["id"], is_restricted=False, restriction_level=None)

        count = await client.get(f"{VIP}/count", headers=hr_headers)
        assert count.json()["data"] == {"total_vip": 2, "restricted": 1, "unrestricted": 1}

        listed = await client.get(f"{VIP}/employees?is_restricted=true", headers=hr_headers)
        assert [e["id"] for e in listed.json()["data"]] == [str(other_employee["id"])]

    async def test_remove_vip_status_retires_rules(self, client, other_employee, hr_headers):
        await _restrict(client, hr_headers, other_employee["id"])
        resp = await client.delete(f"{VIP}/employees/{other_employee['id']}", headers=hr_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["is_vip"] is False
        assert data["is_restricted"] is False
        assert data["restricted_at"] is None

    async def test_update_access_control(self, client, other_employee, test_employee, hr_headers):
        await _restrict(client, hr_headers, other_employee["id"])
        resp = await client.patch(
            f"{VIP}/employees/{other_employee['id']}/access-control",
            json={"allowed_user_ids": [str(test_employee["id"])], "restrict_documents": True},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["allowed_user_ids"] == [str(test_employee["id"])]
        assert data["restrict_documents"] is True

    async def test_update_access_control_requires_restriction(self, client, other_employee, hr_headers):
        resp = await client.patch(
            f"{VIP}/employees/{other_employee['id']}/access-control",
            json={"restrict_documents": True},
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_update_access_control_needs_a_field(self, client, other_employee, hr_headers):
        await _restrict(client, hr_headers, other_employee["id"])
        resp = await client.patch(
            f"{VIP}/employees/{other_employee['id']}/access-control", json={}, headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_payroll_admin_cannot_manage_vip(self, client, other_employee, payroll_headers):
        resp = await _restrict(client, payroll_headers, other_employee["id"])
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# ACCESS DECISIONS
# ═════════════════════════════════════════════════════════════════════


class TestAccessDecisions:

    async def test_denied_without_authorization_and_logged(
        self, client, other_employee, hr_headers, payroll_headers, test_employee,
    ):
        await _restrict(client, hr_headers, other_employee["id"])
        resp = await client.get(
            f"{COMPENSATION}/employees/{other_employee['id']}", headers=payroll_headers,
        )
        assert resp.status_code == 403

        log = await _access_log(other_employee["id"])
        assert len(log) == 1
        assert log[0].access_granted is False
        assert log[0].user_id == test_employee["id"]
        assert log[0].access_type == "compensation"
        assert log[0].denial_reason == "User not in authorized list"
        assert log[0].endpoint.endswith(f"/employees/{other_employee['id']}")

    async def test_allowed_role_granted(self, client, other_employee, hr_headers, payroll_headers):
        await _restrict(client, hr_headers, other_employee["id"], allowed_roles=["payroll_admin"])
        resp = await client.get(
            f"{COMPENSATION}/employees/{other_employee['id']}", headers=payroll_headers,
        )
        assert resp.status_code == 200
        log = await _access_log(other_employee["id"])
        assert [entry.access_granted for entry in log] == [True]

    async def test_allowed_department_granted(
        self, client, other_employee, test_employee, hr_headers, payroll_headers,
    ):
        await _restrict(
            client, hr_headers, other_employee["id"],
            allowed_department_ids=[str(test_employee["department_id"])],
        )
        resp = await client.get(
            f"{COMPENSATION}/employees/{other_employee['id']}", headers=payroll_headers,
        )
        assert resp.status_code == 200

    async def test_unrestricted_area_not_logged(
        self, client, other_employee, hr_headers, manager_headers,
    ):
        """General employee data is never locked; no log row is written."""
        await _restrict(client, hr_headers, other_employee["id"])
        resp = await client.get(
            f"/api/v1/hris/employees/{other_employee['id']}", headers=manager_headers,
        )
        assert resp.status_code == 200
        assert await _access_log(other_employee["id"]) == []

    async def test_check_access_endpoint(self, client, other_employee, hr_headers, payroll_headers):
        await _restrict(client, hr_headers, other_employee["id"])
        denied = await client.get(
            f"{VIP}/employees/{other_employee['id']}/check-access?access_type=compensation",
            headers=payroll_headers,
        )
        override = await client.get(
            f"{VIP}/employees/{other_employee['id']}/check-access?access_type=compensation",
            headers=hr_headers,
        )
        assert denied.status_code == 200
        assert denied.json()["data"]["granted"] is False
        assert override.json()["data"]["granted"] is True
        assert override.json()["data"]["reason"] == "Admin/HR override"

    async def test_access_log_endpoint_filters(
        self, client, other_employee, hr_headers, payroll_headers,
    ):
        await _restrict(client, hr_headers, other_employee["id"])
        await client.get(f"{COMPENSATION}/employees/{other_employee['id']}", headers=payroll_headers)
        await client.get(
            f"{VIP}/employees/{other_employee['id']}/check-access?access_type=compensation",
            headers=hr_headers,
        )

        everything = await client.get(
            f"{VIP}/employees/{other_employee['id']}/access-log", headers=hr_headers,
        )
        denied = await client.get(
            f"{VIP}/employees/{other_employee['id']}/access-log?access_granted=false",
            headers=hr_headers,
        )
        assert everything.json()["meta"]["total"] == 2
        assert len(denied.json()["data"]) == 1
        assert denied.json()["data"][0]["access_granted"] is False


class TestCheckAccessService:

    async def test_self_access(self, db, test_employee):
        user = await db.get(Employee, test_employee["id"])
        decision = await VIPService.check_access(
            db, test_employee["organization_id"], test_employee["id"], user, UserRole.employee,
        )
        assert decision.granted is True
        assert decision.reason == "Self-access"
        assert decision.log_id is not None

    async def test_restricted_without_rules_denied(self, db, test_employee, other_employee):
        target = await db.get(Employee, other_employee["id"])
        target.is_restricted = True
        target.restriction_level = "full"
        await db.commit()

        user = await db.get(Employee, test_employee["id"])
        decision = await VIPService.check_access(
            db, test_employee["organization_id"], other_employee["id"], user, UserRole.manager,
            "documents",
        )
        assert decision.granted is False
        assert "no authorization rules" in decision.reason
        await db.commit()
        log = await _access_log(other_employee["id"])
        assert [entry.denial_reason for entry in log] == [decision.reason]

    async def test_unknown_employee(self, db, test_employee):
        from workforce.common.exceptions import NotFoundException

        user = await db.get(Employee, test_employee["id"])
        with pytest.raises(NotFoundException):
            await VIPService.check_access(
                db, test_employee["organization_id"], uuid.uuid4(), user, UserRole.manager,
            )

    async def test_other_tenant_admin_cannot_reach(self, client, db, other_employee, other_organization):
        outsider = await create_employee(
            db, organization_id=other_organization["id"], email="root@globex.example",
        )
        headers = await make_auth_headers(db, outsider, UserRole.hr_admin)
        resp = await client.get(f"{VIP}/employees/{other_employee['id']}", headers=headers)
        assert resp.status_code == 404
