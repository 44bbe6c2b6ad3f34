"""Approval workflow tests — rules, matching, votes, rejection, expiry."""

from __future__ import annotations

import uuid
from datetime import timedelta
from types import SimpleNamespace

from workforce.approvals.models import ApprovalRequest
from workforce.approvals.service import rule_matches
from workforce.common.constants import UserRole
from workforce.common.dates import utcnow
from tests.conftest import TestSessionFactory, create_employee, make_auth_headers

BASE = "/api/v1/payroll/approvals"


async def _rule(client, headers, **overrides):
    body = {
        "name": "Large conversions",
        "rule_type": "conversion_threshold",
        "conditions": {"threshold_amount": 10000},
        "approver_role": "payroll_admin",
    }
    body.update(overrides)
    return await client.post(f"{BASE}/rules", json=body, headers=headers)


async def _conversion_request(client, headers, amount="25000", **overrides):
    body = {
        "request_type": "conversion",
        "request_data": {"amount": amount, "from_currency": "USD", "to_currency": "EUR"},
    }
    body.update(overrides)
    return await client.post(f"{BASE}/requests", json=body, headers=headers)


# ═════════════════════════════════════════════════════════════════════
# RULES
# ═════════════════════════════════════════════════════════════════════


class TestRules:

    async def test_create_rule(self, client, payroll_headers):
        resp = await _rule(client, payroll_headers)
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["enabled"] is True
        assert data["required_approvals"] == 1
        assert data["approver_role"] == "payroll_admin"

    async def test_threshold_condition_required(self, client, payroll_headers):
        resp = await _rule(client, payroll_headers, conditions={})
        assert resp.status_code == 422

    async def test_approvers_required(self, client, payroll_headers):
        resp = await _rule(client, payroll_headers, approver_role=None)
        assert resp.status_code == 422

    async def test_required_approvals_within_approver_list(self, client, payroll_headers, approver):
        resp = await _rule(
            client, payroll_headers,
            approver_role=None, approver_user_ids=[str(approver["id"])], required_approvals=2,
        )
        assert resp.status_code == 422

    async def test_update_rule_conditions_checked(self, client, payroll_headers):
        created = await _rule(client, payroll_headers)
        resp = await client.patch(
            f"{BASE}/rules/{created.json()['data']['id']}",
            json={"conditions": {"threshold_amount": -5}},
            headers=payroll_headers,
        )
        assert resp.status_code == 422
        assert "conditions" in resp.json()["errors"]

    async def test_list_and_disable(self, client, payroll_headers):
        created = await _rule(client, payroll_headers)
        rule_id = created.json()["data"]["id"]
        await client.patch(f"{BASE}/rules/{rule_id}", json={"enabled": False}, headers=payroll_headers)
        enabled = await client.get(f"{BASE}/rules?enabled=true", headers=payroll_headers)
        assert enabled.json()["data"] == []

        no_rule = await _conversion_request(client, payroll_headers)
        assert no_rule.status_code == 200
        assert no_rule.json()["data"]["requires_approval"] is False

    async def test_hr_admin_has_no_access(self, client, hr_headers):
        resp = await client.get(f"{BASE}/rules", headers=hr_headers)
        assert resp.status_code == 403


class TestRuleMatching:

    def _rule(self, rule_type, conditions):
        return SimpleNamespace(rule_type=rule_type, conditions=conditions)

    def test_conversion_threshold(self):
        rule = self._rule("conversion_threshold", {"threshold_amount": 1000, "currencies": ["eur"]})
        assert rule_matches(rule, "conversion", {"amount": "1000", "from_currency": "USD", "to_currency": "EUR"})
        assert not rule_matches(rule, "conversion", {"amount": "999.99", "to_currency": "EUR"})
        assert not rule_matches(rule, "conversion", {"amount": "5000", "from_currency": "USD", "to_currency": "GBP"})

    def test_rate_variance(self):
        rule = self._rule("rate_variance", {"variance_percentage": 5})
        assert rule_matches(rule, "rate_change", {"old_rate": "1.00", "new_rate": "1.06"})
        assert rule_matches(rule, "rate_change", {"old_rate": "1.00", "new_rate": "0.95"})
        assert not rule_matches(rule, "rate_change", {"old_rate": "1.00", "new_rate": "1.04"})
        assert not rule_matches(rule, "rate_change", {"old_rate": "0", "new_rate": "1"})

    def test_rule_only_governs_its_request_type(self):
        rule = self._rule("bulk_operation", {})
        assert rule_matches(rule, "bulk_rate_import", {})
        assert not rule_matches(rule, "conversion", {"amount": "1"})


# ═════════════════════════════════════════════════════════════════════
# REQUESTS AND DECISIONS
# ═════════════════════════════════════════════════════════════════════


class TestRequests:

    async def test_below_threshold_needs_no_approval(self, client, payroll_headers):
        await _rule(client, payroll_headers)
        resp = await _conversion_request(client, payroll_headers, amount="500")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"requires_approval": False, "request": None}

    async def test_top_priority_rule_binds(self, client, payroll_headers, approver):
        await _rule(client, payroll_headers, name="Low", priority=5)
        high = await _rule(
            client, payroll_headers,
            name="High", priority=10, required_approvals=2, expiration_hours=48,
        )
        resp = await _conversion_request(client, payroll_headers)
        assert resp.status_code == 201
        request = resp.json()["data"]["request"]
        assert request["approval_rule_id"] == high.json()["data"]["id"]
        assert request["required_approvals"] == 2
        assert request["status"] == "pending"
        assert request["expires_at"] is not None

    async def test_creator_cannot_approve(self, client, payroll_headers):
        await _rule(client, payroll_headers)
        created = await _conversion_request(client, payroll_headers)
        request_id = created.json()["data"]["request"]["id"]
        resp = await client.post(f"{BASE}/requests/{request_id}/approve", headers=payroll_headers)
        assert resp.status_code == 403

    async def test_single_approval_resolves(self, client, payroll_headers, approver):
        await _rule(client, payroll_headers)
        created = await _conversion_request(client, payroll_headers)
        request_id = created.json()["data"]["request"]["id"]

        resp = await client.post(
            f"{BASE}/requests/{request_id}/approve", json={"comments": "ok"}, headers=approver["headers"],
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "approved"
        assert data["resolved_by"] == str(approver["id"])

        detail = await client.get(f"{BASE}/requests/{request_id}", headers=payroll_headers)
        actions = detail.json()["data"]["actions"]
        assert [(a["action"], a["comments"]) for a in actions] == [("approved", "ok")]

    async def test_one_vote_per_user(self, client, db, payroll_headers, approver, test_employee):
        third = await create_employee(
            db, organization_id=test_employee["organization_id"], email="third@acme.example",
        )
        third_headers = await make_auth_headers(db, third, UserRole.payroll_admin)
        await _rule(client, payroll_headers, required_approvals=2)
        created = await _conversion_request(client, payroll_headers)
        request_id = created.json()["data"]["request"]["id"]

        first = await client.post(f"{BASE}/requests/{request_id}/approve", headers=approver["headers"])
        assert first.json()["data"]["status"] == "pending"
        assert first.json()["data"]["current_approvals"] == 1

        again = await client.post(f"{BASE}/requests/{request_id}/approve", headers=approver["headers"])
        assert again.status_code == 409

        second = await client.post(f"{BASE}/requests/{request_id}/approve", headers=third_headers)
        assert second.json()["data"]["status"] == "approved"

    async def test_named_approvers_only(self, client, db, payroll_headers, approver, test_employee):
        outsider = await create_employee(
            db, organization_id=test_employee["organization_id"], email="outsider@acme.example",
        )
        outsider_headers = await make_auth_headers(db, outsider, UserRole.payroll_admin)
        await _rule(client, payroll_headers, approver_role=None, approver_user_ids=[str(approver["id"])])
        created = await _conversion_request(client, payroll_headers)
        request_id = created.json()["data"]["request"]["id"]

        resp = await client.post(f"{BASE}/requests/{request_id}/approve", headers=outsider_headers)
        assert resp.status_code == 403

    async def test_reject_requires_reason(self, client, payroll_headers, approver):
        await _rule(client, payroll_headers)
        created = await _conversion_request(client, payroll_headers)
        request_id = created.json()["data"]["request"]["id"]

        missing = await client.post(
            f"{BASE}/requests/{request_id}/reject", json={}, headers=approver["headers"],
        )
        assert missing.status_code == 422

        resp = await client.post(
            f"{BASE}/requests/{request_id}/reject", json={"reason": "Rate looks stale"}, headers=approver["headers"],
        )
        assert resp.json()["data"]["status"] == "rejected"
        assert resp.json()["data"]["rejection_reason"] == "Rate looks stale"

        late = await client.post(f"{BASE}/requests/{request_id}/approve", headers=approver["headers"])
        assert late.status_code == 409

    async def test_pending_ordered_by_priority(self, client, payroll_headers):
        await _rule(client, payroll_headers)
        await _conversion_request(client, payroll_headers, priority="low")
        await _conversion_request(client, payroll_headers, priority="urgent")
        await _conversion_request(client, payroll_headers)

        resp = await client.get(f"{BASE}/requests/pending", headers=payroll_headers)
        assert [r["priority"] for r in resp.json()["data"]] == ["urgent", "normal", "low"]

    async def test_history_by_reference(self, client, payroll_headers):
        await _rule(client, payroll_headers)
        reference_id = str(uuid.uuid4())
        await _conversion_request(
            client, payroll_headers, reference_type="payroll_run", reference_id=reference_id,
        )
        resp = await client.get(
            f"{BASE}/requests/history?reference_type=payroll_run&reference_id={reference_id}",
            headers=payroll_headers,
        )
        assert len(resp.json()["data"]) == 1


class TestExpiry:

    async def _backdate(self, request_id):
        async with TestSessionFactory() as session:
            request = await session.get(ApprovalRequest, uuid.UUID(request_id))
            request.expires_at = utcnow() - timedelta(hours=1)
            await session.commit()

    async def test_vote_on_expired_request(self, client, payroll_headers, approver):
        await _rule(client, payroll_headers, expiration_hours=1)
        created = await _conversion_request(client, payroll_headers)
        request_id = created.json()["data"]["request"]["id"]
        await self._backdate(request_id)

        resp = await client.post(f"{BASE}/requests/{request_id}/approve", headers=approver["headers"])
        assert resp.status_code == 409
        assert "expired" in resp.json()["detail"]

        detail = await client.get(f"{BASE}/requests/{request_id}", headers=payroll_headers)
        assert detail.json()["data"]["status"] == "expired"
        pending = await client.get(f"{BASE}/requests/pending", headers=payroll_headers)
        assert request_id not in [r["id"] for r in pending.json()["data"]]

    async def test_overdue_hidden_from_pending(self, client, payroll_headers):
        await _rule(client, payroll_headers, expiration_hours=1)
        stale = await _conversion_request(client, payroll_headers)
        fresh = await _conversion_request(client, payroll_headers)
        await self._backdate(stale.json()["data"]["request"]["id"])

        pending = await client.get(f"{BASE}/requests/pending", headers=payroll_headers)
        assert [r["id"] for r in pending.json()["data"]] == [fresh.json()["data"]["request"]["id"]]

    async def test_expire_endpoint(self, client, payroll_headers):
        await _rule(client, payroll_headers, expiration_hours=1)
        stale = await _conversion_request(client, payroll_headers)
        fresh = await _conversion_request(client, payroll_headers)
        await self._backdate(stale.json()["data"]["request"]["id"])

        resp = await client.post(f"{BASE}/requests/expire", headers=payroll_headers)
        assert resp.json()["data"] == {"expired": 1}

        stale_detail = await client.get(
            f"{BASE}/requests/{stale.json()['data']['request']['id']}", headers=payroll_headers,
        )
        fresh_detail = await client.get(
            f"{BASE}/requests/{fresh.json()['data']['request']['id']}", headers=payroll_headers,
        )
        assert stale_detail.json()["data"]["status"] == "expired"
        assert fresh_detail.json()["data"]["status"] == "pending"
