"""Employee document tests — CRUD, expiry tracking, search, stats."""

from __future__ import annotations

import uuid
from datetime import date, timedelta

BASE = "/api/v1/hris/documents"


def _days(n: int) -> str:
    return (date.today() + timedelta(days=n)).isoformat()


async def _document(client, headers, employee_id, **overrides):
    body = {
        "employee_id": str(employee_id),
        "document_name": "Passport",
        "document_type": "passport",
        "file_url": "https://files.acme.example/passport.pdf",
        "file_name": "passport.pdf",
        "document_number": "X1234567",
    }
    body.update(overrides)
    return await client.post(BASE, json=body, headers=headers)


class TestCrud:

    async def test_create_and_get(self, client, hr_headers, test_employee):
        created = await _document(client, hr_headers, test_employee["id"])
        assert created.status_code == 201
        doc_id = created.json()["data"]["id"]
        resp = await client.get(f"{BASE}/{doc_id}", headers=hr_headers)
        assert resp.json()["data"]["document_number"] == "X1234567"
        assert resp.json()["data"]["is_confidential"] is False

    async def test_expiry_before_issue(self, client, hr_headers, test_employee):
        resp = await _document(
            client, hr_headers, test_employee["id"], issue_date="2025-01-01", expiry_date="2024-01-01",
        )
        assert resp.status_code == 422

    async def test_update_checks_dates(self, client, hr_headers, test_employee):
        created = await _document(client, hr_headers, test_employee["id"], issue_date="2025-01-01")
        resp = await client.patch(
            f"{BASE}/{created.json()['data']['id']}", json={"expiry_date": "2024-01-01"}, headers=hr_headers,
        )
        assert resp.status_code == 422
        assert "expiry_date" in resp.json()["errors"]

    async def test_delete(self, client, hr_headers, test_employee):
        created = await _document(client, hr_headers, test_employee["id"])
        doc_id = created.json()["data"]["id"]
        assert (await client.delete(f"{BASE}/{doc_id}", headers=hr_headers)).status_code == 200
        assert (await client.get(f"{BASE}/{doc_id}", headers=hr_headers)).status_code == 404

    async def test_unknown_employee(self, client, hr_headers, test_employee):
        resp = await _document(client, hr_headers, uuid.uuid4())
        assert resp.status_code == 422

    async def test_manager_cannot_read(self, client, manager_headers, test_employee):
        resp = await client.get(f"{BASE}/stats", headers=manager_headers)
        assert resp.status_code == 403


class TestListings:

    async def test_employee_documents_hide_confidential(self, client, hr_headers, test_employee):
        await _document(client, hr_headers, test_employee["id"])
        await _document(
            client, hr_headers, test_employee["id"],
            document_name="Medical note", document_type="medical", is_confidential=True,
        )
        everything = await client.get(f"{BASE}/employee/{test_employee['id']}", headers=hr_headers)
        public = await client.get(
            f"{BASE}/employee/{test_employee['id']}?include_confidential=false", headers=hr_headers,
        )
        assert len(everything.json()["data"]) == 2
        assert [d["document_type"] for d in public.json()["data"]] == ["passport"]

    async def test_expiring_and_expired(self, client, hr_headers, test_employee):
        soon = await _document(client, hr_headers, test_employee["id"], expiry_date=_days(10))
        await _document(client, hr_headers, test_employee["id"], document_name="Visa", expiry_date=_days(300))
        old = await _document(client, hr_headers, test_employee["id"], document_name="Old ID", expiry_date=_days(-5))

        expiring = await client.get(f"{BASE}/expiring?days=30", headers=hr_headers)
        expired = await client.get(f"{BASE}/expired", headers=hr_headers)
        assert [d["id"] for d in expiring.json()["data"]] == [soon.json()["data"]["id"]]
        assert [d["id"] for d in expired.json()["data"]] == [old.json()["data"]["id"]]

    async def test_search_and_type(self, client, hr_headers, test_employee):
        await _document(client, hr_headers, test_employee["id"])
        await _document(
            client, hr_headers, test_employee["id"],
            document_name="W-4 form", document_type="tax", document_number=None,
        )
        search = await client.get(f"{BASE}/search?q=w-4", headers=hr_headers)
        assert [d["document_name"] for d in search.json()["data"]] == ["W-4 form"]
        by_type = await client.get(f"{BASE}/type/passport", headers=hr_headers)
        assert len(by_type.json()["data"]) == 1

    async def test_stats(self, client, hr_headers, test_employee, other_employee):
        await _document(client, hr_headers, test_employee["id"], expiry_date=_days(10), is_confidential=True)
        await _document(client, hr_headers, test_employee["id"], document_type="visa", expiry_date=_days(-1))
        await _document(client, hr_headers, other_employee["id"])

        org = await client.get(f"{BASE}/stats", headers=hr_headers)
        data = org.json()["data"]
        assert data["total_documents"] == 3
        assert data["by_type"] == {"passport": 2, "visa": 1}
        assert data["confidential"] == 1
        assert data["expired"] == 1
        assert data["expiring_soon"] == 1

        own = await client.get(f"{BASE}/employee/{other_employee['id']}/stats", headers=hr_headers)
        assert own.json()["data"]["total_documents"] == 1
