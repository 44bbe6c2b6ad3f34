"""Payroll run tests — lifecycle, calculation, totals, paycheck adjustments, YTD.

Scenario used throughout (March 2025, monthly run):
    test_employee   salary 120 000/yr monthly → 10 000.00 gross,
                    pension 500 pre-tax, 10 % income tax → 8 550.00 net
    other_employee  hourly 50, approved timesheet 80h + 4h OT → 4 300.00 gross,
                    10 % income tax → 3 870.00 net
    bystander       no compensation → skipped
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from workforce.payroll.service import period_base_pay
from tests.conftest import create_employee

RUNS = "/api/v1/payroll/runs"
PAYCHECKS = "/api/v1/payroll/paychecks"


def _run_body(**overrides):
    body = {
        "run_name": "March 2025",
        "pay_period_start": "2025-03-01",
        "pay_period_end": "2025-03-31",
        "payment_date": "2025-03-31",
    }
    body.update(overrides)
    return body


@pytest.fixture
async def payroll_setup(client, db, payroll_headers, test_employee, other_employee) -> dict:
    """Compensation, timesheet, tax and deduction for the March scenario."""
    await client.post(
        "/api/v1/payroll/compensation",
        json={
            "employee_id": str(test_employee["id"]),
            "compensation_type": "salary",
            "amount": "120000",
            "pay_frequency": "monthly",
            "effective_from": "2025-01-01",
        },
        headers=payroll_headers,
    )
    await client.post(
        "/api/v1/payroll/compensation",
        json={
            "employee_id": str(other_employee["id"]),
            "compensation_type": "hourly",
            "amount": "50",
            "effective_from": "2025-01-01",
        },
        headers=payroll_headers,
    )
    timesheet = await client.post(
        "/api/v1/payroll/timesheets",
        json={
            "employee_id": str(other_employee["id"]),
            "period_start": "2025-03-01",
            "period_end": "2025-03-15",
            "regular_hours": "80",
            "overtime_hours": "4",
        },
        headers=payroll_headers,
    )
    timesheet_id = timesheet.json()["data"]["id"]
    await client.post(f"/api/v1/payroll/timesheets/{timesheet_id}/submit", headers=payroll_headers)
    await client.post(f"/api/v1/payroll/timesheets/{timesheet_id}/approve", headers=payroll_headers)

    await client.post(
        "/api/v1/payroll/tax/rule-sets",
        json={
            "tax_type": "income",
            "tax_name": "Income tax",
            "country": "US",
            "effective_from": "2025-01-01",
            "calculation_method": "flat_rate",
            "flat_rate": "10",
        },
        headers=payroll_headers,
    )
    await client.post(
        "/api/v1/payroll/deductions",
        json={
            "employee_id": str(test_employee["id"]),
            "deduction_type": "pension",
            "amount": "500",
            "is_pre_tax": True,
            "effective_from": "2025-01-01",
        },
        headers=payroll_headers,
    )
    bystander = await create_employee(
        db, organization_id=test_employee["organization_id"], email="bystander@acme.example",
    )
    return {"timesheet_id": timesheet_id, "bystander": bystander}


async def _calculated_run(client, headers) -> dict:
    created = await client.post(RUNS, json=_run_body(), headers=headers)
    run_id = created.json()["data"]["id"]
    resp = await client.post(f"{RUNS}/{run_id}/calculate", headers=headers)
    assert resp.status_code == 200
    return resp.json()["data"]


async def _paycheck_for(client, headers, run_id, employee_id) -> dict:
    resp = await client.get(f"{RUNS}/{run_id}/paychecks", headers=headers)
    return next(p for p in resp.json()["data"] if p["employee_id"] == str(employee_id))


class TestBasePay:

    def test_salary_per_period(self):
        from types import SimpleNamespace

        comp = SimpleNamespace(
            compensation_type="salary", amount=Decimal("52000"), pay_frequency="weekly",
            overtime_multiplier=Decimal("1.5"),
        )
        assert period_base_pay(comp, regular_hours=Decimal("60"))["regular"] == Decimal("1000.00")

    def test_hourly_with_overtime(self):
        from types import SimpleNamespace

        comp = SimpleNamespace(
            compensation_type="hourly", amount=Decimal("20"), pay_frequency="weekly",
            overtime_multiplier=Decimal("2"),
        )
        pay = period_base_pay(comp, regular_hours=Decimal("40"), overtime_hours=Decimal("5"), pto_hours=Decimal("8"))
        assert pay == {"regular": Decimal("800.00"), "overtime": Decimal("200.00"), "pto": Decimal("160.00")}


# ═════════════════════════════════════════════════════════════════════
# RUN CRUD
# ═════════════════════════════════════════════════════════════════════


class TestRunCrud:

    async def test_create_numbers_runs(self, client, payroll_headers):
        first = await client.post(RUNS, json=_run_body(), headers=payroll_headers)
        second = await client.post(RUNS, json=_run_body(run_name="Bonus", run_type="bonus"), headers=payroll_headers)
        assert first.status_code == 201
        assert first.json()["data"]["run_number"] == "PR-202503-001"
        assert second.json()["data"]["run_number"] == "PR-202503-002"
        assert first.json()["data"]["status"] == "draft"
        assert first.json()["data"]["currency"] == "USD"

    async def test_deleted_run_keeps_its_number(self, client, payroll_headers):
        first = await client.post(RUNS, json=_run_body(), headers=payroll_headers)
        await client.delete(f"{RUNS}/{first.json()['data']['id']}", headers=payroll_headers)
        second = await client.post(RUNS, json=_run_body(), headers=payroll_headers)
        assert second.json()["data"]["run_number"] == "PR-202503-002"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"pay_period_end": "2025-02-28"},
            {"payment_date": "2025-03-15"},
            {"run_type": "weekly"},
        ],
    )
    async def test_invalid_runs(self, client, payroll_headers, overrides):
        resp = await client.post(RUNS, json=_run_body(**overrides), headers=payroll_headers)
        assert resp.status_code == 422

    async def test_update_checks_dates(self, client, payroll_headers):
        created = await client.post(RUNS, json=_run_body(), headers=payroll_headers)
        resp = await client.patch(
            f"{RUNS}/{created.json()['data']['id']}", json={"payment_date": "2025-03-01"}, headers=payroll_headers,
        )
        assert resp.status_code == 422
        assert "payment_date" in resp.json()["errors"]

    async def test_hr_admin_has_no_payroll_access(self, client, hr_headers):
        assert (await client.get(RUNS, headers=hr_headers)).status_code == 403

    async def test_unknown_run(self, client, payroll_headers):
        resp = await client.get(f"{RUNS}/{uuid.uuid4()}", headers=payroll_headers)
        assert resp.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# CALCULATION
# ═════════════════════════════════════════════════════════════════════


class TestCalculation:

    async def test_calculate_scenario(self, client, payroll_headers, payroll_setup, test_employee, other_employee):
        data = await _calculated_run(client, payroll_headers)
        run = data["run"]
        assert data["paychecks_created"] == 2
        assert [s["employee_id"] for s in data["skipped"]] == [str(payroll_setup["bystander"]["id"])]
        assert run["status"] == "calculated"
        assert run["total_employees"] == 2
        assert Decimal(run["total_gross"]) == Decimal("14300")
        assert Decimal(run["total_taxes"]) == Decimal("1380")
        assert Decimal(run["total_deductions"]) == Decimal("500")
        assert Decimal(run["total_net"]) == Decimal("12420")

        salaried = await _paycheck_for(client, payroll_headers, run["id"], test_employee["id"])
        assert Decimal(salaried["gross_pay"]) == Decimal("10000")
        assert Decimal(salaried["pre_tax_deductions"]) == Decimal("500")
        assert Decimal(salaried["taxable_income"]) == Decimal("9500")
        assert Decimal(salaried["total_taxes"]) == Decimal("950")
        assert Decimal(salaried["net_pay"]) == Decimal("8550")
        assert salaried["deductions"][0]["pre_tax"] is True
        assert salaried["status"] == "pending"

        hourly = await _paycheck_for(client, payroll_headers, run["id"], other_employee["id"])
        assert Decimal(hourly["regular_pay"]) == Decimal("4000")
        assert Decimal(hourly["overtime_pay"]) == Decimal("300")
        assert Decimal(hourly["hourly_rate"]) == Decimal("50")
        assert Decimal(hourly["net_pay"]) == Decimal("3870")
        assert [e["type"] for e in hourly["earnings"]] == ["regular", "overtime"]

    async def test_recalculate_replaces_paychecks(self, client, payroll_headers, payroll_setup):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]
        again = await client.post(f"{RUNS}/{run_id}/calculate", headers=payroll_headers)
        assert again.json()["data"]["paychecks_created"] == 2
        paychecks = await client.get(f"{RUNS}/{run_id}/paychecks", headers=payroll_headers)
        assert len(paychecks.json()["data"]) == 2

    async def test_earning_component_added(
        self, client, payroll_headers, payroll_setup, test_employee,
    ):
        component = await client.post(
            "/api/v1/payroll/pay-components",
            json={
                "code": "MEAL",
                "name": "Meal allowance",
                "component_type": "earning",
                "category": "allowance",
                "calculation_type": "fixed_amount",
                "default_amount": "200",
                "is_taxable": False,
            },
            headers=payroll_headers,
        )
        await client.post(
            "/api/v1/payroll/pay-components/assignments",
            json={
                "employee_id": str(test_employee["id"]),
                "pay_component_id": component.json()["data"]["id"],
                "effective_from": "2025-01-01",
            },
            headers=payroll_headers,
        )
        data = await _calculated_run(client, payroll_headers)
        paycheck = await _paycheck_for(client, payroll_headers, data["run"]["id"], test_employee["id"])
        assert Decimal(paycheck["component_earnings"]) == Decimal("200")
        assert Decimal(paycheck["gross_pay"]) == Decimal("10200")
        # Non-taxable earnings stay out of taxable income
        assert Decimal(paycheck["taxable_income"]) == Decimal("9500")

    async def test_review_needs_paychecks(self, client, payroll_headers, test_employee):
        created = await client.post(RUNS, json=_run_body(), headers=payroll_headers)
        run_id = created.json()["data"]["id"]
        await client.post(f"{RUNS}/{run_id}/calculate", headers=payroll_headers)
        resp = await client.post(f"{RUNS}/{run_id}/review", headers=payroll_headers)
        assert resp.status_code == 409


# ═════════════════════════════════════════════════════════════════════
# LIFECYCLE
# ═════════════════════════════════════════════════════════════════════


class TestLifecycle:

    async def test_full_lifecycle(self, client, payroll_headers, payroll_setup):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]

        early = await client.post(f"{RUNS}/{run_id}/approve", headers=payroll_headers)
        assert early.status_code == 409

        reviewed = await client.post(f"{RUNS}/{run_id}/review", headers=payroll_headers)
        assert reviewed.json()["data"]["status"] == "review"

        approved = await client.post(f"{RUNS}/{run_id}/approve", headers=payroll_headers)
        assert approved.json()["data"]["status"] == "approved"
        statuses = await client.get(f"{RUNS}/{run_id}/paychecks", headers=payroll_headers)
        assert {p["status"] for p in statuses.json()["data"]} == {"approved"}

        finalized = await client.post(f"{RUNS}/{run_id}/finalize", headers=payroll_headers)
        assert finalized.json()["data"]["status"] == "finalized"
        assert finalized.json()["data"]["finalized_at"] is not None
        statuses = await client.get(f"{RUNS}/{run_id}/paychecks", headers=payroll_headers)
        assert {p["status"] for p in statuses.json()["data"]} == {"issued"}

        timesheet = await client.get(
            f"/api/v1/payroll/timesheets/{payroll_setup['timesheet_id']}", headers=payroll_headers,
        )
        assert timesheet.json()["data"]["payroll_run_id"] == run_id

        cancel = await client.post(f"{RUNS}/{run_id}/cancel", headers=payroll_headers)
        assert cancel.status_code == 409
        recalc = await client.post(f"{RUNS}/{run_id}/calculate", headers=payroll_headers)
        assert recalc.status_code == 409

    async def test_cancel_voids_paychecks(self, client, payroll_headers, payroll_setup):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]
        resp = await client.post(
            f"{RUNS}/{run_id}/cancel", json={"reason": "Wrong period"}, headers=payroll_headers,
        )
        assert resp.json()["data"]["status"] == "cancelled"
        assert resp.json()["data"]["notes"] == "Wrong period"
        paychecks = await client.get(f"{RUNS}/{run_id}/paychecks", headers=payroll_headers)
        assert {p["void_reason"] for p in paychecks.json()["data"]} == {"Wrong period"}
        totals = resp.json()["data"]
        assert totals["total_employees"] == 0
        assert Decimal(totals["total_gross"]) == Decimal("0")
        assert Decimal(totals["total_net"]) == Decimal("0")

    async def test_only_draft_deleted_or_edited(self, client, payroll_headers, payroll_setup):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]
        assert (await client.delete(f"{RUNS}/{run_id}", headers=payroll_headers)).status_code == 409
        edit = await client.patch(f"{RUNS}/{run_id}", json={"run_name": "X"}, headers=payroll_headers)
        assert edit.status_code == 409

    async def test_list_by_status(self, client, payroll_headers, payroll_setup):
        await _calculated_run(client, payroll_headers)
        await client.post(RUNS, json=_run_body(run_name="Draft"), headers=payroll_headers)
        resp = await client.get(f"{RUNS}?status=calculated", headers=payroll_headers)
        assert [r["run_name"] for r in resp.json()["data"]] == ["March 2025"]


# ═════════════════════════════════════════════════════════════════════
# PAYCHECKS
# ═════════════════════════════════════════════════════════════════════


class TestPaychecks:

    async def test_adjust_pending_paycheck(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        paycheck = await _paycheck_for(client, payroll_headers, data["run"]["id"], test_employee["id"])

        resp = await client.patch(
            f"{PAYCHECKS}/{paycheck['id']}", json={"gross_pay": "11000.00"}, headers=payroll_headers,
        )
        assert resp.status_code == 200
        assert Decimal(resp.json()["data"]["net_pay"]) == Decimal("9550")

        run = await client.get(f"{RUNS}/{data['run']['id']}", headers=payroll_headers)
        assert Decimal(run.json()["data"]["total_gross"]) == Decimal("15300")

    async def test_adjustment_cannot_go_negative(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        paycheck = await _paycheck_for(client, payroll_headers, data["run"]["id"], test_employee["id"])
        resp = await client.patch(
            f"{PAYCHECKS}/{paycheck['id']}", json={"total_taxes": "20000.00"}, headers=payroll_headers,
        )
        assert resp.status_code == 422
        assert "net_pay" in resp.json()["errors"]

    async def test_void_and_reissue(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]
        paycheck = await _paycheck_for(client, payroll_headers, run_id, test_employee["id"])

        voided = await client.post(
            f"{PAYCHECKS}/{paycheck['id']}/void", json={"reason": "Bank rejected"}, headers=payroll_headers,
        )
        assert voided.json()["data"]["status"] == "voided"
        run = await client.get(f"{RUNS}/{run_id}", headers=payroll_headers)
        assert run.json()["data"]["total_employees"] == 1

        again = await client.post(
            f"{PAYCHECKS}/{paycheck['id']}/void", json={"reason": "x"}, headers=payroll_headers,
        )
        assert again.status_code == 409

        reissued = await client.post(f"{PAYCHECKS}/{paycheck['id']}/reissue", headers=payroll_headers)
        assert reissued.status_code == 201
        assert reissued.json()["data"]["reissued_from_id"] == paycheck["id"]
        assert reissued.json()["data"]["status"] == "pending"
        assert Decimal(reissued.json()["data"]["net_pay"]) == Decimal(paycheck["net_pay"])

        run = await client.get(f"{RUNS}/{run_id}", headers=payroll_headers)
        assert Decimal(run.json()["data"]["total_net"]) == Decimal("12420")

    async def test_reissue_requires_void(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        paycheck = await _paycheck_for(client, payroll_headers, data["run"]["id"], test_employee["id"])
        resp = await client.post(f"{PAYCHECKS}/{paycheck['id']}/reissue", headers=payroll_headers)
        assert resp.status_code == 409

    async def test_reissue_with_adjustments(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]
        paycheck = await _paycheck_for(client, payroll_headers, run_id, test_employee["id"])
        await client.post(
            f"{PAYCHECKS}/{paycheck['id']}/void", json={"reason": "Wrong amount"}, headers=payroll_headers,
        )

        reissued = await client.post(
            f"{PAYCHECKS}/{paycheck['id']}/reissue",
            json={"gross_pay": "11000.00", "payment_date": "2025-04-02", "payment_method": "check"},
            headers=payroll_headers,
        )
        assert reissued.status_code == 201
        body = reissued.json()["data"]
        assert Decimal(body["net_pay"]) == Decimal("9550")
        assert body["payment_date"] == "2025-04-02"
        assert body["payment_method"] == "check"

        run = await client.get(f"{RUNS}/{run_id}", headers=payroll_headers)
        assert Decimal(run.json()["data"]["total_gross"]) == Decimal("15300")

        negative = await client.post(
            f"{PAYCHECKS}/{paycheck['id']}/reissue", json={"total_taxes": "50000"}, headers=payroll_headers,
        )
        assert negative.status_code == 422
        assert "net_pay" in negative.json()["errors"]

    async def test_no_reissue_into_closed_run(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]
        paycheck = await _paycheck_for(client, payroll_headers, run_id, test_employee["id"])
        await client.post(f"{RUNS}/{run_id}/cancel", headers=payroll_headers)

        resp = await client.post(f"{PAYCHECKS}/{paycheck['id']}/reissue", headers=payroll_headers)
        assert resp.status_code == 409
        run = await client.get(f"{RUNS}/{run_id}", headers=payroll_headers)
        assert Decimal(run.json()["data"]["total_net"]) == Decimal("0")
        pending = await client.get(f"{PAYCHECKS}?payroll_run_id={run_id}&status=pending", headers=payroll_headers)
        assert pending.json()["data"] == []

    async def test_filters_and_employee_history(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        by_employee = await client.get(
            f"{PAYCHECKS}?employee_id={test_employee['id']}", headers=payroll_headers,
        )
        assert len(by_employee.json()["data"]) == 1
        history = await client.get(
            f"{PAYCHECKS}/employees/{test_employee['id']}?year=2025", headers=payroll_headers,
        )
        assert [p["payroll_run_id"] for p in history.json()["data"]] == [data["run"]["id"]]

    async def test_year_to_date_counts_paid_only(self, client, payroll_headers, payroll_setup, test_employee):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]

        pending = await client.get(
            f"{PAYCHECKS}/employees/{test_employee['id']}/ytd?year=2025", headers=payroll_headers,
        )
        assert pending.json()["data"]["paycheck_count"] == 0

        for step in ("review", "approve", "finalize"):
            await client.post(f"{RUNS}/{run_id}/{step}", headers=payroll_headers)
        resp = await client.get(
            f"{PAYCHECKS}/employees/{test_employee['id']}/ytd?year=2025", headers=payroll_headers,
        )
        ytd = resp.json()["data"]
        assert ytd["paycheck_count"] == 1
        assert Decimal(ytd["gross_pay"]) == Decimal("10000")
        assert Decimal(ytd["net_pay"]) == Decimal("8550")
        assert ytd["first_period_start"] == "2025-03-01"

    async def test_delete_pending_paycheck(self, client, payroll_headers, payroll_setup, other_employee):
        data = await _calculated_run(client, payroll_headers)
        run_id = data["run"]["id"]
        paycheck = await _paycheck_for(client, payroll_headers, run_id, other_employee["id"])
        resp = await client.delete(f"{PAYCHECKS}/{paycheck['id']}", headers=payroll_headers)
        assert resp.status_code == 200
        run = await client.get(f"{RUNS}/{run_id}", headers=payroll_headers)
        assert Decimal(run.json()["data"]["total_gross"]) == Decimal("10000")
