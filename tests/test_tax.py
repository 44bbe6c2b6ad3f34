"""Tax tests — bracket math, allowances and caps, rule-set API, calculation."""

from __future__ import annotations

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from workforce.tax.service import (
    calculate_bracket_tax,
    calculate_flat_rate_tax,
    taxable_for_rule,
)

BASE = "/api/v1/payroll/tax"


def _bracket(order, low, high, rate, fixed="0"):
    return SimpleNamespace(
        bracket_order=order,
        income_min=Decimal(low),
        income_max=Decimal(high) if high is not None else None,
        rate_percentage=Decimal(rate),
        fixed_amount=Decimal(fixed),
    )


PROGRESSIVE = [
    _bracket(2, "1000", "3000", "20"),
    _bracket(1, "0", "1000", "10"),
    _bracket(3, "3000", None, "30"),
]


# ═════════════════════════════════════════════════════════════════════
# PURE CALCULATIONS
# ═════════════════════════════════════════════════════════════════════


class TestBracketMath:

    def test_spans_every_bracket(self):
        assert calculate_bracket_tax(Decimal("5000"), PROGRESSIVE) == Decimal("1100.00")

    def test_inside_first_bracket(self):
        assert calculate_bracket_tax(Decimal("500"), PROGRESSIVE) == Decimal("50.00")

    def test_zero_income(self):
        assert calculate_bracket_tax(Decimal("0"), PROGRESSIVE) == Decimal("0.00")

    def test_fixed_amount_added_per_touched_bracket(self):
        brackets = [_bracket(1, "0", "1000", "0", fixed="25"), _bracket(2, "1000", None, "10", fixed="5")]
        assert calculate_bracket_tax(Decimal("800"), brackets) == Decimal("25.00")
        assert calculate_bracket_tax(Decimal("1500"), brackets) == Decimal("80.00")

    def test_flat_rate(self):
        assert calculate_flat_rate_tax(Decimal("1234.56"), Decimal("1.45")) == Decimal("17.90")

    def test_half_cent_rounds_up(self):
        assert calculate_flat_rate_tax(Decimal("100.50"), Decimal("5")) == Decimal("5.03")
        assert calculate_flat_rate_tax(Decimal("100.30"), Decimal("5")) == Decimal("5.02")

    def test_allowance_per_period(self):
        rule = SimpleNamespace(allowance_per_period=Decimal("500"), annual_cap=None)
        assert taxable_for_rule(rule, Decimal("2000"), Decimal("0")) == Decimal("1500.00")
        assert taxable_for_rule(rule, Decimal("300"), Decimal("0")) == Decimal("0.00")

    def test_annual_cap_uses_ytd(self):
        rule = SimpleNamespace(allowance_per_period=Decimal("0"), annual_cap=Decimal("10000"))
        assert taxable_for_rule(rule, Decimal("5000"), Decimal("8000")) == Decimal("2000.00")
        assert taxable_for_rule(rule, Decimal("5000"), Decimal("12000")) == Decimal("0.00")


# ═════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════


@pytest.fixture
async def federal(client, payroll_headers) -> dict:
    resp = await client.post(
        f"{BASE}/rule-sets",
        json={
            "tax_type": "income",
            "tax_name": "Federal income tax",
            "country": "us",
            "effective_from": "2025-01-01",
        },
        headers=payroll_headers,
    )
    assert resp.status_code == 201
    rule_set = resp.json()["data"]
    for order, low, high, rate in ((1, "0", "1000", "10"), (2, "1000", "3000", "20"), (3, "3000", None, "30")):
        body = {"bracket_order": order, "income_min": low, "income_max": high, "rate_percentage": rate}
        created = await client.post(
            f"{BASE}/rule-sets/{rule_set['id']}/brackets", json=body, headers=payroll_headers,
        )
        assert created.status_code == 201
    return rule_set


class TestRuleSets:

    async def test_country_upper_cased(self, federal):
        assert federal["country"] == "US"
        assert federal["calculation_method"] == "bracket"

    async def test_detail_includes_brackets(self, client, payroll_headers, federal):
        resp = await client.get(f"{BASE}/rule-sets/{federal['id']}", headers=payroll_headers)
        brackets = resp.json()["data"]["brackets"]
        assert [b["bracket_order"] for b in brackets] == [1, 2, 3]
        assert brackets[2]["income_max"] is None

    async def test_flat_rate_requires_rate(self, client, payroll_headers, test_employee):
        resp = await client.post(
            f"{BASE}/rule-sets",
            json={
                "tax_type": "medicare",
                "tax_name": "Medicare",
                "country": "US",
                "effective_from": "2025-01-01",
                "calculation_method": "flat_rate",
            },
            headers=payroll_headers,
        )
        assert resp.status_code == 422

    async def test_duplicate_bracket_order(self, client, payroll_headers, federal):
        resp = await client.post(
            f"{BASE}/rule-sets/{federal['id']}/brackets",
            json={"bracket_order": 2, "income_min": "0", "rate_percentage": "5"},
            headers=payroll_headers,
        )
        assert resp.status_code == 409

    async def test_bracket_range_validated(self, client, payroll_headers, federal):
        resp = await client.post(
            f"{BASE}/rule-sets/{federal['id']}/brackets",
            json={"bracket_order": 9, "income_min": "500", "income_max": "100", "rate_percentage": "5"},
            headers=payroll_headers,
        )
        assert resp.status_code == 422

    async def test_update_end_before_start(self, client, payroll_headers, federal):
        resp = await client.patch(
            f"{BASE}/rule-sets/{federal['id']}", json={"effective_to": "2024-12-31"}, headers=payroll_headers,
        )
        assert resp.status_code == 422

    async def test_applicable_by_jurisdiction(self, client, payroll_headers, federal):
        await client.post(
            f"{BASE}/rule-sets",
            json={
                "tax_type": "state",
                "tax_name": "California",
                "country": "US",
                "state": "CA",
                "effective_from": "2025-01-01",
                "calculation_method": "flat_rate",
                "flat_rate": "4",
            },
            headers=payroll_headers,
        )
        texas = await client.get(
            f"{BASE}/rule-sets/applicable?country=US&state=TX&as_of_date=2025-06-01", headers=payroll_headers,
        )
        california = await client.get(
            f"{BASE}/rule-sets/applicable?country=US&state=CA&as_of_date=2025-06-01", headers=payroll_headers,
        )
        before = await client.get(
            f"{BASE}/rule-sets/applicable?country=US&as_of_date=2024-06-01", headers=payroll_headers,
        )
        assert [r["tax_name"] for r in texas.json()["data"]] == ["Federal income tax"]
        assert len(california.json()["data"]) == 2
        assert before.json()["data"] == []

    async def test_delete_rule_set(self, client, payroll_headers, federal):
        resp = await client.delete(f"{BASE}/rule-sets/{federal['id']}", headers=payroll_headers)
        assert resp.status_code == 200
        assert (await client.get(f"{BASE}/rule-sets/{federal['id']}", headers=payroll_headers)).status_code == 404

    async def test_unknown_rule_set(self, client, payroll_headers, test_employee):
        resp = await client.get(f"{BASE}/rule-sets/{uuid.uuid4()}", headers=payroll_headers)
        assert resp.status_code == 404

    async def test_hr_admin_cannot_manage_tax(self, client, hr_headers, test_employee):
        resp = await client.get(f"{BASE}/rule-sets", headers=hr_headers)
        assert resp.status_code == 403


class TestCalculate:

    async def test_calculate_with_cap_and_org_country(self, client, payroll_headers, federal):
        await client.post(
            f"{BASE}/rule-sets",
            json={
                "tax_type": "social_security",
                "tax_name": "Social Security",
                "country": "US",
                "effective_from": "2025-01-01",
                "calculation_method": "flat_rate",
                "flat_rate": "6.2",
                "annual_cap": "10000",
            },
            headers=payroll_headers,
        )
        resp = await client.post(
            f"{BASE}/calculate",
            json={"taxable_income": "5000", "as_of_date": "2025-06-01", "ytd_gross": "8000"},
            headers=payroll_headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        by_name = {t["tax_name"]: t for t in data["taxes"]}
        assert Decimal(by_name["Federal income tax"]["amount"]) == Decimal("1100")
        assert Decimal(by_name["Social Security"]["taxable_income"]) == Decimal("2000")
        assert Decimal(by_name["Social Security"]["amount"]) == Decimal("124")
        assert Decimal(data["total_tax"]) == Decimal("1224")
        assert Decimal(data["effective_rate"]) == Decimal("24.48")

    async def test_no_rules_means_no_tax(self, client, payroll_headers, test_employee):
        resp = await client.post(
            f"{BASE}/calculate", json={"taxable_income": "1000", "country": "DE"}, headers=payroll_headers,
        )
        data = resp.json()["data"]
        assert data["taxes"] == []
        assert Decimal(data["total_tax"]) == Decimal("0")
