"""Tax rules router.

Routes (mounted under /api/v1/payroll/tax):
    /rule-sets                      — List, create rule sets
    /rule-sets/applicable           — Rule sets in force for a jurisdiction
    /rule-sets/{id}                 — Get (with brackets), update, delete
    /rule-sets/{id}/brackets        — List, add brackets
    /brackets/{id}                  — Update, delete a bracket
    /calculate                      — Preview taxes on an amount
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.dates import today
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.tax.schemas import (
    TaxBracketCreate,
    TaxBracketResponse,
    TaxBracketUpdate,
    TaxCalculationRequest,
    TaxRuleSetCreate,
    TaxRuleSetResponse,
    TaxRuleSetUpdate,
)
from workforce.tax.service import TaxService

router = APIRouter(prefix="", tags=["tax"])


def _out(rule_set) -> dict:
    return TaxRuleSetResponse.model_validate(rule_set).model_dump(mode="json")


def _bracket(bracket) -> dict:
    return TaxBracketResponse.model_validate(bracket).model_dump(mode="json")


# ── Rule sets ───────────────────────────────────────────────────────

@router.get("/rule-sets")
async def list_rule_sets(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:read")),
    pagination: PaginationParams = Depends(),
    tax_type: Optional[str] = Query(None),
    country: Optional[str] = Query(None, min_length=2, max_length=2),
    state: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    result = await TaxService.list_rule_sets(
        db, current_user.organization_id, pagination,
        tax_type=tax_type, country=country, state=state, is_active=is_active,
    )
    return {"data": [_out(r) for r in result.data], "meta": result.meta.model_dump()}


@router.post("/rule-sets", status_code=201)
async def create_rule_set(
    body: TaxRuleSetCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:write")),
):
    rule_set = await TaxService.create_rule_set(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(rule_set), "message": "Tax rule set created successfully."}


@router.get("/rule-sets/applicable")
async def get_applicable_rule_sets(
    country: str = Query(..., min_length=2, max_length=2),
    state: Optional[str] = Query(None),
    locality: Optional[str] = Query(None),
    as_of_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:read")),
):
    rule_sets = await TaxService.get_applicable_rule_sets(
        db, current_user.organization_id, country, as_of_date or today(),
        state=state, locality=locality,
    )
    return {"data": [_out(r) for r in rule_sets], "message": f"Found {len(rule_sets)} applicable rule set(s)."}


@router.get("/rule-sets/{rule_set_id}")
async def get_rule_set(
    rule_set_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:read")),
):
    detail = await TaxService.get_rule_set_detail(db, current_user.organization_id, rule_set_id)
    return {"data": detail.model_dump(mode="json"), "message": "Tax rule set retrieved successfully."}


@router.patch("/rule-sets/{rule_set_id}")
async def update_rule_set(
    rule_set_id: uuid.UUID,
    body: TaxRuleSetUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:write")),
):
    rule_set = await TaxService.update_rule_set(
        db, current_user.organization_id, rule_set_id, body, actor_id=current_user.id,
    )
    return {"data": _out(rule_set), "message": "Tax rule set updated successfully."}


@router.delete("/rule-sets/{rule_set_id}")
async def delete_rule_set(
    rule_set_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:write")),
):
    await TaxService.delete_rule_set(
        db, current_user.organization_id, rule_set_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Tax rule set deleted successfully."}


# ── Brackets ────────────────────────────────────────────────────────

@router.get("/rule-sets/{rule_set_id}/brackets")
async def list_brackets(
    rule_set_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:read")),
):
    rule_set = await TaxService.get_rule_set(db, current_user.organization_id, rule_set_id)
    brackets = await TaxService.get_brackets(db, current_user.organization_id, rule_set.id)
    return {"data": [_bracket(b) for b in brackets], "message": f"Found {len(brackets)} bracket(s)."}


@router.post("/rule-sets/{rule_set_id}/brackets", status_code=201)
async def create_bracket(
    rule_set_id: uuid.UUID,
    body: TaxBracketCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:write")),
):
    bracket = await TaxService.create_bracket(
        db, current_user.organization_id, rule_set_id, body, actor_id=current_user.id,
    )
    return {"data": _bracket(bracket), "message": "Tax bracket created successfully."}


@router.patch("/brackets/{bracket_id}")
async def update_bracket(
    bracket_id: uuid.UUID,
    body: TaxBracketUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:write")),
):
    bracket = await TaxService.update_bracket(
        db, current_user.organization_id, bracket_id, body, actor_id=current_user.id,
    )
    return {"data": _bracket(bracket), "message": "Tax bracket updated successfully."}


@router.delete("/brackets/{bracket_id}")
async def delete_bracket(
    bracket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:write")),
):
    await TaxService.delete_bracket(
        db, current_user.organization_id, bracket_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Tax bracket deleted successfully."}


# ── Calculation ─────────────────────────────────────────────────────

@router.post("/calculate")
async def calculate_taxes(
    body: TaxCalculationRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("tax:read")),
):
    breakdown = await TaxService.calculate_employee_taxes(
        db,
        current_user.organization_id,
        body.taxable_income,
        country=body.country.upper() if body.country else None,
        state=body.state,
        locality=body.locality,
        as_of=body.as_of_date,
        ytd_gross=body.ytd_gross,
    )
    return {"data": breakdown.model_dump(mode="json"), "message": "Taxes calculated."}
