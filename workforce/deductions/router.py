"""Deductions router.

Routes (mounted under /api/v1/payroll/deductions):
    ""                                   — List, create
    /employee/{employee_id}              — Deductions of one employee (VIP-checked)
    /employee/{employee_id}/calculate    — Preview a payroll deduction breakdown
    /{id}                                — Get, update, delete
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import AccessType, DeductionType
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.deductions.schemas import (
    DeductionCreate,
    DeductionPreviewRequest,
    DeductionResponse,
    DeductionUpdate,
)
from workforce.deductions.service import DeductionService
from workforce.vip.dependencies import require_vip_access

router = APIRouter(prefix="", tags=["deductions"])


def _out(deduction) -> dict:
    return DeductionResponse.model_validate(deduction).model_dump(mode="json")


@router.get("")
async def list_deductions(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("deductions:read")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    deduction_type: Optional[DeductionType] = Query(None),
    is_active: Optional[bool] = Query(None),
    is_pre_tax: Optional[bool] = Query(None),
):
    result = await DeductionService.list_deductions(
        db,
        current_user.organization_id,
        pagination,
        employee_id=employee_id,
        deduction_type=deduction_type.value if deduction_type else None,
        is_active=is_active,
        is_pre_tax=is_pre_tax,
    )
    return {"data": [_out(d) for d in result.data], "meta": result.meta.model_dump()}


@router.post("", status_code=201)
async def create_deduction(
    body: DeductionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("deductions:write")),
):
    deduction = await DeductionService.create_deduction(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(deduction), "message": "Deduction created successfully."}


@router.get("/employee/{employee_id}")
async def get_employee_deductions(
    employee_id: uuid.UUID,
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("deductions:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.compensation)),
):
    deductions = await DeductionService.get_employee_deductions(
        db, current_user.organization_id, employee_id, active_only=active_only,
    )
    return {"data": [_out(d) for d in deductions], "message": f"Found {len(deductions)} deduction(s)."}


@router.post("/employee/{employee_id}/calculate")
async def preview_deductions(
    employee_id: uuid.UUID,
    body: DeductionPreviewRequest,
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("deductions:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.compensation)),
):
    breakdown = await DeductionService.calculate_for_payroll(
        db,
        current_user.organization_id,
        employee_id,
        body.gross_pay,
        body.period_start,
        body.period_end,
    )
    return {"data": breakdown.model_dump(mode="json"), "message": "Deductions calculated successfully."}


@router.get("/{deduction_id}")
async def get_deduction(
    deduction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("deductions:read")),
):
    deduction = await DeductionService.get_deduction(db, current_user.organization_id, deduction_id)
    return {"data": _out(deduction), "message": "Deduction retrieved successfully."}


@router.patch("/{deduction_id}")
async def update_deduction(
    deduction_id: uuid.UUID,
    body: DeductionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("deductions:write")),
):
    deduction = await DeductionService.update_deduction(
        db, current_user.organization_id, deduction_id, body, actor_id=current_user.id,
    )
    return {"data": _out(deduction), "message": "Deduction updated successfully."}


@router.delete("/{deduction_id}")
async def delete_deduction(
    deduction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("deductions:write")),
):
    await DeductionService.delete_deduction(
        db, current_user.organization_id, deduction_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Deduction deleted successfully."}
