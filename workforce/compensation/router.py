"""Compensation router.

Routes (mounted under /api/v1/payroll/compensation):
    ""                                  — Create a compensation record
    /employees/{employee_id}            — History (VIP-checked)
    /employees/{employee_id}/current    — Current record (VIP-checked)
    /{id}                               — Get, update, delete
"""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import AccessType
from workforce.common.crud import ensure_exists
from workforce.compensation.schemas import (
    CompensationCreate,
    CompensationResponse,
    CompensationUpdate,
)
from workforce.compensation.service import CompensationService
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.vip.dependencies import enforce_vip_access, require_vip_access

router = APIRouter(prefix="", tags=["compensation"])


def _out(compensation) -> dict:
    return CompensationResponse.model_validate(compensation).model_dump(mode="json")


@router.post("", status_code=201)
async def create_compensation(
    body: CompensationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("compensation:write")),
):
    await ensure_exists(db, Employee, body.employee_id, current_user.organization_id, "employee_id", "Employee")
    await enforce_vip_access(db, request, current_user, body.employee_id, AccessType.compensation)
    compensation = await CompensationService.create_compensation(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(compensation), "message": "Compensation created successfully."}


@router.get("/employees/{employee_id}")
async def get_compensation_history(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("compensation:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.compensation)),
):
    history = await CompensationService.get_history(db, current_user.organization_id, employee_id)
    return {"data": [_out(c) for c in history], "message": f"Found {len(history)} compensation record(s)."}


@router.get("/employees/{employee_id}/current")
async def get_current_compensation(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("compensation:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.compensation)),
):
    compensation = await CompensationService.get_current(db, current_user.organization_id, employee_id)
    if compensation is None:
        return {"data": None, "message": "Employee has no current compensation."}
    return {"data": _out(compensation), "message": "Current compensation retrieved."}


@router.get("/{compensation_id}")
async def get_compensation(
    compensation_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("compensation:read")),
):
    compensation = await CompensationService.get_compensation(db, current_user.organization_id, compensation_id)
    await enforce_vip_access(db, request, current_user, compensation.employee_id, AccessType.compensation)
    return {"data": _out(compensation), "message": "Compensation retrieved successfully."}


@router.patch("/{compensation_id}")
async def update_compensation(
    compensation_id: uuid.UUID,
    body: CompensationUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("compensation:write")),
):
    existing = await CompensationService.get_compensation(db, current_user.organization_id, compensation_id)
    await enforce_vip_access(db, request, current_user, existing.employee_id, AccessType.compensation)
    compensation = await CompensationService.update_compensation(
        db, current_user.organization_id, compensation_id, body, actor_id=current_user.id,
    )
    return {"data": _out(compensation), "message": "Compensation updated successfully."}


@router.delete("/{compensation_id}")
async def delete_compensation(
    compensation_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("compensation:write")),
):
    existing = await CompensationService.get_compensation(db, current_user.organization_id, compensation_id)
    await enforce_vip_access(db, request, current_user, existing.employee_id, AccessType.compensation)
    await CompensationService.delete_compensation(
        db, current_user.organization_id, compensation_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Compensation deleted successfully."}
