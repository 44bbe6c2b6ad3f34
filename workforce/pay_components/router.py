"""Pay components router.

Routes (mounted under /api/v1/payroll/pay-components):
    ""                                  — List, create components
    /assignments                        — Assign a component to an employee
    /assignments/{id}                   — Update, remove an assignment
    /employees/{employee_id}            — Assignments of one employee (VIP-checked)
    /{id}                               — Get, update, delete a component
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import AccessType, ComponentType
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.pay_components.schemas import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentUpdate,
    PayComponentCreate,
    PayComponentResponse,
    PayComponentUpdate,
)
from workforce.pay_components.service import PayComponentService
from workforce.vip.dependencies import require_vip_access

router = APIRouter(prefix="", tags=["pay-components"])


def _out(component) -> dict:
    return PayComponentResponse.model_validate(component).model_dump(mode="json")


def _assignment(a) -> dict:
    return AssignmentResponse.model_validate(a).model_dump(mode="json")


@router.get("")
async def list_components(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:read")),
    pagination: PaginationParams = Depends(),
    component_type: Optional[ComponentType] = Query(None),
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
):
    result = await PayComponentService.list_components(
        db,
        current_user.organization_id,
        pagination,
        component_type=component_type.value if component_type else None,
        category=category,
        is_active=is_active,
        search=search,
    )
    return {"data": [_out(c) for c in result.data], "meta": result.meta.model_dump()}


@router.post("", status_code=201)
async def create_component(
    body: PayComponentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:write")),
):
    component = await PayComponentService.create_component(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(component), "message": "Pay component created successfully."}


# ── Assignments ─────────────────────────────────────────────────────

@router.post("/assignments", status_code=201)
async def assign_component(
    body: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:write")),
):
    assignment = await PayComponentService.assign_component(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _assignment(assignment), "message": "Pay component assigned successfully."}


@router.patch("/assignments/{assignment_id}")
async def update_assignment(
    assignment_id: uuid.UUID,
    body: AssignmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:write")),
):
    assignment = await PayComponentService.update_assignment(
        db, current_user.organization_id, assignment_id, body, actor_id=current_user.id,
    )
    return {"data": _assignment(assignment), "message": "Assignment updated successfully."}


@router.delete("/assignments/{assignment_id}")
async def remove_assignment(
    assignment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:write")),
):
    await PayComponentService.remove_assignment(
        db, current_user.organization_id, assignment_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Assignment removed successfully."}


@router.get("/employees/{employee_id}")
async def get_employee_components(
    employee_id: uuid.UUID,
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("pay_components:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.compensation)),
):
    assignments = await PayComponentService.get_employee_components(
        db, current_user.organization_id, employee_id, active_only=active_only,
    )
    return {
        "data": [_assignment(a) for a in assignments],
        "message": f"Found {len(assignments)} assignment(s).",
    }


# ── /{component_id} ─────────────────────────────────────────────────

@router.get("/{component_id}")
async def get_component(
    component_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:read")),
):
    component = await PayComponentService.get_component(db, current_user.organization_id, component_id)
    return {"data": _out(component), "message": "Pay component retrieved successfully."}


@router.patch("/{component_id}")
async def update_component(
    component_id: uuid.UUID,
    body: PayComponentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:write")),
):
    component = await PayComponentService.update_component(
        db, current_user.organization_id, component_id, body, actor_id=current_user.id,
    )
    return {"data": _out(component), "message": "Pay component updated successfully."}


@router.delete("/{component_id}")
async def delete_component(
    component_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:write")),
):
    await PayComponentService.delete_component(
        db, current_user.organization_id, component_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Pay component deleted successfully."}
