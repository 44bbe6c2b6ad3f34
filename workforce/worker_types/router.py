"""Worker types router.

Routes (mounted under /api/v1/payroll/worker-types):
    ""                                  — List, create templates
    /counts                             — Current employees per type
    /assignments                        — Assign a type to an employee
    /assignments/bulk                   — Assign a type to many employees
    /employees/{employee_id}/current    — Current assignment
    /employees/{employee_id}/history    — Assignment history
    /{id}                               — Get, update, delete a template
    /{id}/employees                     — Employees currently of this type
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.core_hr.schemas import EmployeeSummary
from workforce.database import get_db
from workforce.worker_types.schemas import (
    AssignmentCreate,
    AssignmentResponse,
    BulkAssignRequest,
    WorkerTypeCreate,
    WorkerTypeResponse,
    WorkerTypeUpdate,
)
from workforce.worker_types.service import WorkerTypeService

router = APIRouter(prefix="", tags=["worker-types"])


def _out(worker_type) -> dict:
    return WorkerTypeResponse.model_validate(worker_type).model_dump(mode="json")


def _assignment(a) -> dict:
    return AssignmentResponse.model_validate(a).model_dump(mode="json")


@router.get("")
async def list_worker_types(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:read")),
    pagination: PaginationParams = Depends(),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
):
    result = await WorkerTypeService.list_worker_types(
        db, current_user.organization_id, pagination, is_active=is_active, search=search,
    )
    return {"data": [_out(w) for w in result.data], "meta": result.meta.model_dump()}


@router.post("", status_code=201)
async def create_worker_type(
    body: WorkerTypeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:write")),
):
    worker_type = await WorkerTypeService.create_worker_type(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(worker_type), "message": "Worker type created successfully."}


@router.get("/counts")
async def get_employee_counts(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:read")),
):
    counts = await WorkerTypeService.get_employee_counts(db, current_user.organization_id)
    return {"data": [c.model_dump(mode="json") for c in counts], "message": "Employee counts retrieved."}


@router.post("/assignments", status_code=201)
async def assign_worker_type(
    body: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:write")),
):
    assignment = await WorkerTypeService.assign_worker_type(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _assignment(assignment), "message": "Worker type assigned successfully."}


@router.post("/assignments/bulk")
async def bulk_assign(
    body: BulkAssignRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:write")),
):
    results = await WorkerTypeService.bulk_assign(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    succeeded = sum(r.success for r in results)
    return {
        "data": [r.model_dump(mode="json") for r in results],
        "message": f"Assigned {succeeded} of {len(results)} employee(s).",
    }


@router.get("/employees/{employee_id}/current")
async def get_current_assignment(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:read")),
):
    assignment = await WorkerTypeService.get_current_assignment(
        db, current_user.organization_id, employee_id,
    )
    if assignment is None:
        return {"data": None, "message": "Employee has no current worker type."}
    return {"data": _assignment(assignment), "message": "Current assignment retrieved."}


@router.get("/employees/{employee_id}/history")
async def get_assignment_history(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:read")),
):
    history = await WorkerTypeService.get_assignment_history(
        db, current_user.organization_id, employee_id,
    )
    return {"data": [_assignment(a) for a in history], "message": f"Found {len(history)} assignment(s)."}


@router.get("/{worker_type_id}")
async def get_worker_type(
    worker_type_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:read")),
):
    worker_type = await WorkerTypeService.get_worker_type(db, current_user.organization_id, worker_type_id)
    return {"data": _out(worker_type), "message": "Worker type retrieved successfully."}


@router.patch("/{worker_type_id}")
async def update_worker_type(
    worker_type_id: uuid.UUID,
    body: WorkerTypeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:write")),
):
    worker_type = await WorkerTypeService.update_worker_type(
        db, current_user.organization_id, worker_type_id, body, actor_id=current_user.id,
    )
    return {"data": _out(worker_type), "message": "Worker type updated successfully."}


@router.delete("/{worker_type_id}")
async def delete_worker_type(
    worker_type_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:write")),
):
    await WorkerTypeService.delete_worker_type(
        db, current_user.organization_id, worker_type_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Worker type deleted successfully."}


@router.get("/{worker_type_id}/employees")
async def get_employees_by_type(
    worker_type_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("worker_types:read")),
    pagination: PaginationParams = Depends(),
):
    result = await WorkerTypeService.get_employees_by_type(
        db, current_user.organization_id, worker_type_id, pagination,
    )
    return {
        "data": [EmployeeSummary.model_validate(e).model_dump(mode="json") for e in result.data],
        "meta": result.meta.model_dump(),
    }
