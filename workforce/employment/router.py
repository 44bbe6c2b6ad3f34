"""Employment history router — mounted alongside the employee routes.

Routes (under /api/v1/hris/employees):
    /{id}/employment-history          — All periods, newest first
    /{id}/employment-history/current  — Current period
    /{id}/terminate                   — Close current period, mark terminated
    /{id}/rehire-eligibility          — Eligibility check
    /{id}/rehire                      — Reactivate with a new period
"""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.core_hr.models import Employee
from workforce.core_hr.schemas import EmployeeResponse
from workforce.database import get_db
from workforce.employment.schemas import (
    EmploymentChangeResponse,
    EmploymentHistoryResponse,
    RehireRequest,
    TerminateRequest,
)
from workforce.employment.service import EmploymentHistoryService

router = APIRouter(prefix="", tags=["employment-history"])


def _change_response(result: dict) -> dict:
    return EmploymentChangeResponse(
        employee=EmployeeResponse.model_validate(result["employee"]),
        employment_history=EmploymentHistoryResponse.model_validate(result["employment_history"]),
    ).model_dump(mode="json")


@router.get("/{employee_id}/employment-history")
async def get_employment_history(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:read")),
):
    records = await EmploymentHistoryService.get_employment_history(
        db, current_user.organization_id, employee_id,
    )
    return {
        "data": [EmploymentHistoryResponse.model_validate(r).model_dump(mode="json") for r in records],
        "message": f"Found {len(records)} employment period(s).",
    }


@router.get("/{employee_id}/employment-history/current")
async def get_current_employment(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:read")),
):
    record = await EmploymentHistoryService.get_current_employment(
        db, current_user.organization_id, employee_id,
    )
    return {
        "data": EmploymentHistoryResponse.model_validate(record).model_dump(mode="json") if record else None,
        "message": "Current employment retrieved." if record else "No current employment.",
    }


@router.post("/{employee_id}/terminate")
async def terminate_employee(
    employee_id: uuid.UUID,
    body: TerminateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employment:write")),
):
    result = await EmploymentHistoryService.terminate_employee(
        db, current_user.organization_id, employee_id, body, actor_id=current_user.id,
    )
    return {"data": _change_response(result), "message": "Employee terminated successfully."}


@router.get("/{employee_id}/rehire-eligibility")
async def check_rehire_eligibility(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employment:write")),
):
    eligibility = await EmploymentHistoryService.check_rehire_eligibility(
        db, current_user.organization_id, employee_id,
    )
    return {"data": eligibility.model_dump(mode="json"), "message": eligibility.reason or "Eligible for rehire."}


@router.post("/{employee_id}/rehire")
async def rehire_employee(
    employee_id: uuid.UUID,
    body: RehireRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employment:write")),
):
    result = await EmploymentHistoryService.rehire_employee(
        db, current_user.organization_id, employee_id, body, actor_id=current_user.id,
    )
    return {"data": _change_response(result), "message": "Employee rehired successfully."}
