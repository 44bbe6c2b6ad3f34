"""Benefits router.

Routes (mounted under /api/v1/hris/benefits):
    /plans                                   — List, create plans
    /plans/{id}                              — Get, update, delete
    /plans/{id}/summary                      — Enrollment summary
    /plans/{id}/enrollments                  — Enrollments in a plan
    /enrollments                             — List, enroll
    /enrollments/{id}                        — Get, update
    /enrollments/{id}/terminate              — End an enrollment
    /employees/{employee_id}/enrollments     — One employee's enrollments (VIP-checked)
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import has_permission, require_permission
from workforce.benefits.schemas import (
    BenefitPlanCreate,
    BenefitPlanResponse,
    BenefitPlanUpdate,
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentTerminate,
    EnrollmentUpdate,
)
from workforce.benefits.service import BenefitPlanService, EnrollmentService
from workforce.common.constants import AccessType, BenefitPlanType, EnrollmentStatus
from workforce.common.exceptions import ForbiddenException
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.vip.dependencies import enforce_vip_access, require_vip_access

router = APIRouter(prefix="", tags=["benefits"])


def _plan(plan) -> dict:
    return BenefitPlanResponse.model_validate(plan).model_dump(mode="json")


def _enrollment(enrollment) -> dict:
    return EnrollmentResponse.model_validate(enrollment).model_dump(mode="json")


# ── Plans ───────────────────────────────────────────────────────────

@router.get("/plans")
async def list_plans(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:read")),
    pagination: PaginationParams = Depends(),
    plan_type: Optional[BenefitPlanType] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
):
    result = await BenefitPlanService.list_plans(
        db,
        current_user.organization_id,
        pagination,
        plan_type=plan_type.value if plan_type else None,
        is_active=is_active,
        search=search,
    )
    return {"data": [_plan(p) for p in result.data], "meta": result.meta.model_dump()}


@router.post("/plans", status_code=201)
async def create_plan(
    body: BenefitPlanCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    plan = await BenefitPlanService.create_plan(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _plan(plan), "message": "Benefit plan created successfully."}


@router.get("/plans/{plan_id}")
async def get_plan(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:read")),
):
    plan = await BenefitPlanService.get_plan(db, current_user.organization_id, plan_id)
    return {"data": _plan(plan), "message": "Benefit plan retrieved successfully."}


@router.patch("/plans/{plan_id}")
async def update_plan(
    plan_id: uuid.UUID,
    body: BenefitPlanUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    plan = await BenefitPlanService.update_plan(
        db, current_user.organization_id, plan_id, body, actor_id=current_user.id,
    )
    return {"data": _plan(plan), "message": "Benefit plan updated successfully."}


@router.delete("/plans/{plan_id}")
async def delete_plan(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    await BenefitPlanService.delete_plan(
        db, current_user.organization_id, plan_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Benefit plan deleted successfully."}


@router.get("/plans/{plan_id}/summary")
async def get_enrollment_summary(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    summary = await BenefitPlanService.get_enrollment_summary(
        db, current_user.organization_id, plan_id,
    )
    return {"data": summary.model_dump(mode="json"), "message": "Enrollment summary retrieved successfully."}


@router.get("/plans/{plan_id}/enrollments")
async def get_plan_enrollments(
    plan_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    enrollments = await EnrollmentService.get_plan_enrollments(
        db, current_user.organization_id, plan_id,
    )
    return {
        "data": [_enrollment(e) for e in enrollments],
        "message": f"Found {len(enrollments)} enrollment(s).",
    }


# ── Enrollments ─────────────────────────────────────────────────────

@router.get("/enrollments")
async def list_enrollments(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    plan_id: Optional[uuid.UUID] = Query(None),
    status: Optional[EnrollmentStatus] = Query(None),
):
    result = await EnrollmentService.list_enrollments(
        db,
        current_user.organization_id,
        pagination,
        employee_id=employee_id,
        plan_id=plan_id,
        status=status.value if status else None,
    )
    return {"data": [_enrollment(e) for e in result.data], "meta": result.meta.model_dump()}


@router.post("/enrollments", status_code=201)
async def enroll_employee(
    body: EnrollmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    enrollment = await EnrollmentService.enroll_employee(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _enrollment(enrollment), "message": "Employee enrolled successfully."}


@router.get("/enrollments/{enrollment_id}")
async def get_enrollment(
    enrollment_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:read")),
):
    enrollment = await EnrollmentService.get_enrollment(
        db, current_user.organization_id, enrollment_id,
    )
    if enrollment.employee_id != current_user.id and not has_permission(
        request.state.user_role, "benefits:write",
    ):
        raise ForbiddenException(detail="You can only view your own enrollments.")
    await enforce_vip_access(db, request, current_user, enrollment.employee_id, AccessType.benefits)
    return {"data": _enrollment(enrollment), "message": "Enrollment retrieved successfully."}


@router.patch("/enrollments/{enrollment_id}")
async def update_enrollment(
    enrollment_id: uuid.UUID,
    body: EnrollmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    enrollment = await EnrollmentService.update_enrollment(
        db, current_user.organization_id, enrollment_id, body, actor_id=current_user.id,
    )
    return {"data": _enrollment(enrollment), "message": "Enrollment updated successfully."}


@router.post("/enrollments/{enrollment_id}/terminate")
async def terminate_enrollment(
    enrollment_id: uuid.UUID,
    body: EnrollmentTerminate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("benefits:write")),
):
    enrollment = await EnrollmentService.terminate_enrollment(
        db, current_user.organization_id, enrollment_id, body, actor_id=current_user.id,
    )
    return {"data": _enrollment(enrollment), "message": "Enrollment terminated successfully."}


@router.get("/employees/{employee_id}/enrollments")
async def get_employee_enrollments(
    employee_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_vip_access(AccessType.benefits)),
):
    """Employees may read their own enrollments; others need ``benefits:write``."""
    if current_user.id != employee_id and not has_permission(
        request.state.user_role, "benefits:write",
    ):
        raise ForbiddenException(detail="You can only view your own enrollments.")
    enrollments = await EnrollmentService.get_employee_enrollments(
        db, current_user.organization_id, employee_id,
    )
    return {
        "data": [_enrollment(e) for e in enrollments],
        "message": f"Found {len(enrollments)} enrollment(s).",
    }
