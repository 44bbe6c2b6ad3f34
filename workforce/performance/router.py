"""Performance reviews router.

Routes (mounted under /api/v1/hris/performance-reviews):
    ""                              — List, create
    /employee/{employee_id}/summary — Review summary (VIP-checked)
    /{id}                           — Get (VIP-checked), update, delete (draft only)
    /{id}/submit                    — draft / in_progress → submitted
    /{id}/complete                  — submitted → completed
    /{id}/cancel                    — → cancelled
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import AccessType, ReviewStatus, ReviewType
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.performance.schemas import (
    ReviewCancel,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from workforce.performance.service import PerformanceService
from workforce.vip.dependencies import enforce_vip_access, require_vip_access

router = APIRouter(prefix="", tags=["performance"])


def _out(review) -> dict:
    return ReviewResponse.model_validate(review).model_dump(mode="json")


@router.get("")
async def list_reviews(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:read")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    reviewer_id: Optional[uuid.UUID] = Query(None),
    status: Optional[ReviewStatus] = Query(None),
    review_type: Optional[ReviewType] = Query(None),
):
    result = await PerformanceService.list_reviews(
        db,
        current_user.organization_id,
        pagination,
        employee_id=employee_id,
        reviewer_id=reviewer_id,
        status=status.value if status else None,
        review_type=review_type.value if review_type else None,
    )
    return {"data": [_out(r) for r in result.data], "meta": result.meta.model_dump()}


@router.post("", status_code=201)
async def create_review(
    body: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:write")),
):
    review = await PerformanceService.create_review(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(review), "message": "Performance review created successfully."}


@router.get("/employee/{employee_id}/summary")
async def get_employee_summary(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("performance:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.performance)),
):
    summary = await PerformanceService.get_employee_summary(
        db, current_user.organization_id, employee_id,
    )
    return {"data": summary.model_dump(mode="json"), "message": "Review summary retrieved successfully."}


@router.get("/{review_id}")
async def get_review(
    review_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:read")),
):
    review = await PerformanceService.get_review(db, current_user.organization_id, review_id)
    await enforce_vip_access(db, request, current_user, review.employee_id, AccessType.performance)
    return {"data": _out(review), "message": "Performance review retrieved successfully."}


@router.patch("/{review_id}")
async def update_review(
    review_id: uuid.UUID,
    body: ReviewUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:write")),
):
    review = await PerformanceService.update_review(
        db, current_user.organization_id, review_id, body, actor_id=current_user.id,
    )
    return {"data": _out(review), "message": "Performance review updated successfully."}


@router.post("/{review_id}/submit")
async def submit_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:write")),
):
    review = await PerformanceService.submit_review(
        db, current_user.organization_id, review_id, actor_id=current_user.id,
    )
    return {"data": _out(review), "message": "Performance review submitted successfully."}


@router.post("/{review_id}/complete")
async def complete_review(
    review_id: uuid.UUID,
    employee_comments: Optional[str] = Body(None, embed=True),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:write")),
):
    review = await PerformanceService.complete_review(
        db,
        current_user.organization_id,
        review_id,
        employee_comments=employee_comments,
        actor_id=current_user.id,
    )
    return {"data": _out(review), "message": "Performance review completed successfully."}


@router.post("/{review_id}/cancel")
async def cancel_review(
    review_id: uuid.UUID,
    body: ReviewCancel,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:write")),
):
    review = await PerformanceService.cancel_review(
        db, current_user.organization_id, review_id, reason=body.reason, actor_id=current_user.id,
    )
    return {"data": _out(review), "message": "Performance review cancelled successfully."}


@router.delete("/{review_id}")
async def delete_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("performance:write")),
):
    await PerformanceService.delete_review(
        db, current_user.organization_id, review_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Performance review deleted successfully."}
