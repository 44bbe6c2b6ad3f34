"""Approvals router.

Routes (mounted under /api/v1/payroll/approvals):
    /rules                      — List, create approval rules
    /rules/{id}                 — Get, update, delete a rule
    /requests                   — Open a request (if a rule requires one)
    /requests/pending           — Pending requests, most urgent first
    /requests/history           — Requests for one referenced entity
    /requests/expire            — Expire overdue requests
    /requests/{id}              — Request with its votes
    /requests/{id}/approve      — Vote to approve
    /requests/{id}/reject       — Reject with a reason
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.approvals.schemas import (
    ApprovalCheck,
    ApprovalDecision,
    ApprovalRejection,
    ApprovalRequestCreate,
    ApprovalRequestResponse,
    ApprovalRuleCreate,
    ApprovalRuleResponse,
    ApprovalRuleUpdate,
)
from workforce.approvals.service import ApprovalService
from workforce.auth.dependencies import require_permission
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db

router = APIRouter(prefix="", tags=["approvals"])


def _rule(rule) -> dict:
    return ApprovalRuleResponse.model_validate(rule).model_dump(mode="json")


def _request(approval) -> dict:
    return ApprovalRequestResponse.model_validate(approval).model_dump(mode="json")


# ── Rules ───────────────────────────────────────────────────────────

@router.get("/rules")
async def list_rules(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:read")),
    pagination: PaginationParams = Depends(),
    rule_type: Optional[str] = Query(None),
    enabled: Optional[bool] = Query(None),
):
    result = await ApprovalService.list_rules(
        db, current_user.organization_id, pagination, rule_type=rule_type, enabled=enabled,
    )
    return {"data": [_rule(r) for r in result.data], "meta": result.meta.model_dump()}


@router.post("/rules", status_code=201)
async def create_rule(
    body: ApprovalRuleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:write")),
):
    rule = await ApprovalService.create_rule(db, current_user.organization_id, body, actor_id=current_user.id)
    return {"data": _rule(rule), "message": "Approval rule created successfully."}


@router.get("/rules/{rule_id}")
async def get_rule(
    rule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:read")),
):
    rule = await ApprovalService.get_rule(db, current_user.organization_id, rule_id)
    return {"data": _rule(rule), "message": "Approval rule retrieved successfully."}


@router.patch("/rules/{rule_id}")
async def update_rule(
    rule_id: uuid.UUID,
    body: ApprovalRuleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:write")),
):
    rule = await ApprovalService.update_rule(
        db, current_user.organization_id, rule_id, body, actor_id=current_user.id,
    )
    return {"data": _rule(rule), "message": "Approval rule updated successfully."}


@router.delete("/rules/{rule_id}")
async def delete_rule(
    rule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:write")),
):
    await ApprovalService.delete_rule(db, current_user.organization_id, rule_id, actor_id=current_user.id)
    return {"data": None, "message": "Approval rule deleted successfully."}


# ── Requests ────────────────────────────────────────────────────────

@router.post("/requests")
async def create_request(
    body: ApprovalRequestCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:read")),
):
    approval = await ApprovalService.create_approval_request(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    if approval is None:
        check = ApprovalCheck(requires_approval=False)
        return {"data": check.model_dump(mode="json"), "message": "No approval required."}
    response.status_code = 201
    check = ApprovalCheck(requires_approval=True, request=ApprovalRequestResponse.model_validate(approval))
    return {"data": check.model_dump(mode="json"), "message": "Approval request created."}


@router.get("/requests/pending")
async def list_pending(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:read")),
    pagination: PaginationParams = Depends(),
    request_type: Optional[str] = Query(None),
):
    result = await ApprovalService.list_pending(
        db, current_user.organization_id, pagination, request_type=request_type,
    )
    return {"data": [_request(r) for r in result.data], "meta": result.meta.model_dump()}


@router.get("/requests/history")
async def get_history(
    reference_type: str = Query(..., min_length=1),
    reference_id: uuid.UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:read")),
):
    history = await ApprovalService.get_history(
        db, current_user.organization_id, reference_type, reference_id,
    )
    return {
        "data": [h.model_dump(mode="json") for h in history],
        "message": f"Found {len(history)} approval request(s).",
    }


@router.post("/requests/expire")
async def expire_requests(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:write")),
):
    count = await ApprovalService.expire_overdue(db, current_user.organization_id, actor_id=current_user.id)
    return {"data": {"expired": count}, "message": f"Expired {count} request(s)."}


@router.get("/requests/{request_id}")
async def get_request(
    request_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:read")),
):
    detail = await ApprovalService.get_request_detail(db, current_user.organization_id, request_id)
    return {"data": detail.model_dump(mode="json"), "message": "Approval request retrieved successfully."}


@router.post("/requests/{request_id}/approve")
async def approve_request(
    request_id: uuid.UUID,
    request: Request,
    body: Optional[ApprovalDecision] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:write")),
):
    approval = await ApprovalService.approve_request(
        db, current_user.organization_id, request_id, current_user,
        request.state.user_role, body.comments if body else None,
    )
    return {"data": _request(approval), "message": f"Approval recorded; request is {approval.status}."}


@router.post("/requests/{request_id}/reject")
async def reject_request(
    request_id: uuid.UUID,
    body: ApprovalRejection,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("approvals:write")),
):
    approval = await ApprovalService.reject_request(
        db, current_user.organization_id, request_id, current_user,
        request.state.user_role, body.reason,
    )
    return {"data": _request(approval), "message": "Approval request rejected."}
