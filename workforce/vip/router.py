"""VIP router — VIP flags, access-control rules, access log.

Routes:
    /vip/employees                              — List VIP employees
    /vip/count                                  — VIP totals
    /vip/employees/{id}                         — Get / set / remove VIP status
    /vip/employees/{id}/access-control          — Update access-control rules
    /vip/employees/{id}/access-log              — Access decisions for an employee
    /vip/employees/{id}/check-access            — Evaluate access for the caller
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import get_current_user, require_permission
from workforce.common.constants import AccessType, RestrictionLevel
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.vip.schemas import (
    AccessControlResponse,
    AccessControlUpdate,
    AccessLogResponse,
    MarkVIPRequest,
    VIPEmployeeItem,
)
from workforce.vip.service import AccessContext, VIPService

router = APIRouter(prefix="", tags=["vip"])


@router.get("/employees")
async def list_vip_employees(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("vip:read")),
    pagination: PaginationParams = Depends(),
    is_restricted: Optional[bool] = Query(None),
    restriction_level: Optional[RestrictionLevel] = Query(None),
    search: Optional[str] = Query(None),
):
    result = await VIPService.list_vip_employees(
        db,
        current_user.organization_id,
        pagination,
        is_restricted=is_restricted,
        restriction_level=restriction_level.value if restriction_level else None,
        search=search,
    )
    return {
        "data": [VIPEmployeeItem.model_validate(e).model_dump(mode="json") for e in result.data],
        "meta": result.meta.model_dump(),
    }


@router.get("/count")
async def get_vip_count(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("vip:read")),
):
    count = await VIPService.get_vip_count(db, current_user.organization_id)
    return {"data": count.model_dump(), "message": "VIP count retrieved successfully."}


@router.get("/employees/{employee_id}")
async def get_vip_status(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("vip:read")),
):
    status = await VIPService.get_vip_status(db, current_user.organization_id, employee_id)
    return {"data": status.model_dump(mode="json"), "message": "VIP status retrieved successfully."}


@router.put("/employees/{employee_id}")
async def mark_as_vip(
    employee_id: uuid.UUID,
    body: MarkVIPRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("vip:manage")),
):
    status = await VIPService.mark_as_vip(
        db, current_user.organization_id, employee_id, body, actor_id=current_user.id,
    )
    return {"data": status.model_dump(mode="json"), "message": "VIP status updated successfully."}


@router.delete("/employees/{employee_id}")
async def remove_vip_status(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("vip:manage")),
):
    status = await VIPService.remove_vip_status(
        db, current_user.organization_id, employee_id, actor_id=current_user.id,
    )
    return {"data": status.model_dump(mode="json"), "message": "VIP status removed successfully."}


@router.patch("/employees/{employee_id}/access-control")
async def update_access_control(
    employee_id: uuid.UUID,
    body: AccessControlUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("vip:manage")),
):
    rules = await VIPService.update_access_control(
        db, current_user.organization_id, employee_id, body, actor_id=current_user.id,
    )
    return {
        "data": AccessControlResponse.model_validate(rules).model_dump(mode="json"),
        "message": "Access control updated successfully.",
    }


@router.get("/employees/{employee_id}/access-log")
async def get_access_log(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("vip:read")),
    pagination: PaginationParams = Depends(),
    access_type: Optional[AccessType] = Query(None),
    access_granted: Optional[bool] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await VIPService.get_audit_log(
        db,
        current_user.organization_id,
        employee_id,
        pagination,
        access_type=access_type.value if access_type else None,
        access_granted=access_granted,
        user_id=user_id,
        from_date=from_date,
        to_date=to_date,
    )
    return {
        "data": [AccessLogResponse.model_validate(r).model_dump(mode="json") for r in result.data],
        "meta": result.meta.model_dump(),
    }


@router.get("/employees/{employee_id}/check-access")
async def check_access(
    employee_id: uuid.UUID,
    request: Request,
    access_type: AccessType = Query(AccessType.general),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Evaluate (and log) whether the caller may access *employee_id* data."""
    decision = await VIPService.check_access(
        db,
        current_user.organization_id,
        employee_id,
        current_user,
        request.state.user_role,
        access_type.value,
        AccessContext(
            endpoint=request.url.path,
            method=request.method,
            ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        ),
    )
    return {"data": decision.model_dump(mode="json"), "message": decision.reason}
