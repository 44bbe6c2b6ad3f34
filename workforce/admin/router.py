"""Admin router — role management and audit trail.

Role endpoints require system_admin or hr_admin; the audit trail needs
``audit:read``.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.admin.schemas import AuditTrailOut, EmployeeRoleOut, RoleAssignRequest
from workforce.admin.service import AdminService
from workforce.auth.dependencies import require_permission, require_role
from workforce.common.constants import UserRole
from workforce.common.exceptions import ForbiddenException
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db

router = APIRouter(prefix="", tags=["admin"])

_admin_dep = require_role(UserRole.system_admin, UserRole.hr_admin)


# ═══════════════════════════════════════════════════════════════════
# ROLES
# ═══════════════════════════════════════════════════════════════════

@router.get("/roles", response_model=list[EmployeeRoleOut])
async def list_roles(
    user: Employee = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    """List all current employees with their highest role."""
    return await AdminService.list_roles(db, user.organization_id)


@router.put("/roles", response_model=EmployeeRoleOut)
async def assign_role(
    body: RoleAssignRequest,
    request: Request,
    user: Employee = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    """Assign a role to an employee, replacing any previous assignment."""
    if body.role == UserRole.system_admin and request.state.user_role != UserRole.system_admin:
        raise ForbiddenException(detail="Only a system admin can grant the system_admin role.")
    return await AdminService.assign_role(db, user.organization_id, body, actor_id=user.id)


# ═══════════════════════════════════════════════════════════════════
# AUDIT TRAIL
# ═══════════════════════════════════════════════════════════════════

@router.get("/audit-trail")
async def list_audit_trail(
    user: Employee = Depends(require_permission("audit:read")),
    db: AsyncSession = Depends(get_db),
    pagination: PaginationParams = Depends(),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[uuid.UUID] = Query(None),
    actor_id: Optional[uuid.UUID] = Query(None),
    action: Optional[str] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await AdminService.list_audit_trail(
        db,
        user.organization_id,
        pagination,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        action=action,
        from_date=from_date,
        to_date=to_date,
    )
    return {
        "data": [AuditTrailOut.model_validate(r).model_dump(mode="json") for r in result.data],
        "meta": result.meta.model_dump(),
    }
