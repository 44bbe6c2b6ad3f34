"""Admin service — role assignment and audit-trail queries."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.admin.schemas import RoleAssignRequest
from workforce.auth.models import RoleAssignment
from workforce.auth.service import get_highest_role
from workforce.common.audit import AuditTrail, create_audit_entry
from workforce.common.constants import EmploymentStatus, UserRole
from workforce.common.crud import get_scoped_or_404, scoped_select
from workforce.common.dates import utcnow
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee

logger = logging.getLogger(__name__)


class AdminService:
    """Static service class for admin operations."""

    # ── Role Management ─────────────────────────────────────────────

    @staticmethod
    def _role_row(emp: Employee, role: UserRole) -> dict:
        return {
            "employee_id": emp.id,
            "employee_number": emp.employee_number,
            "display_name": emp.full_name,
            "email": emp.email,
            "role": role.value,
            "department_id": emp.department_id,
        }

    @staticmethod
    async def list_roles(db: AsyncSession, organization_id: uuid.UUID) -> list[dict]:
        result = await db.execute(
            scoped_select(Employee, organization_id)
            .where(Employee.employment_status != EmploymentStatus.terminated.value)
            .order_by(Employee.last_name, Employee.first_name)
        )
        out = []
        for e in result.scalars().all():
            role = await get_highest_role(db, e.id)
            out.append(AdminService._role_row(e, role))
        return out

    @staticmethod
    async def assign_role(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: RoleAssignRequest,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict:
        emp = await get_scoped_or_404(db, Employee, data.employee_id, organization_id, "Employee")
        old_role = await get_highest_role(db, emp.id)

        # Deactivate all existing role assignments
        existing = await db.execute(
            select(RoleAssignment).where(
                RoleAssignment.employee_id == emp.id,
                RoleAssignment.is_active.is_(True),
            )
        )
        for ra in existing.scalars().all():
            ra.is_active = False
            ra.revoked_at = utcnow()

        if data.role != UserRole.employee:
            db.add(RoleAssignment(
                organization_id=organization_id,
                employee_id=emp.id,
                role=data.role.value,
                assigned_by=actor_id,
                is_active=True,
            ))

        await db.flush()

        await create_audit_entry(
            db,
            action="assign_role",
            entity_type="employee",
            entity_id=emp.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"role": old_role.value},
            new_values={"role": data.role.value},
        )
        logger.info("Role assigned org=%s employee=%s role=%s", organization_id, emp.id, data.role.value)
        return AdminService._role_row(emp, data.role)

    # ── Audit Trail ─────────────────────────────────────────────────

    @staticmethod
    async def list_audit_trail(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = (
            select(AuditTrail)
            .where(AuditTrail.organization_id == organization_id)
            .order_by(AuditTrail.created_at.desc())
        )
        query = apply_filters(
            query,
            AuditTrail,
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "actor_id": actor_id,
                "action": action,
                "created_at__from": (
                    datetime.combine(from_date, time.min, tzinfo=timezone.utc) if from_date else None
                ),
            },
        )
        if to_date:
            end = datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            query = query.where(AuditTrail.created_at < end)
        return await paginate(db, query, pagination, model=AuditTrail)
