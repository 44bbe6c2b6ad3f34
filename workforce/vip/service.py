"""VIP / restricted-employee service — access decisions and VIP management.

``check_access`` evaluates, in order: self access, employee existence,
restriction flag, admin override, access-control row, per-area
restriction, allow-lists. Every decision except "not restricted" and
"area not restricted" is written to ``restricted_access_log``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import has_permission
from workforce.common.audit import create_audit_entry
from workforce.common.constants import VIP_OVERRIDE_PERMISSIONS, AccessType, UserRole
from workforce.common.crud import get_scoped_or_404, scoped_select, to_json
from workforce.common.dates import utcnow
from workforce.common.exceptions import NotFoundException, ValidationException
from workforce.common.filters import apply_filters, apply_search
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee
from workforce.vip.models import EmployeeAccessControl, RestrictedAccessLog
from workforce.vip.schemas import (
    AccessControlResponse,
    AccessControlUpdate,
    AccessDecision,
    MarkVIPRequest,
    VIPCount,
    VIPStatusResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class AccessContext:
    """Request metadata recorded with each access decision."""

    endpoint: Optional[str] = None
    method: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None


def _role_has_override(role: UserRole) -> bool:
    return any(has_permission(role, perm) for perm in VIP_OVERRIDE_PERMISSIONS)


class VIPService:
    """Access control for VIP / restricted employees."""

    # ── Access check ────────────────────────────────────────────────

    @staticmethod
    async def check_access(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        user: Employee,
        role: UserRole,
        access_type: str = AccessType.general.value,
        context: Optional[AccessContext] = None,
    ) -> AccessDecision:
        context = context or AccessContext()
        access_type = AccessType(access_type).value

        if user.id == employee_id:
            log_id = await VIPService._log_access(
                db, organization_id, employee_id, user.id, access_type, True, None, context,
            )
            return AccessDecision(granted=True, reason="Self-access", log_id=log_id)

        result = await db.execute(
            scoped_select(Employee, organization_id).where(Employee.id == employee_id),
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))

        if not employee.is_restricted:
            return AccessDecision(granted=True, reason="Employee not restricted")

        if _role_has_override(role):
            log_id = await VIPService._log_access(
                db, organization_id, employee_id, user.id, access_type, True, None, context,
            )
            logger.info(
                "VIP admin override org=%s employee=%s user=%s type=%s",
                organization_id, employee_id, user.id, access_type,
            )
            return AccessDecision(granted=True, reason="Admin/HR override", log_id=log_id)

        rules = await VIPService.get_access_control(db, organization_id, employee_id)
        if rules is None:
            reason = "Access restricted - no authorization rules configured"
            log_id = await VIPService._log_access(
                db, organization_id, employee_id, user.id, access_type, False, reason, context,
            )
            logger.warning(
                "No access control rules for restricted employee org=%s employee=%s",
                organization_id, employee_id,
            )
            return AccessDecision(granted=False, reason=reason, log_id=log_id)

        if not rules.restricts(access_type):
            return AccessDecision(granted=True, reason=f"{access_type} data not restricted")

        if VIPService._is_authorized(rules, user, role):
            log_id = await VIPService._log_access(
                db, organization_id, employee_id, user.id, access_type, True, None, context,
            )
            return AccessDecision(granted=True, reason="Authorized", log_id=log_id)

        log_id = await VIPService._log_access(
            db, organization_id, employee_id, user.id, access_type, False,
            "User not in authorized list", context,
        )
        logger.warning(
            "VIP access denied org=%s employee=%s user=%s type=%s",
            organization_id, employee_id, user.id, access_type,
        )
        return AccessDecision(
            granted=False,
            reason="Access denied - you are not authorized to view this employee's data",
            log_id=log_id,
        )

    @staticmethod
    def _is_authorized(rules: EmployeeAccessControl, user: Employee, role: UserRole) -> bool:
        if str(user.id) in (rules.allowed_user_ids or []):
            return True
        if role.value in (rules.allowed_roles or []):
            return True
        if user.department_id and str(user.department_id) in (rules.allowed_department_ids or []):
            return True
        return False

    @staticmethod
    async def _log_access(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        user_id: uuid.UUID,
        access_type: str,
        granted: bool,
        denial_reason: Optional[str],
        context: AccessContext,
    ) -> Optional[uuid.UUID]:
        entry = RestrictedAccessLog(
            organization_id=organization_id,
            employee_id=employee_id,
            user_id=user_id,
            access_type=access_type,
            access_granted=granted,
            denial_reason=None if granted else denial_reason,
            endpoint=context.endpoint,
            http_method=context.method,
            ip_address=context.ip,
            user_agent=context.user_agent,
        )
        try:
            async with db.begin_nested():
                db.add(entry)
            return entry.id
        except SQLAlchemyError:
            logger.exception(
                "Failed to write restricted access log employee=%s user=%s",
                employee_id, user_id,
            )
            return None

    # ── VIP management ──────────────────────────────────────────────

    @staticmethod
    async def get_access_control(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Optional[EmployeeAccessControl]:
        result = await db.execute(
            scoped_select(EmployeeAccessControl, organization_id).where(
                EmployeeAccessControl.employee_id == employee_id,
            ),
        )
        return result.scalars().first()

    @staticmethod
    async def mark_as_vip(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: MarkVIPRequest,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> VIPStatusResponse:
        """Set VIP / restriction flags and upsert or retire access-control rules."""
        employee = await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        old_values = {
            "is_vip": employee.is_vip,
            "is_restricted": employee.is_restricted,
            "restriction_level": employee.restriction_level,
        }

        now = utcnow()
        employee.is_vip = data.is_vip
        employee.is_restricted = data.is_restricted
        employee.restriction_level = data.restriction_level
        employee.restricted_by = actor_id if data.is_restricted else None
        employee.restricted_at = now if data.is_restricted else None
        employee.restriction_reason = data.restriction_reason or None
        employee.updated_by = actor_id
        employee.updated_at = now

        rules = await VIPService.get_access_control(db, organization_id, employee_id)
        if data.is_restricted:
            values = {
                "restriction_level": data.restriction_level,
                "allowed_user_ids": [str(u) for u in data.allowed_user_ids],
                "allowed_roles": list(data.allowed_roles),
                "allowed_department_ids": [str(d) for d in data.allowed_department_ids],
                "restrict_compensation": data.restrict_compensation,
                "restrict_personal_info": data.restrict_personal_info,
                "restrict_performance": data.restrict_performance,
                "restrict_documents": data.restrict_documents,
                "restrict_time_off": data.restrict_time_off,
                "restrict_benefits": data.restrict_benefits,
                "restrict_attendance": data.restrict_attendance,
                "restriction_reason": data.restriction_reason or None,
            }
            if rules is None:
                rules = EmployeeAccessControl(
                    organization_id=organization_id,
                    employee_id=employee_id,
                    created_by=actor_id,
                    updated_by=actor_id,
                    **values,
                )
                db.add(rules)
            else:
                for field, value in values.items():
                    setattr(rules, field, value)
                rules.updated_by = actor_id
                rules.updated_at = now
        elif rules is not None:
            rules.soft_delete(actor_id)
            rules = None

        await db.flush()

        await create_audit_entry(
            db,
            action="mark_vip" if data.is_vip else "remove_vip",
            entity_type="employee",
            entity_id=employee.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "VIP status updated org=%s employee=%s vip=%s restricted=%s",
            organization_id, employee.id, data.is_vip, data.is_restricted,
        )
        return VIPService._status(employee, rules)

    @staticmethod
    async def remove_vip_status(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> VIPStatusResponse:
        return await VIPService.mark_as_vip(
            db,
            organization_id,
            employee_id,
            MarkVIPRequest(is_vip=False, is_restricted=False),
            actor_id=actor_id,
        )

    @staticmethod
    async def update_access_control(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: AccessControlUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeAccessControl:
        employee = await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        if not employee.is_restricted:
            raise ValidationException.for_field(
                "employee_id",
                "Employee must be marked as restricted before updating access control.",
            )
        rules = await VIPService.get_access_control(db, organization_id, employee_id)
        if rules is None:
            raise NotFoundException("Access control rules", str(employee_id))

        changes = data.model_dump(exclude_unset=True)
        for key in ("allowed_user_ids", "allowed_department_ids"):
            if key in changes and changes[key] is not None:
                changes[key] = [str(v) for v in changes[key]]
        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            if value is None:
                continue
            old_values[field] = getattr(rules, field)
            setattr(rules, field, value)
        rules.updated_by = actor_id
        rules.updated_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="update_access_control",
            entity_type="employee",
            entity_id=employee.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=to_json(old_values),
            new_values=to_json(changes),
        )
        return rules

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    def _status(
        employee: Employee,
        rules: Optional[EmployeeAccessControl],
    ) -> VIPStatusResponse:
        return VIPStatusResponse(
            employee_id=employee.id,
            is_vip=employee.is_vip,
            is_restricted=employee.is_restricted,
            restriction_level=employee.restriction_level,
            restricted_at=employee.restricted_at,
            restricted_by=employee.restricted_by,
            restriction_reason=employee.restriction_reason,
            access_control=(
                AccessControlResponse.model_validate(rules)
                if rules is not None and employee.is_restricted else None
            ),
        )

    @staticmethod
    async def get_vip_status(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> VIPStatusResponse:
        employee = await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        rules = None
        if employee.is_restricted:
            rules = await VIPService.get_access_control(db, organization_id, employee_id)
        return VIPService._status(employee, rules)

    @staticmethod
    async def list_vip_employees(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        is_restricted: Optional[bool] = None,
        restriction_level: Optional[str] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        query = (
            scoped_select(Employee, organization_id)
            .where(Employee.is_vip.is_(True))
            .order_by(Employee.last_name, Employee.first_name)
        )
        query = apply_filters(
            query,
            Employee,
            {"is_restricted": is_restricted, "restriction_level": restriction_level},
        )
        query = apply_search(
            query, Employee, search, ["first_name", "last_name", "email", "employee_number"],
        )
        return await paginate(db, query, pagination, model=Employee)

    @staticmethod
    async def get_vip_count(db: AsyncSession, organization_id: uuid.UUID) -> VIPCount:
        result = await db.execute(
            select(
                func.count(),
                func.sum(case((Employee.is_restricted.is_(True), 1), else_=0)),
            ).where(
                Employee.organization_id == organization_id,
                Employee.deleted_at.is_(None),
                Employee.is_vip.is_(True),
            ),
        )
        total, restricted = result.one()
        total = total or 0
        restricted = int(restricted or 0)
        return VIPCount(total_vip=total, restricted=restricted, unrestricted=total - restricted)

    @staticmethod
    async def get_audit_log(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        access_type: Optional[str] = None,
        access_granted: Optional[bool] = None,
        user_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        query = (
            scoped_select(RestrictedAccessLog, organization_id)
            .where(RestrictedAccessLog.employee_id == employee_id)
            .order_by(RestrictedAccessLog.accessed_at.desc())
        )
        query = apply_filters(
            query,
            RestrictedAccessLog,
            {
                "access_type": access_type,
                "access_granted": access_granted,
                "user_id": user_id,
                "accessed_at__from": datetime.combine(from_date, time.min, tzinfo=timezone.utc) if from_date else None,
                "accessed_at__to": (
                    datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=timezone.utc) if to_date else None
                ),
            },
        )
        return await paginate(db, query, pagination)
