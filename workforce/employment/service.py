"""Employment history service — initial hire, termination and rehire.

Termination and rehire touch two tables (``employees`` and
``employment_history``). All preconditions are checked before the first
write, and both writes are flushed in the request's transaction, so either
both land or ``get_db`` rolls both back.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import EmploymentStatus
from workforce.common.crud import ensure_exists, get_scoped_or_404, scoped_select, to_json
from workforce.common.dates import utcnow
from workforce.common.exceptions import BusinessRuleException
from workforce.core_hr.models import Department, Employee, Location
from workforce.employment.models import EmploymentHistory
from workforce.employment.schemas import RehireEligibility, RehireRequest, TerminateRequest

logger = logging.getLogger(__name__)


class EmploymentHistoryService:
    """Lifecycle of employment periods."""

    # ── Initial hire ────────────────────────────────────────────────

    @staticmethod
    async def create_initial_employment(
        db: AsyncSession,
        employee: Employee,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmploymentHistory:
        """Open the first employment period for a newly created employee."""
        record = EmploymentHistory(
            organization_id=employee.organization_id,
            employee_id=employee.id,
            start_date=employee.hire_date,
            is_current=True,
            is_rehire=False,
            employment_status=employee.employment_status or EmploymentStatus.active.value,
            employment_type=employee.employment_type,
            department_id=employee.department_id,
            location_id=employee.location_id,
            manager_id=employee.manager_id,
            job_title=employee.job_title,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(record)
        await db.flush()
        return record

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_employment_history(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Sequence[EmploymentHistory]:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        result = await db.execute(
            scoped_select(EmploymentHistory, organization_id)
            .where(EmploymentHistory.employee_id == employee_id)
            .order_by(EmploymentHistory.start_date.desc()),
        )
        return result.scalars().all()

    @staticmethod
    async def get_current_employment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Optional[EmploymentHistory]:
        result = await db.execute(
            scoped_select(EmploymentHistory, organization_id).where(
                EmploymentHistory.employee_id == employee_id,
                EmploymentHistory.is_current.is_(True),
            ),
        )
        return result.scalars().first()

    @staticmethod
    async def _latest_closed_period(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Optional[EmploymentHistory]:
        result = await db.execute(
            scoped_select(EmploymentHistory, organization_id)
            .where(
                EmploymentHistory.employee_id == employee_id,
                EmploymentHistory.is_current.is_(False),
            )
            .order_by(EmploymentHistory.end_date.desc(), EmploymentHistory.start_date.desc())
            .limit(1),
        )
        return result.scalars().first()

    # ── Terminate ───────────────────────────────────────────────────

    @staticmethod
    async def terminate_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: TerminateRequest,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, Any]:
        """Close the current employment period and mark the employee terminated."""
        employee = await get_scoped_or_404(
            db, Employee, employee_id, organization_id, "Employee",
        )
        if employee.employment_status == EmploymentStatus.terminated.value:
            raise BusinessRuleException("Employee is already terminated")

        current = await EmploymentHistoryService.get_current_employment(
            db, organization_id, employee_id,
        )
        if current is None:
            raise BusinessRuleException("No active employment record found")
        if data.termination_date < current.start_date:
            raise BusinessRuleException(
                "Termination date cannot be before the employment start date",
            )

        current.end_date = data.termination_date
        current.is_current = False
        current.termination_reason = data.termination_reason
        current.termination_notes = data.termination_notes
        current.is_rehire_eligible = data.is_rehire_eligible
        current.updated_by = actor_id

        old_status = employee.employment_status
        employee.employment_status = EmploymentStatus.terminated.value
        employee.termination_date = data.termination_date
        employee.updated_by = actor_id
        employee.updated_at = utcnow()

        await db.flush()

        await create_audit_entry(
            db,
            action="terminate",
            entity_type="employee",
            entity_id=employee.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"employment_status": old_status},
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Employee terminated org=%s employee=%s reason=%s",
            organization_id, employee.id, data.termination_reason,
        )
        return {"employee": employee, "employment_history": current}

    # ── Rehire ──────────────────────────────────────────────────────

    @staticmethod
    async def check_rehire_eligibility(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> RehireEligibility:
        result = await db.execute(
            scoped_select(Employee, organization_id).where(Employee.id == employee_id),
        )
        employee = result.scalars().first()
        if employee is None:
            return RehireEligibility(eligible=False, reason="Employee not found")
        if employee.employment_status != EmploymentStatus.terminated.value:
            return RehireEligibility(eligible=False, reason="Employee is not terminated")

        last = await EmploymentHistoryService._latest_closed_period(
            db, organization_id, employee_id,
        )
        termination_reason = last.termination_reason if last else None
        termination_date = last.end_date if last else employee.termination_date
        if last is not None and last.is_rehire_eligible is False:
            return RehireEligibility(
                eligible=False,
                reason="Not eligible for rehire",
                termination_reason=termination_reason,
                termination_date=termination_date,
            )
        return RehireEligibility(
            eligible=True,
            termination_reason=termination_reason,
            termination_date=termination_date,
        )

    @staticmethod
    async def rehire_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: RehireRequest,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, Any]:
        """Reactivate a terminated employee and open a new employment period."""
        employee = await get_scoped_or_404(
            db, Employee, employee_id, organization_id, "Employee",
        )

        eligibility = await EmploymentHistoryService.check_rehire_eligibility(
            db, organization_id, employee_id,
        )
        if not eligibility.eligible:
            if eligibility.reason == "Not eligible for rehire":
                raise BusinessRuleException("Employee is not eligible for rehire")
            raise BusinessRuleException(eligibility.reason or "Employee cannot be rehired")
        if employee.termination_date and data.rehire_date <= employee.termination_date:
            raise BusinessRuleException("Rehire date must be after the termination date")

        await ensure_exists(db, Department, data.department_id, organization_id, "department_id", "Department")
        await ensure_exists(db, Location, data.location_id, organization_id, "location_id", "Location")
        await ensure_exists(db, Employee, data.manager_id, organization_id, "manager_id", "Employee")

        employee.employment_status = EmploymentStatus.active.value
        employee.hire_date = data.rehire_date
        employee.termination_date = None
        employee.employment_type = data.employment_type or employee.employment_type
        employee.department_id = data.department_id or employee.department_id
        employee.location_id = data.location_id or employee.location_id
        employee.manager_id = data.manager_id or employee.manager_id
        employee.job_title = data.job_title or employee.job_title
        employee.updated_by = actor_id
        employee.updated_at = utcnow()

        record = EmploymentHistory(
            organization_id=organization_id,
            employee_id=employee.id,
            start_date=data.rehire_date,
            is_current=True,
            is_rehire=True,
            employment_status=EmploymentStatus.active.value,
            employment_type=employee.employment_type,
            department_id=employee.department_id,
            location_id=employee.location_id,
            manager_id=employee.manager_id,
            job_title=employee.job_title,
            rehire_notes=data.rehire_notes,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="rehire",
            entity_type="employee",
            entity_id=employee.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Employee rehired org=%s employee=%s date=%s",
            organization_id, employee.id, data.rehire_date,
        )
        return {"employee": employee, "employment_history": record}
