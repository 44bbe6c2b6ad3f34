"""Worker type service — templates and per-employee assignment history.

An employee has at most one current assignment. Assigning a new type
closes the current one on the day before the new effective date.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    ensure_unique,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.exceptions import AppException, BusinessRuleException, ValidationException
from workforce.common.filters import apply_filters, apply_search
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee
from workforce.worker_types.models import WorkerType, WorkerTypeAssignment
from workforce.worker_types.schemas import (
    AssignmentCreate,
    BulkAssignItem,
    BulkAssignRequest,
    WorkerTypeCount,
    WorkerTypeCreate,
    WorkerTypeUpdate,
)

logger = logging.getLogger(__name__)


class WorkerTypeService:

    # ── Templates ───────────────────────────────────────────────────

    @staticmethod
    async def list_worker_types(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(WorkerType, organization_id)
        query = apply_filters(query, WorkerType, {"is_active": is_active})
        query = apply_search(query, WorkerType, search, ["name", "code", "description"])
        query = query.order_by(WorkerType.name)
        return await paginate(db, query, pagination, model=WorkerType)

    @staticmethod
    async def get_worker_type(
        db: AsyncSession,
        organization_id: uuid.UUID,
        worker_type_id: uuid.UUID,
    ) -> WorkerType:
        return await get_scoped_or_404(db, WorkerType, worker_type_id, organization_id, "WorkerType")

    @staticmethod
    async def create_worker_type(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: WorkerTypeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> WorkerType:
        code = data.code.upper()
        await ensure_unique(db, WorkerType, organization_id, "code", code, case_insensitive=True)

        values = {**data.model_dump(), "code": code}
        worker_type = WorkerType(
            **values,
            organization_id=organization_id,
            is_active=True,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(worker_type)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="worker_type",
            entity_id=worker_type.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(values),
        )
        logger.info("Worker type created org=%s worker_type=%s code=%s", organization_id, worker_type.id, code)
        return worker_type

    @staticmethod
    async def update_worker_type(
        db: AsyncSession,
        organization_id: uuid.UUID,
        worker_type_id: uuid.UUID,
        data: WorkerTypeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> WorkerType:
        worker_type = await WorkerTypeService.get_worker_type(db, organization_id, worker_type_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return worker_type
        for field, value in changes.items():
            if value is None and field != "description":
                raise ValidationException.for_field(field, "Field cannot be null.")

        old_values = apply_changes(worker_type, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="worker_type",
            entity_id=worker_type.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Worker type updated org=%s worker_type=%s", organization_id, worker_type.id)
        return worker_type

    @staticmethod
    async def delete_worker_type(
        db: AsyncSession,
        organization_id: uuid.UUID,
        worker_type_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        worker_type = await WorkerTypeService.get_worker_type(db, organization_id, worker_type_id)
        count_q = (
            select(func.count())
            .select_from(WorkerTypeAssignment)
            .where(
                WorkerTypeAssignment.organization_id == organization_id,
                WorkerTypeAssignment.worker_type_id == worker_type.id,
                WorkerTypeAssignment.is_current.is_(True),
                WorkerTypeAssignment.deleted_at.is_(None),
            )
        )
        current = (await db.execute(count_q)).scalar_one()
        if current:
            raise BusinessRuleException(
                f"Worker type is currently assigned to {current} employee(s).",
            )
        worker_type.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="worker_type",
            entity_id=worker_type.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"code": worker_type.code},
        )
        logger.info("Worker type deleted org=%s worker_type=%s", organization_id, worker_type.id)

    # ── Assignments ─────────────────────────────────────────────────

    @staticmethod
    async def get_current_assignment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Optional[WorkerTypeAssignment]:
        result = await db.execute(
            scoped_select(WorkerTypeAssignment, organization_id).where(
                WorkerTypeAssignment.employee_id == employee_id,
                WorkerTypeAssignment.is_current.is_(True),
            ),
        )
        return result.scalars().first()

    @staticmethod
    async def assign_worker_type(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: AssignmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> WorkerTypeAssignment:
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")
        worker_type = await ensure_exists(
            db, WorkerType, data.worker_type_id, organization_id, "worker_type_id", "WorkerType",
        )
        if not worker_type.is_active:
            raise BusinessRuleException(f"Worker type {worker_type.code} is inactive.")

        previous = await WorkerTypeService.get_current_assignment(db, organization_id, data.employee_id)
        if previous is not None:
            if data.effective_from <= previous.effective_from:
                raise ValidationException.for_field(
                    "effective_from",
                    f"effective_from must be after the current assignment's start ({previous.effective_from}).",
                )
            previous.is_current = False
            previous.effective_to = data.effective_from - timedelta(days=1)
            previous.updated_by = actor_id

        assignment = WorkerTypeAssignment(
            **data.model_dump(),
            organization_id=organization_id,
            is_current=True,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(assignment)
        await db.flush()

        await create_audit_entry(
            db,
            action="assign",
            entity_type="worker_type_assignment",
            entity_id=assignment.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"worker_type_id": str(previous.worker_type_id)} if previous else None,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Worker type assigned org=%s employee=%s worker_type=%s from=%s",
            organization_id, data.employee_id, worker_type.code, data.effective_from,
        )
        return assignment

    @staticmethod
    async def get_assignment_history(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Sequence[WorkerTypeAssignment]:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        result = await db.execute(
            scoped_select(WorkerTypeAssignment, organization_id)
            .where(WorkerTypeAssignment.employee_id == employee_id)
            .order_by(WorkerTypeAssignment.effective_from.desc()),
        )
        return result.scalars().all()

    @staticmethod
    async def get_employee_counts(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> list[WorkerTypeCount]:
        """Current employees per worker type, including empty types."""
        query = (
            select(WorkerType.id, WorkerType.code, WorkerType.name, func.count(WorkerTypeAssignment.id))
            .outerjoin(
                WorkerTypeAssignment,
                (WorkerTypeAssignment.worker_type_id == WorkerType.id)
                & WorkerTypeAssignment.is_current.is_(True)
                & WorkerTypeAssignment.deleted_at.is_(None),
            )
            .where(WorkerType.organization_id == organization_id, WorkerType.deleted_at.is_(None))
            .group_by(WorkerType.id, WorkerType.code, WorkerType.name)
            .order_by(WorkerType.name)
        )
        rows = (await db.execute(query)).all()
        return [
            WorkerTypeCount(worker_type_id=r[0], code=r[1], name=r[2], employee_count=r[3])
            for r in rows
        ]

    @staticmethod
    async def get_employees_by_type(
        db: AsyncSession,
        organization_id: uuid.UUID,
        worker_type_id: uuid.UUID,
        pagination: PaginationParams,
    ) -> PaginatedResponse:
        await WorkerTypeService.get_worker_type(db, organization_id, worker_type_id)
        query = (
            scoped_select(Employee, organization_id)
            .join(WorkerTypeAssignment, WorkerTypeAssignment.employee_id == Employee.id)
            .where(
                WorkerTypeAssignment.worker_type_id == worker_type_id,
                WorkerTypeAssignment.is_current.is_(True),
                WorkerTypeAssignment.deleted_at.is_(None),
            )
            .order_by(Employee.last_name, Employee.first_name)
        )
        return await paginate(db, query, pagination, model=Employee)

    @staticmethod
    async def bulk_assign(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: BulkAssignRequest,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[BulkAssignItem]:
        results: list[BulkAssignItem] = []
        for employee_id in dict.fromkeys(data.employee_ids):
            try:
                assignment = await WorkerTypeService.assign_worker_type(
                    db,
                    organization_id,
                    AssignmentCreate(
                        employee_id=employee_id,
                        worker_type_id=data.worker_type_id,
                        effective_from=data.effective_from,
                        notes=data.notes,
                    ),
                    actor_id=actor_id,
                )
            except AppException as exc:
                message = exc.detail
                if exc.errors:
                    message = "; ".join(m for msgs in exc.errors.values() for m in msgs)
                results.append(BulkAssignItem(employee_id=employee_id, success=False, error=message))
            else:
                results.append(BulkAssignItem(employee_id=employee_id, success=True, assignment_id=assignment.id))
        logger.info(
            "Bulk worker type assign org=%s worker_type=%s ok=%d failed=%d",
            organization_id, data.worker_type_id,
            sum(r.success for r in results), sum(not r.success for r in results),
        )
        return results
