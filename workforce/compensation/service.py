"""Compensation service — one current pay rate per employee, with history."""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.exceptions import BusinessRuleException, ValidationException
from workforce.compensation.models import EmployeeCompensation
from workforce.compensation.schemas import CompensationCreate, CompensationUpdate
from workforce.config import settings
from workforce.core_hr.models import Employee, Organization

logger = logging.getLogger(__name__)


class CompensationService:

    @staticmethod
    async def get_compensation(
        db: AsyncSession,
        organization_id: uuid.UUID,
        compensation_id: uuid.UUID,
    ) -> EmployeeCompensation:
        return await get_scoped_or_404(
            db, EmployeeCompensation, compensation_id, organization_id, "Compensation",
        )

    @staticmethod
    async def get_current(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Optional[EmployeeCompensation]:
        result = await db.execute(
            scoped_select(EmployeeCompensation, organization_id)
            .where(
                EmployeeCompensation.employee_id == employee_id,
                EmployeeCompensation.is_current.is_(True),
            )
            .order_by(EmployeeCompensation.effective_from.desc())
            .limit(1),
        )
        return result.scalars().first()

    @staticmethod
    async def get_history(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Sequence[EmployeeCompensation]:
        result = await db.execute(
            scoped_select(EmployeeCompensation, organization_id)
            .where(EmployeeCompensation.employee_id == employee_id)
            .order_by(EmployeeCompensation.effective_from.desc()),
        )
        return result.scalars().all()

    @staticmethod
    async def create_compensation(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: CompensationCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeCompensation:
        """Insert a new current record, closing the previous one the day before."""
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")

        previous = await CompensationService.get_current(db, organization_id, data.employee_id)
        if previous is not None:
            if data.effective_from <= previous.effective_from:
                raise BusinessRuleException(
                    f"New compensation must start after the current one "
                    f"({previous.effective_from.isoformat()}).",
                )
            previous.is_current = False
            previous.effective_to = data.effective_from - timedelta(days=1)
            previous.updated_by = actor_id

        currency = data.currency
        if currency is None:
            organization = await db.get(Organization, organization_id)
            currency = organization.base_currency if organization else settings.DEFAULT_CURRENCY
        multiplier = data.overtime_multiplier
        if multiplier is None:
            multiplier = Decimal(str(settings.OVERTIME_MULTIPLIER))

        compensation = EmployeeCompensation(
            **data.model_dump(exclude={"currency", "overtime_multiplier"}),
            currency=currency,
            overtime_multiplier=multiplier,
            organization_id=organization_id,
            is_current=True,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(compensation)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="compensation",
            entity_id=compensation.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"previous_id": str(previous.id)} if previous else None,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Compensation created org=%s employee=%s compensation=%s type=%s",
            organization_id, data.employee_id, compensation.id, compensation.compensation_type,
        )
        return compensation

    @staticmethod
    async def update_compensation(
        db: AsyncSession,
        organization_id: uuid.UUID,
        compensation_id: uuid.UUID,
        data: CompensationUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeCompensation:
        compensation = await CompensationService.get_compensation(db, organization_id, compensation_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return compensation
        for required in ("amount", "overtime_multiplier", "pay_frequency"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")
        end = changes.get("effective_to", compensation.effective_to)
        if end is not None and end < compensation.effective_from:
            raise ValidationException.for_field("effective_to", "effective_to cannot be before effective_from.")

        old_values = apply_changes(compensation, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="compensation",
            entity_id=compensation.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Compensation updated org=%s compensation=%s", organization_id, compensation.id)
        return compensation

    @staticmethod
    async def delete_compensation(
        db: AsyncSession,
        organization_id: uuid.UUID,
        compensation_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        compensation = await CompensationService.get_compensation(db, organization_id, compensation_id)
        compensation.soft_delete(actor_id)
        compensation.is_current = False
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="compensation",
            entity_id=compensation.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Compensation deleted org=%s compensation=%s", organization_id, compensation.id)

    @staticmethod
    async def get_for_period(
        db: AsyncSession,
        organization_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> dict[uuid.UUID, EmployeeCompensation]:
        """Per employee, the latest compensation in effect during the period."""
        result = await db.execute(
            scoped_select(EmployeeCompensation, organization_id)
            .where(
                EmployeeCompensation.effective_from <= period_end,
                or_(
                    EmployeeCompensation.effective_to.is_(None),
                    EmployeeCompensation.effective_to >= period_start,
                ),
            )
            .order_by(EmployeeCompensation.effective_from),
        )
        by_employee: dict[uuid.UUID, EmployeeCompensation] = {}
        for compensation in result.scalars().all():
            by_employee[compensation.employee_id] = compensation
        return by_employee
