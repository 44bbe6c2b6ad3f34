"""Pay component service — catalogue, employee assignments, payroll lookup."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import CalculationType
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    ensure_unique,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import today
from workforce.common.exceptions import BusinessRuleException, ConflictError, ValidationException
from workforce.common.filters import apply_filters, apply_search
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee
from workforce.pay_components.models import EmployeePayComponent, PayComponent
from workforce.pay_components.schemas import (
    AssignmentCreate,
    AssignmentUpdate,
    PayComponentCreate,
    PayComponentUpdate,
    categories_for,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _live_assignments(query, on: date):
    """Assignments that are active and not yet ended on *on*."""
    return query.where(
        EmployeePayComponent.is_active.is_(True),
        or_(EmployeePayComponent.effective_to.is_(None), EmployeePayComponent.effective_to >= on),
    )


class PayComponentService:

    # ── Catalogue ───────────────────────────────────────────────────

    @staticmethod
    async def list_components(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        component_type: Optional[str] = None,
        category: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(PayComponent, organization_id)
        query = apply_filters(query, PayComponent, {
            "component_type": component_type,
            "category": category,
            "is_active": is_active,
        })
        query = apply_search(query, PayComponent, search, ["code", "name", "description"])
        query = query.order_by(PayComponent.component_type, PayComponent.code)
        return await paginate(db, query, pagination, model=PayComponent)

    @staticmethod
    async def get_component(
        db: AsyncSession,
        organization_id: uuid.UUID,
        component_id: uuid.UUID,
    ) -> PayComponent:
        return await get_scoped_or_404(db, PayComponent, component_id, organization_id, "PayComponent")

    @staticmethod
    async def create_component(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: PayComponentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayComponent:
        code = data.code.upper()
        await ensure_unique(db, PayComponent, organization_id, "code", code, case_insensitive=True)

        values = {**data.model_dump(), "code": code}
        component = PayComponent(
            **values,
            organization_id=organization_id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(component)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="pay_component",
            entity_id=component.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(values),
        )
        logger.info("Pay component created org=%s component=%s code=%s", organization_id, component.id, code)
        return component

    @staticmethod
    async def update_component(
        db: AsyncSession,
        organization_id: uuid.UUID,
        component_id: uuid.UUID,
        data: PayComponentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayComponent:
        component = await PayComponentService.get_component(db, organization_id, component_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return component
        for required in ("name", "component_type", "category", "calculation_type",
                         "is_taxable", "is_recurring", "is_pre_tax", "is_active"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        component_type = changes.get("component_type", component.component_type)
        category = changes.get("category", component.category)
        if category not in categories_for(component_type):
            raise ValidationException.for_field(
                "category", f"category '{category}' is not valid for {component_type} components.",
            )

        old_values = apply_changes(component, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="pay_component",
            entity_id=component.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Pay component updated org=%s component=%s", organization_id, component.id)
        return component

    @staticmethod
    async def delete_component(
        db: AsyncSession,
        organization_id: uuid.UUID,
        component_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        component = await PayComponentService.get_component(db, organization_id, component_id)
        query = _live_assignments(
            scoped_select(EmployeePayComponent, organization_id)
            .where(EmployeePayComponent.pay_component_id == component.id),
            today(),
        )
        if (await db.execute(query.limit(1))).scalars().first() is not None:
            raise BusinessRuleException(
                "Pay component has active employee assignments; end them before deleting.",
            )
        component.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="pay_component",
            entity_id=component.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"code": component.code},
        )
        logger.info("Pay component deleted org=%s component=%s", organization_id, component.id)

    # ── Employee assignments ────────────────────────────────────────

    @staticmethod
    async def get_assignment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        assignment_id: uuid.UUID,
    ) -> EmployeePayComponent:
        return await get_scoped_or_404(
            db, EmployeePayComponent, assignment_id, organization_id, "PayComponentAssignment",
        )

    @staticmethod
    async def assign_component(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: AssignmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeePayComponent:
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")
        component = await ensure_exists(
            db, PayComponent, data.pay_component_id, organization_id, "pay_component_id", "PayComponent",
        )
        if not component.is_active:
            raise BusinessRuleException(f"Pay component {component.code} is inactive.")

        overlap = _live_assignments(
            scoped_select(EmployeePayComponent, organization_id).where(
                EmployeePayComponent.employee_id == data.employee_id,
                EmployeePayComponent.pay_component_id == data.pay_component_id,
            ),
            data.effective_from,
        )
        if data.effective_to is not None:
            overlap = overlap.where(EmployeePayComponent.effective_from <= data.effective_to)
        if (await db.execute(overlap.limit(1))).scalars().first() is not None:
            raise ConflictError("pay_component_id", component.code)

        assignment = EmployeePayComponent(
            **data.model_dump(),
            organization_id=organization_id,
            is_active=True,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(assignment)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee_pay_component",
            entity_id=assignment.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Pay component assigned org=%s employee=%s component=%s",
            organization_id, data.employee_id, component.code,
        )
        return assignment

    @staticmethod
    async def get_employee_components(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        active_only: bool = False,
    ) -> Sequence[EmployeePayComponent]:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        query = scoped_select(EmployeePayComponent, organization_id).where(
            EmployeePayComponent.employee_id == employee_id,
        )
        if active_only:
            query = _live_assignments(query, today())
        result = await db.execute(query.order_by(EmployeePayComponent.effective_from.desc()))
        return result.scalars().all()

    @staticmethod
    async def update_assignment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        assignment_id: uuid.UUID,
        data: AssignmentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeePayComponent:
        assignment = await PayComponentService.get_assignment(db, organization_id, assignment_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return assignment
        for required in ("effective_from", "is_active"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")
        start = changes.get("effective_from", assignment.effective_from)
        end = changes.get("effective_to", assignment.effective_to)
        if end is not None and end < start:
            raise ValidationException.for_field("effective_to", "effective_to must be on or after effective_from.")

        old_values = apply_changes(assignment, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee_pay_component",
            entity_id=assignment.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Pay component assignment updated org=%s assignment=%s", organization_id, assignment.id)
        return assignment

    @staticmethod
    async def remove_assignment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        assignment_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        assignment = await PayComponentService.get_assignment(db, organization_id, assignment_id)
        assignment.is_active = False
        assignment.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="employee_pay_component",
            entity_id=assignment.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Pay component assignment removed org=%s assignment=%s", organization_id, assignment.id)

    # ── Payroll ─────────────────────────────────────────────────────

    @staticmethod
    async def get_active_for_payroll(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> list[tuple[EmployeePayComponent, PayComponent]]:
        """Active assignments of active components effective in the period."""
        query = (
            scoped_select(EmployeePayComponent, organization_id)
            .add_columns(PayComponent)
            .join(PayComponent, PayComponent.id == EmployeePayComponent.pay_component_id)
            .where(
                EmployeePayComponent.employee_id == employee_id,
                EmployeePayComponent.effective_from <= period_end,
                PayComponent.is_active.is_(True),
                PayComponent.deleted_at.is_(None),
            )
            .order_by(PayComponent.code)
        )
        query = _live_assignments(query, period_start)
        result = await db.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    @staticmethod
    def compute_amount(
        assignment: EmployeePayComponent,
        component: PayComponent,
        *,
        base_pay: Decimal,
        hours: Decimal,
    ) -> Decimal:
        """Amount of one component for a pay period."""
        if component.calculation_type == CalculationType.percentage.value:
            rate = assignment.rate if assignment.rate is not None else component.default_rate
            amount = base_pay * Decimal(rate or 0) / Decimal(100)
        elif component.calculation_type == CalculationType.hourly_rate.value:
            rate = assignment.rate if assignment.rate is not None else component.default_rate
            amount = hours * Decimal(rate or 0)
        else:
            value = assignment.amount if assignment.amount is not None else component.default_amount
            amount = Decimal(value or 0)
        return amount.quantize(CENT)
