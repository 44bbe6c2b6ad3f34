"""Deduction service — CRUD plus per-payroll deduction calculation.

Deductions apply in ``priority`` order (lower first). Pre-tax deductions
can never exceed gross pay; post-tax deductions are capped later by the
payroll engine so that net pay stays non-negative.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import DeductionCalculation
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.exceptions import ValidationException
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee
from workforce.deductions.models import EmployeeDeduction
from workforce.deductions.schemas import (
    DeductionBreakdown,
    DeductionCreate,
    DeductionLine,
    DeductionUpdate,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _generate_code(deduction_type: str) -> str:
    return f"{deduction_type.upper()}-{uuid.uuid4().hex[:8].upper()}"


class DeductionService:

    @staticmethod
    async def list_deductions(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        deduction_type: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_pre_tax: Optional[bool] = None,
    ) -> PaginatedResponse:
        query = scoped_select(EmployeeDeduction, organization_id)
        query = apply_filters(query, EmployeeDeduction, {
            "employee_id": employee_id,
            "deduction_type": deduction_type,
            "is_active": is_active,
            "is_pre_tax": is_pre_tax,
        })
        query = query.order_by(EmployeeDeduction.priority, EmployeeDeduction.created_at)
        return await paginate(db, query, pagination, model=EmployeeDeduction)

    @staticmethod
    async def get_employee_deductions(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        active_only: bool = False,
    ) -> Sequence[EmployeeDeduction]:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        query = scoped_select(EmployeeDeduction, organization_id).where(
            EmployeeDeduction.employee_id == employee_id,
        )
        if active_only:
            query = query.where(EmployeeDeduction.is_active.is_(True))
        result = await db.execute(query.order_by(EmployeeDeduction.priority))
        return result.scalars().all()

    @staticmethod
    async def get_deduction(
        db: AsyncSession,
        organization_id: uuid.UUID,
        deduction_id: uuid.UUID,
    ) -> EmployeeDeduction:
        return await get_scoped_or_404(
            db, EmployeeDeduction, deduction_id, organization_id, "Deduction",
        )

    @staticmethod
    async def create_deduction(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: DeductionCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeDeduction:
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")

        values = data.model_dump()
        values["code"] = values["code"] or _generate_code(data.deduction_type)
        values["name"] = values["name"] or data.deduction_type.replace("_", " ").title()

        deduction = EmployeeDeduction(
            **values,
            organization_id=organization_id,
            is_active=True,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(deduction)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="deduction",
            entity_id=deduction.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(values),
        )
        logger.info(
            "Deduction created org=%s deduction=%s employee=%s code=%s",
            organization_id, deduction.id, deduction.employee_id, deduction.code,
        )
        return deduction

    @staticmethod
    async def update_deduction(
        db: AsyncSession,
        organization_id: uuid.UUID,
        deduction_id: uuid.UUID,
        data: DeductionUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeDeduction:
        deduction = await DeductionService.get_deduction(db, organization_id, deduction_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return deduction
        for required in ("name", "calculation_type", "effective_from", "is_active", "priority"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        calc = changes.get("calculation_type", deduction.calculation_type)
        if calc == DeductionCalculation.fixed_amount.value and changes.get("amount", deduction.amount) is None:
            raise ValidationException.for_field("amount", "amount is required for fixed_amount deductions.")
        if calc == DeductionCalculation.percentage.value and changes.get("percentage", deduction.percentage) is None:
            raise ValidationException.for_field("percentage", "percentage is required for percentage deductions.")
        start = changes.get("effective_from", deduction.effective_from)
        end = changes.get("effective_to", deduction.effective_to)
        if end is not None and end < start:
            raise ValidationException.for_field("effective_to", "effective_to must be on or after effective_from.")

        old_values = apply_changes(deduction, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="deduction",
            entity_id=deduction.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Deduction updated org=%s deduction=%s", organization_id, deduction.id)
        return deduction

    @staticmethod
    async def delete_deduction(
        db: AsyncSession,
        organization_id: uuid.UUID,
        deduction_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        deduction = await DeductionService.get_deduction(db, organization_id, deduction_id)
        deduction.is_active = False
        deduction.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="deduction",
            entity_id=deduction.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Deduction deleted org=%s deduction=%s", organization_id, deduction.id)

    @staticmethod
    async def deactivate_by_source(
        db: AsyncSession,
        organization_id: uuid.UUID,
        source_type: str,
        source_id: uuid.UUID,
        *,
        end_date: Optional[date] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Deactivate deductions created from *source_id*; returns how many."""
        result = await db.execute(
            scoped_select(EmployeeDeduction, organization_id).where(
                EmployeeDeduction.source_type == source_type,
                EmployeeDeduction.source_id == source_id,
                EmployeeDeduction.is_active.is_(True),
            ),
        )
        deductions = result.scalars().all()
        for deduction in deductions:
            deduction.is_active = False
            if end_date is not None:
                deduction.effective_to = end_date
            deduction.updated_by = actor_id
        await db.flush()
        return len(deductions)

    # ── Payroll calculation ─────────────────────────────────────────

    @staticmethod
    async def get_applicable_deductions(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> Sequence[EmployeeDeduction]:
        """Active deductions whose effective range overlaps the pay period."""
        result = await db.execute(
            scoped_select(EmployeeDeduction, organization_id)
            .where(
                EmployeeDeduction.employee_id == employee_id,
                EmployeeDeduction.is_active.is_(True),
                EmployeeDeduction.effective_from <= period_end,
                or_(
                    EmployeeDeduction.effective_to.is_(None),
                    EmployeeDeduction.effective_to >= period_start,
                ),
            )
            .order_by(EmployeeDeduction.priority, EmployeeDeduction.created_at),
        )
        return result.scalars().all()

    @staticmethod
    def compute_amount(deduction: EmployeeDeduction, gross_pay: Decimal) -> tuple[Decimal, bool]:
        """Amount for one deduction against *gross_pay*, honouring ``max_per_payroll``."""
        if deduction.calculation_type == DeductionCalculation.percentage.value:
            amount = gross_pay * Decimal(deduction.percentage or 0) / Decimal(100)
        else:
            amount = Decimal(deduction.amount or 0)
        capped = False
        if deduction.max_per_payroll is not None and amount > deduction.max_per_payroll:
            amount = Decimal(deduction.max_per_payroll)
            capped = True
        return _money(amount), capped

    @staticmethod
    async def calculate_for_payroll(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        gross_pay: Decimal,
        period_start: date,
        period_end: date,
        *,
        ytd_by_deduction: Optional[dict[str, Decimal]] = None,
    ) -> DeductionBreakdown:
        """Pre-tax / post-tax breakdown of the employee's deductions for a period.

        *ytd_by_deduction* maps deduction id (str) to the amount already
        withheld this year and enforces ``max_annual``.
        """
        ytd_by_deduction = ytd_by_deduction or {}
        deductions = await DeductionService.get_applicable_deductions(
            db, organization_id, employee_id, period_start, period_end,
        )

        breakdown = DeductionBreakdown()
        remaining_gross = Decimal(gross_pay)
        for deduction in deductions:
            amount, capped = DeductionService.compute_amount(deduction, Decimal(gross_pay))

            if deduction.max_annual is not None:
                room = Decimal(deduction.max_annual) - ytd_by_deduction.get(str(deduction.id), Decimal("0"))
                if amount > room:
                    amount, capped = max(_money(room), Decimal("0")), True

            if deduction.is_pre_tax:
                if amount > remaining_gross:
                    amount, capped = _money(remaining_gross), True
                remaining_gross -= amount
            if amount <= 0:
                continue

            line = DeductionLine(
                deduction_id=deduction.id,
                code=deduction.code,
                name=deduction.name,
                deduction_type=deduction.deduction_type,
                amount=amount,
                capped=capped,
            )
            if deduction.is_pre_tax:
                breakdown.pre_tax.append(line)
                breakdown.total_pre_tax += amount
            else:
                breakdown.post_tax.append(line)
                breakdown.total_post_tax += amount

        breakdown.total = breakdown.total_pre_tax + breakdown.total_post_tax
        return breakdown

    @staticmethod
    def cap_post_tax(breakdown: DeductionBreakdown, available: Decimal) -> DeductionBreakdown:
        """Trim post-tax lines in priority order so they never exceed *available*."""
        available = max(Decimal(available), Decimal("0"))
        kept: list[DeductionLine] = []
        total = Decimal("0")
        for line in breakdown.post_tax:
            amount = line.amount
            capped = line.capped
            if total + amount > available:
                amount, capped = _money(available - total), True
            if amount <= 0:
                continue
            kept.append(line.model_copy(update={"amount": amount, "capped": capped}))
            total += amount
        breakdown.post_tax = kept
        breakdown.total_post_tax = total
        breakdown.total = breakdown.total_pre_tax + total
        return breakdown
