"""Benefits service — plans, enrollments and the linked payroll deduction."""

from __future__ import annotations

import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import (
    PERIODS_PER_YEAR,
    DeductionCalculation,
    DeductionType,
    EnrollmentStatus,
)
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.exceptions import (
    BusinessRuleException,
    ConflictError,
    ValidationException,
)
from workforce.common.filters import apply_filters, apply_search
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.benefits.models import BenefitEnrollment, BenefitPlan
from workforce.benefits.schemas import (
    BenefitPlanCreate,
    BenefitPlanUpdate,
    EnrollmentCreate,
    EnrollmentTerminate,
    EnrollmentUpdate,
    PlanEnrollmentSummary,
)
from workforce.core_hr.models import Employee
from workforce.deductions.schemas import DeductionCreate
from workforce.deductions.service import DeductionService

logger = logging.getLogger(__name__)

ENROLLMENT_SOURCE = "benefit_enrollment"
_LIVE_STATUSES = (EnrollmentStatus.active.value, EnrollmentStatus.pending.value)


def _monthly(amount: Decimal, frequency: str) -> Decimal:
    periods = PERIODS_PER_YEAR.get(frequency, 12)
    return (Decimal(amount) * periods / 12).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# ═════════════════════════════════════════════════════════════════════
# Plans
# ═════════════════════════════════════════════════════════════════════


class BenefitPlanService:

    @staticmethod
    async def list_plans(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        plan_type: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(BenefitPlan, organization_id)
        query = apply_filters(query, BenefitPlan, {"plan_type": plan_type, "is_active": is_active})
        query = apply_search(query, BenefitPlan, search, ["plan_name", "provider", "description"])
        query = query.order_by(BenefitPlan.plan_name)
        return await paginate(db, query, pagination, model=BenefitPlan)

    @staticmethod
    async def get_plan(
        db: AsyncSession,
        organization_id: uuid.UUID,
        plan_id: uuid.UUID,
    ) -> BenefitPlan:
        return await get_scoped_or_404(db, BenefitPlan, plan_id, organization_id, "BenefitPlan")

    @staticmethod
    async def create_plan(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: BenefitPlanCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BenefitPlan:
        plan = BenefitPlan(
            **data.model_dump(),
            organization_id=organization_id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(plan)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="benefit_plan",
            entity_id=plan.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info("Benefit plan created org=%s plan=%s", organization_id, plan.id)
        return plan

    @staticmethod
    async def update_plan(
        db: AsyncSession,
        organization_id: uuid.UUID,
        plan_id: uuid.UUID,
        data: BenefitPlanUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BenefitPlan:
        plan = await BenefitPlanService.get_plan(db, organization_id, plan_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return plan
        for required in (
            "plan_name", "plan_type", "effective_date", "employee_cost",
            "employer_contribution", "contribution_frequency", "waiting_period_days", "is_active",
        ):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")
        start = changes.get("effective_date", plan.effective_date)
        end = changes.get("termination_date", plan.termination_date)
        if end is not None and end < start:
            raise ValidationException.for_field(
                "termination_date", "termination_date must be on or after effective_date.",
            )

        old_values = apply_changes(plan, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="benefit_plan",
            entity_id=plan.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Benefit plan updated org=%s plan=%s", organization_id, plan.id)
        return plan

    @staticmethod
    async def _count_live_enrollments(db: AsyncSession, plan_id: uuid.UUID) -> int:
        return (await db.execute(
            select(func.count())
            .select_from(BenefitEnrollment)
            .where(
                BenefitEnrollment.plan_id == plan_id,
                BenefitEnrollment.deleted_at.is_(None),
                BenefitEnrollment.status.in_(_LIVE_STATUSES),
            ),
        )).scalar_one()

    @staticmethod
    async def delete_plan(
        db: AsyncSession,
        organization_id: uuid.UUID,
        plan_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        plan = await BenefitPlanService.get_plan(db, organization_id, plan_id)
        live = await BenefitPlanService._count_live_enrollments(db, plan.id)
        if live:
            raise BusinessRuleException(
                f"Cannot delete plan '{plan.plan_name}': {live} active enrollment(s) exist.",
            )
        plan.is_active = False
        plan.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="benefit_plan",
            entity_id=plan.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Benefit plan deleted org=%s plan=%s", organization_id, plan.id)

    @staticmethod
    async def get_enrollment_summary(
        db: AsyncSession,
        organization_id: uuid.UUID,
        plan_id: uuid.UUID,
    ) -> PlanEnrollmentSummary:
        """Enrollment counts by status and monthly cost of active enrollments."""
        plan = await BenefitPlanService.get_plan(db, organization_id, plan_id)
        base = [
            BenefitEnrollment.plan_id == plan.id,
            BenefitEnrollment.deleted_at.is_(None),
        ]
        rows = (await db.execute(
            select(BenefitEnrollment.status, func.count())
            .where(*base)
            .group_by(BenefitEnrollment.status),
        )).all()
        by_status = {status: count for status, count in rows}

        employee_total, employer_total = (await db.execute(
            select(
                func.coalesce(func.sum(BenefitEnrollment.employee_contribution), 0),
                func.coalesce(func.sum(BenefitEnrollment.employer_contribution), 0),
            ).where(*base, BenefitEnrollment.status == EnrollmentStatus.active.value),
        )).one()

        return PlanEnrollmentSummary(
            plan_id=plan.id,
            plan_name=plan.plan_name,
            total_enrollments=sum(by_status.values()),
            by_status=by_status,
            monthly_employee_cost=_monthly(Decimal(employee_total), plan.contribution_frequency),
            monthly_employer_cost=_monthly(Decimal(employer_total), plan.contribution_frequency),
        )


# ═════════════════════════════════════════════════════════════════════
# Enrollments
# ═════════════════════════════════════════════════════════════════════


class EnrollmentService:

    @staticmethod
    async def list_enrollments(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        plan_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(BenefitEnrollment, organization_id)
        query = apply_filters(query, BenefitEnrollment, {
            "employee_id": employee_id,
            "plan_id": plan_id,
            "status": status,
        })
        query = query.order_by(BenefitEnrollment.enrollment_date.desc())
        return await paginate(db, query, pagination, model=BenefitEnrollment)

    @staticmethod
    async def get_employee_enrollments(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Sequence[BenefitEnrollment]:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        result = await db.execute(
            scoped_select(BenefitEnrollment, organization_id)
            .where(BenefitEnrollment.employee_id == employee_id)
            .order_by(BenefitEnrollment.enrollment_date.desc()),
        )
        return result.scalars().all()

    @staticmethod
    async def get_plan_enrollments(
        db: AsyncSession,
        organization_id: uuid.UUID,
        plan_id: uuid.UUID,
    ) -> Sequence[BenefitEnrollment]:
        await BenefitPlanService.get_plan(db, organization_id, plan_id)
        result = await db.execute(
            scoped_select(BenefitEnrollment, organization_id)
            .where(BenefitEnrollment.plan_id == plan_id)
            .order_by(BenefitEnrollment.enrollment_date.desc()),
        )
        return result.scalars().all()

    @staticmethod
    async def get_enrollment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        enrollment_id: uuid.UUID,
    ) -> BenefitEnrollment:
        return await get_scoped_or_404(
            db, BenefitEnrollment, enrollment_id, organization_id, "BenefitEnrollment",
        )

    @staticmethod
    async def enroll_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: EnrollmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BenefitEnrollment:
        """Enroll an employee and start the matching pre-tax deduction."""
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")
        plan = await ensure_exists(db, BenefitPlan, data.plan_id, organization_id, "plan_id", "BenefitPlan")
        if not plan.is_active:
            raise BusinessRuleException(f"Benefit plan '{plan.plan_name}' is not active.")

        duplicate = (await db.execute(
            select(func.count())
            .select_from(BenefitEnrollment)
            .where(
                BenefitEnrollment.organization_id == organization_id,
                BenefitEnrollment.employee_id == data.employee_id,
                BenefitEnrollment.plan_id == data.plan_id,
                BenefitEnrollment.deleted_at.is_(None),
                BenefitEnrollment.status.in_(_LIVE_STATUSES),
            ),
        )).scalar_one()
        if duplicate:
            raise ConflictError("plan_id", data.plan_id)

        values = data.model_dump()
        if values["employee_contribution"] is None:
            values["employee_contribution"] = plan.employee_cost
        if values["employer_contribution"] is None:
            values["employer_contribution"] = plan.employer_contribution
        if values["coverage_level"] is None:
            values["coverage_level"] = plan.coverage_level

        enrollment = BenefitEnrollment(
            **values,
            organization_id=organization_id,
            status=EnrollmentStatus.active.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(enrollment)
        await db.flush()

        if enrollment.employee_contribution and enrollment.employee_contribution > 0:
            await DeductionService.create_deduction(
                db,
                organization_id,
                DeductionCreate(
                    employee_id=enrollment.employee_id,
                    deduction_type=DeductionType.benefit,
                    name=plan.plan_name,
                    calculation_type=DeductionCalculation.fixed_amount,
                    amount=enrollment.employee_contribution,
                    is_pre_tax=True,
                    is_recurring=True,
                    frequency=plan.contribution_frequency,
                    effective_from=enrollment.coverage_start_date,
                    effective_to=enrollment.coverage_end_date,
                    source_type=ENROLLMENT_SOURCE,
                    source_id=enrollment.id,
                ),
                actor_id=actor_id,
            )

        await create_audit_entry(
            db,
            action="enroll",
            entity_type="benefit_enrollment",
            entity_id=enrollment.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(values),
        )
        logger.info(
            "Benefit enrollment created org=%s enrollment=%s employee=%s plan=%s",
            organization_id, enrollment.id, enrollment.employee_id, enrollment.plan_id,
        )
        return enrollment

    @staticmethod
    async def update_enrollment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        enrollment_id: uuid.UUID,
        data: EnrollmentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BenefitEnrollment:
        enrollment = await EnrollmentService.get_enrollment(db, organization_id, enrollment_id)
        if enrollment.status == EnrollmentStatus.terminated.value:
            raise BusinessRuleException("A terminated enrollment cannot be modified.")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return enrollment
        for required in ("coverage_start_date", "employee_contribution", "employer_contribution", "status"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")
        if changes.get("status") == EnrollmentStatus.terminated.value:
            raise ValidationException.for_field("status", "Use the terminate endpoint to end an enrollment.")

        old_values = apply_changes(enrollment, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="benefit_enrollment",
            entity_id=enrollment.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Benefit enrollment updated org=%s enrollment=%s", organization_id, enrollment.id)
        return enrollment

    @staticmethod
    async def terminate_enrollment(
        db: AsyncSession,
        organization_id: uuid.UUID,
        enrollment_id: uuid.UUID,
        data: EnrollmentTerminate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BenefitEnrollment:
        enrollment = await EnrollmentService.get_enrollment(db, organization_id, enrollment_id)
        if enrollment.status == EnrollmentStatus.terminated.value:
            raise BusinessRuleException("Enrollment is already terminated.")

        enrollment.status = EnrollmentStatus.terminated.value
        enrollment.coverage_end_date = data.termination_date
        enrollment.termination_reason = data.termination_reason
        enrollment.updated_by = actor_id

        stopped = await DeductionService.deactivate_by_source(
            db,
            organization_id,
            ENROLLMENT_SOURCE,
            enrollment.id,
            end_date=data.termination_date,
            actor_id=actor_id,
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="terminate",
            entity_type="benefit_enrollment",
            entity_id=enrollment.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Benefit enrollment terminated org=%s enrollment=%s deductions_stopped=%d",
            organization_id, enrollment.id, stopped,
        )
        return enrollment
