"""Payroll service layer — runs, calculation and paychecks.

Business logic:
  - Runs move draft → calculated → review → approved → finalized; any state
    before finalized can be cancelled
  - Calculation replaces the run's paychecks: hours from approved timesheets,
    pay from the current compensation, earning components (with temporal
    conditions), pre-tax deductions, taxes, then post-tax deductions capped
    so net pay never goes negative
  - Run totals are kept in the organization's base currency
  - Paychecks are editable while pending; a voided paycheck can be reissued
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import (
    PERIODS_PER_YEAR,
    ApprovalState,
    CompensationType,
    ComponentType,
    EmploymentStatus,
    PaycheckStatus,
    PayrollRunStatus,
)
from workforce.common.crud import (
    apply_changes,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import utcnow
from workforce.common.exceptions import BusinessRuleException, ValidationException
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.compensation.models import EmployeeCompensation
from workforce.compensation.service import CompensationService
from workforce.core_hr.models import Employee, Location
from workforce.currency.service import CurrencyService
from workforce.deductions.service import DeductionService
from workforce.pay_components.service import PayComponentService
from workforce.payroll.models import Paycheck, PayrollRun
from workforce.payroll.schemas import (
    CalculationSkip,
    PaycheckReissue,
    PaycheckUpdate,
    PayrollRunCreate,
    PayrollRunUpdate,
    YearToDateSummary,
)
from workforce.tax.service import TaxService
from workforce.temporal_patterns.service import TemporalPatternService
from workforce.timesheets.models import Timesheet
from workforce.timesheets.service import TimesheetService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")

_CALCULABLE = (PayrollRunStatus.draft.value, PayrollRunStatus.calculated.value)
_CLOSED = (PayrollRunStatus.finalized.value, PayrollRunStatus.cancelled.value)
_COUNTED = (PaycheckStatus.pending.value, PaycheckStatus.approved.value, PaycheckStatus.issued.value)
_PAID = (PaycheckStatus.approved.value, PaycheckStatus.issued.value)


def _money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def period_base_pay(
    compensation: EmployeeCompensation,
    *,
    regular_hours: Decimal = ZERO,
    overtime_hours: Decimal = ZERO,
    pto_hours: Decimal = ZERO,
) -> dict[str, Decimal]:
    """Regular, overtime and PTO pay for one period.

    Hourly: hours × rate, overtime at the compensation's multiplier.
    Salaried: annual amount divided by the pay periods in a year.
    """
    amount = Decimal(compensation.amount)
    if compensation.compensation_type == CompensationType.salary.value:
        periods = PERIODS_PER_YEAR[compensation.pay_frequency]
        return {"regular": _money(amount / periods), "overtime": ZERO, "pto": ZERO}
    multiplier = Decimal(compensation.overtime_multiplier)
    return {
        "regular": _money(regular_hours * amount),
        "overtime": _money(overtime_hours * amount * multiplier),
        "pto": _money(pto_hours * amount),
    }


class PayrollRunService:

    # ── CRUD ────────────────────────────────────────────────────────

    @staticmethod
    async def _next_run_number(db: AsyncSession, organization_id: uuid.UUID, on: date) -> str:
        prefix = f"PR-{on:%Y%m}-"
        # Soft-deleted runs keep their number.
        count = (await db.execute(
            select(func.count()).select_from(PayrollRun).where(
                PayrollRun.organization_id == organization_id,
                PayrollRun.run_number.like(f"{prefix}%"),
            ),
        )).scalar_one()
        return f"{prefix}{count + 1:03d}"

    @staticmethod
    async def create_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: PayrollRunCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        run_number = await PayrollRunService._next_run_number(db, organization_id, data.pay_period_end)
        run = PayrollRun(
            **data.model_dump(),
            organization_id=organization_id,
            run_number=run_number,
            status=PayrollRunStatus.draft.value,
            currency=await CurrencyService.get_base_currency(db, organization_id),
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(run)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="payroll_run",
            entity_id=run.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json({**data.model_dump(), "run_number": run_number}),
        )
        logger.info("Payroll run created org=%s run=%s number=%s", organization_id, run.id, run_number)
        return run

    @staticmethod
    async def list_runs(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        status: Optional[str] = None,
        run_type: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = scoped_select(PayrollRun, organization_id)
        query = apply_filters(query, PayrollRun, {
            "status": status,
            "run_type": run_type,
            "pay_period_end__from": from_date,
            "pay_period_start__to": to_date,
        })
        query = query.order_by(PayrollRun.pay_period_start.desc(), PayrollRun.run_number.desc())
        return await paginate(db, query, pagination, model=PayrollRun)

    @staticmethod
    async def get_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
    ) -> PayrollRun:
        return await get_scoped_or_404(db, PayrollRun, run_id, organization_id, "PayrollRun")

    @staticmethod
    async def update_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        data: PayrollRunUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        run = await PayrollRunService.get_run(db, organization_id, run_id)
        if run.status != PayrollRunStatus.draft.value:
            raise BusinessRuleException("Only draft payroll runs can be modified.")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return run
        for required in ("run_name", "run_type", "pay_period_start", "pay_period_end", "payment_date"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        start = changes.get("pay_period_start", run.pay_period_start)
        end = changes.get("pay_period_end", run.pay_period_end)
        payment = changes.get("payment_date", run.payment_date)
        if end <= start:
            raise ValidationException.for_field("pay_period_end", "pay_period_end must be after pay_period_start.")
        if payment < end:
            raise ValidationException.for_field("payment_date", "payment_date cannot be before pay_period_end.")

        old_values = apply_changes(run, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="payroll_run",
            entity_id=run.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Payroll run updated org=%s run=%s", organization_id, run.id)
        return run

    @staticmethod
    async def delete_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        run = await PayrollRunService.get_run(db, organization_id, run_id)
        if run.status != PayrollRunStatus.draft.value:
            raise BusinessRuleException("Only draft payroll runs can be deleted.")
        paychecks = await PayrollRunService.get_paychecks(db, organization_id, run.id)
        for paycheck in paychecks:
            paycheck.soft_delete(actor_id)
        run.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="payroll_run",
            entity_id=run.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"run_number": run.run_number, "paychecks": len(paychecks)},
        )
        logger.info("Payroll run deleted org=%s run=%s", organization_id, run.id)

    @staticmethod
    async def get_paychecks(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
    ) -> Sequence[Paycheck]:
        result = await db.execute(
            scoped_select(Paycheck, organization_id)
            .where(Paycheck.payroll_run_id == run_id)
            .order_by(Paycheck.created_at),
        )
        return result.scalars().all()

    # ── Calculation ─────────────────────────────────────────────────

    @staticmethod
    async def _eligible_employees(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run: PayrollRun,
    ) -> Sequence[Employee]:
        result = await db.execute(
            scoped_select(Employee, organization_id)
            .where(
                Employee.employment_status != EmploymentStatus.terminated.value,
                Employee.hire_date <= run.pay_period_end,
            )
            .order_by(Employee.employee_number),
        )
        return result.scalars().all()

    @staticmethod
    async def _year_to_date(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        run: PayrollRun,
    ) -> tuple[Decimal, dict[str, Decimal]]:
        """Gross pay and per-deduction withholding earlier in the run's year."""
        result = await db.execute(
            scoped_select(Paycheck, organization_id).where(
                Paycheck.employee_id == employee_id,
                Paycheck.payroll_run_id != run.id,
                Paycheck.status.in_(_COUNTED),
                extract("year", Paycheck.pay_period_end) == run.pay_period_end.year,
                Paycheck.pay_period_end < run.pay_period_start,
            ),
        )
        gross = ZERO
        by_deduction: dict[str, Decimal] = {}
        for paycheck in result.scalars().all():
            gross += Decimal(paycheck.gross_pay)
            for line in paycheck.deductions or []:
                key = str(line.get("deduction_id"))
                by_deduction[key] = by_deduction.get(key, ZERO) + Decimal(str(line.get("amount", 0)))
        return gross, by_deduction

    @staticmethod
    async def _tax_location(
        db: AsyncSession,
        employee: Employee,
    ) -> tuple[Optional[str], Optional[str]]:
        if employee.location_id is None:
            return None, None
        location = await db.get(Location, employee.location_id)
        if location is None or location.deleted_at is not None or not location.country:
            return None, None
        return location.country, location.state_province

    @staticmethod
    async def calculate_paycheck(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run: PayrollRun,
        employee: Employee,
        compensation: EmployeeCompensation,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Paycheck:
        """Build one employee's paycheck for *run*."""
        start, end = run.pay_period_start, run.pay_period_end

        regular_hours = overtime_hours = pto_hours = ZERO
        if compensation.compensation_type == CompensationType.hourly.value:
            timesheets = await TimesheetService.get_approved_for_period(
                db, organization_id, employee.id, start, end,
            )
            for timesheet in timesheets:
                regular_hours += Decimal(timesheet.regular_hours)
                overtime_hours += Decimal(timesheet.overtime_hours)
                pto_hours += Decimal(timesheet.pto_hours)
        base = period_base_pay(
            compensation,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            pto_hours=pto_hours,
        )
        base_pay = base["regular"] + base["overtime"] + base["pto"]
        total_hours = regular_hours + overtime_hours + pto_hours

        earnings: list[dict[str, Any]] = [
            {"type": "regular", "name": "Regular pay", "hours": regular_hours, "amount": base["regular"]},
        ]
        if base["overtime"]:
            earnings.append(
                {"type": "overtime", "name": "Overtime", "hours": overtime_hours, "amount": base["overtime"]},
            )
        if base["pto"]:
            earnings.append({"type": "pto", "name": "Paid time off", "hours": pto_hours, "amount": base["pto"]})

        component_total = non_taxable = ZERO
        components = await PayComponentService.get_active_for_payroll(
            db, organization_id, employee.id, start, end,
        )
        for assignment, component in components:
            if component.component_type != ComponentType.earning.value:
                continue
            if not await TemporalPatternService.is_satisfied(
                db, organization_id, employee.id, component.temporal_condition, end,
            ):
                continue
            amount = PayComponentService.compute_amount(
                assignment, component, base_pay=base_pay, hours=total_hours,
            )
            if amount <= 0:
                continue
            component_total += amount
            if not component.is_taxable:
                non_taxable += amount
            earnings.append({
                "type": "component",
                "pay_component_id": component.id,
                "code": component.code,
                "name": component.name,
                "taxable": component.is_taxable,
                "amount": amount,
            })

        gross = _money(base_pay + component_total)
        ytd_gross, ytd_by_deduction = await PayrollRunService._year_to_date(
            db, organization_id, employee.id, run,
        )
        breakdown = await DeductionService.calculate_for_payroll(
            db, organization_id, employee.id, gross, start, end,
            ytd_by_deduction=ytd_by_deduction,
        )
        taxable_income = max(gross - non_taxable - breakdown.total_pre_tax, ZERO)

        country, state = await PayrollRunService._tax_location(db, employee)
        taxes = await TaxService.calculate_employee_taxes(
            db, organization_id, taxable_income,
            country=country, state=state, as_of=end, ytd_gross=ytd_gross,
        )
        breakdown = DeductionService.cap_post_tax(
            breakdown, gross - breakdown.total_pre_tax - taxes.total_tax,
        )
        net = max(_money(gross - taxes.total_tax - breakdown.total), ZERO)

        paycheck = Paycheck(
            organization_id=organization_id,
            payroll_run_id=run.id,
            employee_id=employee.id,
            compensation_id=compensation.id,
            pay_period_start=start,
            pay_period_end=end,
            payment_date=run.payment_date,
            compensation_type=compensation.compensation_type,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            pto_hours=pto_hours,
            hourly_rate=(
                compensation.amount
                if compensation.compensation_type == CompensationType.hourly.value else None
            ),
            regular_pay=base["regular"],
            overtime_pay=base["overtime"],
            pto_pay=base["pto"],
            component_earnings=_money(component_total),
            gross_pay=gross,
            pre_tax_deductions=breakdown.total_pre_tax,
            taxable_income=_money(taxable_income),
            total_taxes=taxes.total_tax,
            post_tax_deductions=breakdown.total_post_tax,
            total_deductions=breakdown.total,
            net_pay=net,
            currency=compensation.currency,
            earnings=to_json(earnings),
            taxes=to_json([line.model_dump() for line in taxes.taxes]),
            deductions=to_json(
                [{**line.model_dump(), "pre_tax": True} for line in breakdown.pre_tax]
                + [{**line.model_dump(), "pre_tax": False} for line in breakdown.post_tax],
            ),
            status=PaycheckStatus.pending.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(paycheck)
        return paycheck

    @staticmethod
    async def _to_base(
        db: AsyncSession,
        organization_id: uuid.UUID,
        paycheck: Paycheck,
        base_currency: str,
        actor_id: Optional[uuid.UUID],
    ) -> dict[str, Decimal]:
        amounts = {
            "gross": Decimal(paycheck.gross_pay),
            "taxes": Decimal(paycheck.total_taxes),
            "deductions": Decimal(paycheck.total_deductions),
            "net": Decimal(paycheck.net_pay),
        }
        if paycheck.currency == base_currency:
            return amounts
        converted: dict[str, Decimal] = {}
        for key, amount in amounts.items():
            result = await CurrencyService.convert_amount(
                db, organization_id, amount, paycheck.currency, base_currency,
                as_of=paycheck.pay_period_end,
                reference_type="paycheck" if key == "net" else None,
                reference_id=paycheck.id if key == "net" else None,
                actor_id=actor_id,
            )
            converted[key] = result.to_amount
        return converted

    @staticmethod
    async def refresh_totals(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run: PayrollRun,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        """Recompute run totals in the base currency from its non-voided paychecks."""
        base_currency = await CurrencyService.get_base_currency(db, organization_id)
        totals = {"gross": ZERO, "taxes": ZERO, "deductions": ZERO, "net": ZERO}
        employees: set[uuid.UUID] = set()
        for paycheck in await PayrollRunService.get_paychecks(db, organization_id, run.id):
            if paycheck.status == PaycheckStatus.voided.value:
                continue
            employees.add(paycheck.employee_id)
            amounts = await PayrollRunService._to_base(db, organization_id, paycheck, base_currency, actor_id)
            for key, amount in amounts.items():
                totals[key] += amount
        run.currency = base_currency
        run.total_employees = len(employees)
        run.total_gross = _money(totals["gross"])
        run.total_taxes = _money(totals["taxes"])
        run.total_deductions = _money(totals["deductions"])
        run.total_net = _money(totals["net"])
        await db.flush()
        return run

    @staticmethod
    async def calculate_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[PayrollRun, int, list[CalculationSkip]]:
        run = await PayrollRunService.get_run(db, organization_id, run_id)
        if run.status not in _CALCULABLE:
            raise BusinessRuleException(f"Cannot calculate a payroll run in status '{run.status}'.")

        run.status = PayrollRunStatus.calculating.value
        for existing in await PayrollRunService.get_paychecks(db, organization_id, run.id):
            await db.delete(existing)
        await db.flush()

        compensations = await CompensationService.get_for_period(
            db, organization_id, run.pay_period_start, run.pay_period_end,
        )
        skipped: list[CalculationSkip] = []
        created = 0
        for employee in await PayrollRunService._eligible_employees(db, organization_id, run):
            compensation = compensations.get(employee.id)
            if compensation is None:
                skipped.append(CalculationSkip(employee_id=employee.id, reason="No compensation in effect."))
                continue
            await PayrollRunService.calculate_paycheck(
                db, organization_id, run, employee, compensation, actor_id=actor_id,
            )
            created += 1
        await db.flush()

        await PayrollRunService.refresh_totals(db, organization_id, run, actor_id=actor_id)
        run.status = PayrollRunStatus.calculated.value
        run.calculated_at = utcnow()
        run.calculated_by = actor_id
        run.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="calculate",
            entity_type="payroll_run",
            entity_id=run.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json({
                "paychecks": created,
                "skipped": len(skipped),
                "total_gross": run.total_gross,
                "total_net": run.total_net,
            }),
        )
        logger.info(
            "Payroll run calculated org=%s run=%s paychecks=%d skipped=%d gross=%s net=%s",
            organization_id, run.id, created, len(skipped), run.total_gross, run.total_net,
        )
        return run, created, skipped

    # ── State transitions ───────────────────────────────────────────

    @staticmethod
    async def _transition(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run: PayrollRun,
        new_status: str,
        *,
        action: str,
        actor_id: Optional[uuid.UUID],
        extra: Optional[dict[str, Any]] = None,
    ) -> PayrollRun:
        old_status = run.status
        run.status = new_status
        run.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action=action,
            entity_type="payroll_run",
            entity_id=run.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": new_status, **(extra or {})},
        )
        logger.info(
            "Payroll run %s org=%s run=%s %s->%s",
            action, organization_id, run.id, old_status, new_status,
        )
        return run

    @staticmethod
    async def mark_for_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        run = await PayrollRunService.get_run(db, organization_id, run_id)
        if run.status != PayrollRunStatus.calculated.value:
            raise BusinessRuleException("Only calculated payroll runs can be sent for review.")
        if not await PayrollRunService.get_paychecks(db, organization_id, run.id):
            raise BusinessRuleException("Payroll run has no paychecks to review.")
        return await PayrollRunService._transition(
            db, organization_id, run, PayrollRunStatus.review.value,
            action="review", actor_id=actor_id,
        )

    @staticmethod
    async def approve_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        run = await PayrollRunService.get_run(db, organization_id, run_id)
        if run.status != PayrollRunStatus.review.value:
            raise BusinessRuleException("Only payroll runs in review can be approved.")
        for paycheck in await PayrollRunService.get_paychecks(db, organization_id, run.id):
            if paycheck.status == PaycheckStatus.pending.value:
                paycheck.status = PaycheckStatus.approved.value
                paycheck.updated_by = actor_id
        run.approved_at = utcnow()
        run.approved_by = actor_id
        return await PayrollRunService._transition(
            db, organization_id, run, PayrollRunStatus.approved.value,
            action="approve", actor_id=actor_id,
        )

    @staticmethod
    async def finalize_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        """Issue every approved paycheck and link the period's timesheets to the run."""
        run = await PayrollRunService.get_run(db, organization_id, run_id)
        if run.status != PayrollRunStatus.approved.value:
            raise BusinessRuleException("Only approved payroll runs can be finalized.")

        employee_ids: list[uuid.UUID] = []
        for paycheck in await PayrollRunService.get_paychecks(db, organization_id, run.id):
            if paycheck.status == PaycheckStatus.approved.value:
                paycheck.status = PaycheckStatus.issued.value
                paycheck.updated_by = actor_id
                employee_ids.append(paycheck.employee_id)

        linked = 0
        if employee_ids:
            timesheets = (await db.execute(
                scoped_select(Timesheet, organization_id).where(
                    Timesheet.employee_id.in_(employee_ids),
                    Timesheet.status == ApprovalState.approved.value,
                    Timesheet.period_start >= run.pay_period_start,
                    Timesheet.period_end <= run.pay_period_end,
                    Timesheet.payroll_run_id.is_(None),
                ),
            )).scalars().all()
            for timesheet in timesheets:
                timesheet.payroll_run_id = run.id
            linked = len(timesheets)

        run.finalized_at = utcnow()
        run.finalized_by = actor_id
        return await PayrollRunService._transition(
            db, organization_id, run, PayrollRunStatus.finalized.value,
            action="finalize", actor_id=actor_id,
            extra={"paychecks_issued": len(employee_ids), "timesheets_linked": linked},
        )

    @staticmethod
    async def cancel_run(
        db: AsyncSession,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        *,
        reason: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        run = await PayrollRunService.get_run(db, organization_id, run_id)
        if run.status in _CLOSED:
            raise BusinessRuleException(f"Cannot cancel a payroll run in status '{run.status}'.")
        voided_at = utcnow()
        for paycheck in await PayrollRunService.get_paychecks(db, organization_id, run.id):
            if paycheck.status != PaycheckStatus.voided.value:
                paycheck.status = PaycheckStatus.voided.value
                paycheck.voided_at = voided_at
                paycheck.voided_by = actor_id
                paycheck.void_reason = reason or "Payroll run cancelled."
        await db.flush()
        await PayrollRunService.refresh_totals(db, organization_id, run, actor_id=actor_id)
        if reason:
            run.notes = f"{run.notes}\n{reason}" if run.notes else reason
        return await PayrollRunService._transition(
            db, organization_id, run, PayrollRunStatus.cancelled.value,
            action="cancel", actor_id=actor_id, extra={"reason": reason},
        )


class PaycheckService:

    @staticmethod
    async def list_paychecks(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        payroll_run_id: Optional[uuid.UUID] = None,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(Paycheck, organization_id)
        query = apply_filters(query, Paycheck, {
            "payroll_run_id": payroll_run_id,
            "employee_id": employee_id,
            "status": status,
        })
        query = query.order_by(Paycheck.pay_period_end.desc(), Paycheck.created_at)
        return await paginate(db, query, pagination, model=Paycheck)

    @staticmethod
    async def get_paycheck(
        db: AsyncSession,
        organization_id: uuid.UUID,
        paycheck_id: uuid.UUID,
    ) -> Paycheck:
        return await get_scoped_or_404(db, Paycheck, paycheck_id, organization_id, "Paycheck")

    @staticmethod
    async def get_employee_paychecks(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        year: Optional[int] = None,
    ) -> Sequence[Paycheck]:
        query = scoped_select(Paycheck, organization_id).where(Paycheck.employee_id == employee_id)
        if year is not None:
            query = query.where(extract("year", Paycheck.pay_period_end) == year)
        result = await db.execute(query.order_by(Paycheck.pay_period_end.desc()))
        return result.scalars().all()

    @staticmethod
    def _apply_adjustments(
        paycheck: Paycheck,
        changes: dict[str, Any],
        *,
        actor_id: Optional[uuid.UUID],
    ) -> dict[str, Any]:
        """Set the adjusted amounts and recompute net pay; returns old values."""
        for required in ("gross_pay", "total_taxes", "pre_tax_deductions", "post_tax_deductions", "payment_method"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        gross = Decimal(changes.get("gross_pay", paycheck.gross_pay))
        taxes = Decimal(changes.get("total_taxes", paycheck.total_taxes))
        pre_tax = Decimal(changes.get("pre_tax_deductions", paycheck.pre_tax_deductions))
        post_tax = Decimal(changes.get("post_tax_deductions", paycheck.post_tax_deductions))
        net = _money(gross - taxes - pre_tax - post_tax)
        if net < 0:
            raise ValidationException.for_field("net_pay", "Adjustments would make net pay negative.")

        old_values = apply_changes(paycheck, changes, actor_id=actor_id)
        paycheck.total_deductions = _money(pre_tax + post_tax)
        paycheck.taxable_income = _money(max(gross - pre_tax, ZERO))
        paycheck.net_pay = net
        return old_values

    @staticmethod
    async def update_paycheck(
        db: AsyncSession,
        organization_id: uuid.UUID,
        paycheck_id: uuid.UUID,
        data: PaycheckUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Paycheck:
        paycheck = await PaycheckService.get_paycheck(db, organization_id, paycheck_id)
        if paycheck.status != PaycheckStatus.pending.value:
            raise BusinessRuleException("Only pending paychecks can be modified.")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return paycheck
        old_values = PaycheckService._apply_adjustments(paycheck, changes, actor_id=actor_id)
        net = paycheck.net_pay
        await db.flush()

        run = await PayrollRunService.get_run(db, organization_id, paycheck.payroll_run_id)
        await PayrollRunService.refresh_totals(db, organization_id, run, actor_id=actor_id)

        await create_audit_entry(
            db,
            action="update",
            entity_type="paycheck",
            entity_id=paycheck.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json({**changes, "net_pay": net}),
        )
        logger.info("Paycheck updated org=%s paycheck=%s net=%s", organization_id, paycheck.id, net)
        return paycheck

    @staticmethod
    async def void_paycheck(
        db: AsyncSession,
        organization_id: uuid.UUID,
        paycheck_id: uuid.UUID,
        reason: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Paycheck:
        paycheck = await PaycheckService.get_paycheck(db, organization_id, paycheck_id)
        if paycheck.status == PaycheckStatus.voided.value:
            raise BusinessRuleException("Paycheck is already voided.")
        old_status = paycheck.status
        paycheck.status = PaycheckStatus.voided.value
        paycheck.voided_at = utcnow()
        paycheck.voided_by = actor_id
        paycheck.void_reason = reason
        paycheck.updated_by = actor_id
        await db.flush()

        run = await PayrollRunService.get_run(db, organization_id, paycheck.payroll_run_id)
        await PayrollRunService.refresh_totals(db, organization_id, run, actor_id=actor_id)

        await create_audit_entry(
            db,
            action="void",
            entity_type="paycheck",
            entity_id=paycheck.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": paycheck.status, "reason": reason},
        )
        logger.info("Paycheck voided org=%s paycheck=%s", organization_id, paycheck.id)
        return paycheck

    @staticmethod
    async def reissue_paycheck(
        db: AsyncSession,
        organization_id: uuid.UUID,
        paycheck_id: uuid.UUID,
        adjustments: Optional[PaycheckReissue] = None,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Paycheck:
        """Copy a voided paycheck into a new pending one pointing back at it.

        Optional *adjustments* are applied to the copy and net pay is
        recomputed. The run must still be open.
        """
        original = await PaycheckService.get_paycheck(db, organization_id, paycheck_id)
        if original.status != PaycheckStatus.voided.value:
            raise BusinessRuleException("Only voided paychecks can be reissued.")
        run = await PayrollRunService.get_run(db, organization_id, original.payroll_run_id)
        if run.status in _CLOSED:
            raise BusinessRuleException(f"Cannot reissue a paycheck into a payroll run in status '{run.status}'.")

        skip = {
            "id", "status", "reissued_from_id", "voided_at", "voided_by", "void_reason",
            "created_at", "updated_at", "created_by", "updated_by", "deleted_at", "deleted_by",
        }
        values = {
            column.key: getattr(original, column.key)
            for column in Paycheck.__table__.columns
            if column.key not in skip
        }
        reissued = Paycheck(
            **values,
            status=PaycheckStatus.pending.value,
            reissued_from_id=original.id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        changes = adjustments.model_dump(exclude_unset=True) if adjustments else {}
        if changes:
            PaycheckService._apply_adjustments(reissued, changes, actor_id=actor_id)
        db.add(reissued)
        await db.flush()

        await PayrollRunService.refresh_totals(db, organization_id, run, actor_id=actor_id)

        await create_audit_entry(
            db,
            action="reissue",
            entity_type="paycheck",
            entity_id=reissued.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"reissued_from_id": str(original.id)},
            new_values=to_json({**changes, "net_pay": reissued.net_pay}),
        )
        logger.info(
            "Paycheck reissued org=%s original=%s paycheck=%s",
            organization_id, original.id, reissued.id,
        )
        return reissued

    @staticmethod
    async def delete_paycheck(
        db: AsyncSession,
        organization_id: uuid.UUID,
        paycheck_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        paycheck = await PaycheckService.get_paycheck(db, organization_id, paycheck_id)
        if paycheck.status != PaycheckStatus.pending.value:
            raise BusinessRuleException("Only pending paychecks can be deleted.")
        paycheck.soft_delete(actor_id)
        await db.flush()

        run = await PayrollRunService.get_run(db, organization_id, paycheck.payroll_run_id)
        await PayrollRunService.refresh_totals(db, organization_id, run, actor_id=actor_id)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="paycheck",
            entity_id=paycheck.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Paycheck deleted org=%s paycheck=%s", organization_id, paycheck.id)

    @staticmethod
    async def year_to_date(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        year: int,
    ) -> YearToDateSummary:
        """Totals over the employee's approved and issued paychecks of *year*."""
        result = await db.execute(
            select(
                func.count(Paycheck.id),
                func.coalesce(func.sum(Paycheck.gross_pay), 0),
                func.coalesce(func.sum(Paycheck.total_taxes), 0),
                func.coalesce(func.sum(Paycheck.total_deductions), 0),
                func.coalesce(func.sum(Paycheck.net_pay), 0),
                func.min(Paycheck.pay_period_start),
                func.max(Paycheck.pay_period_end),
            ).where(
                Paycheck.organization_id == organization_id,
                Paycheck.deleted_at.is_(None),
                Paycheck.employee_id == employee_id,
                Paycheck.status.in_(_PAID),
                extract("year", Paycheck.pay_period_end) == year,
            ),
        )
        count, gross, taxes, deductions, net, first_start, last_end = result.one()
        return YearToDateSummary(
            employee_id=employee_id,
            year=year,
            paycheck_count=count,
            gross_pay=_money(gross),
            total_taxes=_money(taxes),
            total_deductions=_money(deductions),
            net_pay=_money(net),
            first_period_start=first_start,
            last_period_end=last_end,
        )
