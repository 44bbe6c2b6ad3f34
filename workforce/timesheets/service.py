"""Timesheet service layer — time entries and period timesheets.

Business logic:
  - Worked hours come from clock in/out minus breaks, or are given directly
  - Regular entries split into regular/overtime at ``STANDARD_WORKDAY_HOURS``
  - Entries are editable only while draft or rejected
  - A timesheet is generated from the approved entries of its period
  - One live timesheet per employee and period
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import ApprovalState, TimeEntryType
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import ensure_utc, hours_between, utcnow
from workforce.common.exceptions import (
    AppException,
    BusinessRuleException,
    ConflictError,
    ValidationException,
)
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.config import settings
from workforce.core_hr.models import Employee
from workforce.timesheets.models import TimeEntry, Timesheet
from workforce.timesheets.schemas import (
    BulkApproveResult,
    HoursSummary,
    TimeEntryCreate,
    TimeEntryUpdate,
    TimesheetCreate,
    TimesheetGenerate,
    TimesheetUpdate,
)

logger = logging.getLogger(__name__)

HOURS = Decimal("0.01")
ZERO = Decimal("0")

_EDITABLE_ENTRY = (ApprovalState.draft.value, ApprovalState.rejected.value)
_DECIDABLE_ENTRY = (ApprovalState.draft.value, ApprovalState.submitted.value)


def _q(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(HOURS)


def split_hours(worked: Decimal, entry_type: str) -> tuple[Decimal, Decimal]:
    """Return ``(regular, overtime)`` for an entry of *entry_type*."""
    if entry_type == TimeEntryType.overtime.value:
        return ZERO, worked
    if entry_type != TimeEntryType.regular.value:
        return worked, ZERO
    standard = _q(settings.STANDARD_WORKDAY_HOURS)
    if worked <= standard:
        return worked, ZERO
    return standard, worked - standard


def _compute_hours(entry: TimeEntry, worked_override: Optional[Decimal] = None) -> None:
    if entry.clock_in is not None and entry.clock_out is not None:
        if ensure_utc(entry.clock_out) <= ensure_utc(entry.clock_in):
            raise ValidationException.for_field("clock_out", "clock_out must be after clock_in.")
        elapsed = _q(hours_between(entry.clock_in, entry.clock_out))
        worked = max(elapsed - _q(Decimal(entry.break_minutes or 0) / 60), ZERO)
    elif worked_override is not None:
        worked = _q(worked_override)
    else:
        worked = _q(entry.worked_hours or 0)
    entry.worked_hours = worked
    entry.regular_hours, entry.overtime_hours = split_hours(worked, entry.entry_type)


# ═════════════════════════════════════════════════════════════════════
# Time entries
# ═════════════════════════════════════════════════════════════════════


class TimeEntryService:

    @staticmethod
    async def list_entries(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        entry_type: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = scoped_select(TimeEntry, organization_id)
        query = apply_filters(query, TimeEntry, {
            "employee_id": employee_id,
            "status": status,
            "entry_type": entry_type,
            "entry_date__from": from_date,
            "entry_date__to": to_date,
        })
        query = query.order_by(TimeEntry.entry_date.desc(), TimeEntry.created_at.desc())
        return await paginate(db, query, pagination, model=TimeEntry)

    @staticmethod
    async def get_entry(
        db: AsyncSession,
        organization_id: uuid.UUID,
        entry_id: uuid.UUID,
    ) -> TimeEntry:
        return await get_scoped_or_404(db, TimeEntry, entry_id, organization_id, "TimeEntry")

    @staticmethod
    async def create_entry(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: TimeEntryCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TimeEntry:
        await ensure_exists(db, Employee, employee_id, organization_id, "employee_id", "Employee")

        values = data.model_dump(exclude={"employee_id", "worked_hours"})
        entry = TimeEntry(
            **values,
            organization_id=organization_id,
            employee_id=employee_id,
            status=ApprovalState.draft.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        _compute_hours(entry, data.worked_hours)
        db.add(entry)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="time_entry",
            entity_id=entry.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json({**values, "employee_id": employee_id, "worked_hours": entry.worked_hours}),
        )
        logger.info(
            "Time entry created org=%s entry=%s employee=%s hours=%s",
            organization_id, entry.id, employee_id, entry.worked_hours,
        )
        return entry

    @staticmethod
    async def update_entry(
        db: AsyncSession,
        organization_id: uuid.UUID,
        entry_id: uuid.UUID,
        data: TimeEntryUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TimeEntry:
        entry = await TimeEntryService.get_entry(db, organization_id, entry_id)
        if entry.status not in _EDITABLE_ENTRY:
            raise BusinessRuleException(f"A {entry.status} time entry cannot be modified.")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return entry
        for required in ("entry_date", "break_minutes", "entry_type"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        worked_override = changes.pop("worked_hours", None)
        old_values = apply_changes(entry, changes, actor_id=actor_id)
        old_values["worked_hours"] = str(entry.worked_hours)
        _compute_hours(entry, worked_override)
        if entry.status == ApprovalState.rejected.value:
            entry.status = ApprovalState.draft.value
            entry.rejection_reason = None
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="time_entry",
            entity_id=entry.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json({**changes, "worked_hours": entry.worked_hours}),
        )
        logger.info("Time entry updated org=%s entry=%s", organization_id, entry.id)
        return entry

    @staticmethod
    async def approve_entry(
        db: AsyncSession,
        organization_id: uuid.UUID,
        entry_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TimeEntry:
        entry = await TimeEntryService.get_entry(db, organization_id, entry_id)
        if entry.status not in _DECIDABLE_ENTRY:
            raise BusinessRuleException(f"Cannot approve a {entry.status} time entry.")
        old_status = entry.status
        entry.status = ApprovalState.approved.value
        entry.approved_by = actor_id
        entry.approved_at = utcnow()
        entry.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="approve",
            entity_type="time_entry",
            entity_id=entry.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": entry.status},
        )
        logger.info("Time entry approved org=%s entry=%s", organization_id, entry.id)
        return entry

    @staticmethod
    async def reject_entry(
        db: AsyncSession,
        organization_id: uuid.UUID,
        entry_id: uuid.UUID,
        reason: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TimeEntry:
        entry = await TimeEntryService.get_entry(db, organization_id, entry_id)
        if entry.status not in _DECIDABLE_ENTRY:
            raise BusinessRuleException(f"Cannot reject a {entry.status} time entry.")
        old_status = entry.status
        entry.status = ApprovalState.rejected.value
        entry.rejection_reason = reason
        entry.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="reject",
            entity_type="time_entry",
            entity_id=entry.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": entry.status, "reason": reason},
        )
        logger.info("Time entry rejected org=%s entry=%s", organization_id, entry.id)
        return entry

    @staticmethod
    async def bulk_approve(
        db: AsyncSession,
        organization_id: uuid.UUID,
        entry_ids: Sequence[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BulkApproveResult:
        """Approve each entry independently; failures are reported per id."""
        approved: list[uuid.UUID] = []
        failed: list[dict] = []
        for entry_id in dict.fromkeys(entry_ids):
            try:
                await TimeEntryService.approve_entry(db, organization_id, entry_id, actor_id=actor_id)
            except AppException as exc:
                failed.append({"entry_id": str(entry_id), "error": exc.detail})
            else:
                approved.append(entry_id)
        logger.info(
            "Bulk approve org=%s approved=%d failed=%d",
            organization_id, len(approved), len(failed),
        )
        return BulkApproveResult(approved=approved, failed=failed)

    @staticmethod
    async def delete_entry(
        db: AsyncSession,
        organization_id: uuid.UUID,
        entry_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        entry = await TimeEntryService.get_entry(db, organization_id, entry_id)
        if entry.status == ApprovalState.approved.value:
            raise BusinessRuleException("An approved time entry cannot be deleted.")
        entry.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="time_entry",
            entity_id=entry.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Time entry deleted org=%s entry=%s", organization_id, entry.id)

    @staticmethod
    async def get_approved_entries(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        from_date: date,
        to_date: date,
    ) -> Sequence[TimeEntry]:
        result = await db.execute(
            scoped_select(TimeEntry, organization_id)
            .where(
                TimeEntry.employee_id == employee_id,
                TimeEntry.status == ApprovalState.approved.value,
                TimeEntry.entry_date >= from_date,
                TimeEntry.entry_date <= to_date,
            )
            .order_by(TimeEntry.entry_date, TimeEntry.clock_in),
        )
        return result.scalars().all()

    @staticmethod
    async def get_hours_summary(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        from_date: date,
        to_date: date,
    ) -> HoursSummary:
        """Approved hours of one employee, bucketed by entry type."""
        if from_date > to_date:
            raise ValidationException.for_field("from_date", "from_date must be on or before to_date.")
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        entries = await TimeEntryService.get_approved_entries(
            db, organization_id, employee_id, from_date, to_date,
        )
        totals = _bucket(entries)
        return HoursSummary(
            employee_id=employee_id,
            from_date=from_date,
            to_date=to_date,
            entries=len(entries),
            holiday_hours=sum(
                (_q(e.worked_hours) for e in entries if e.entry_type == TimeEntryType.holiday.value),
                ZERO,
            ),
            **totals,
        )


def _bucket(entries: Sequence[TimeEntry]) -> dict[str, Decimal]:
    """Sum approved entries into timesheet hour columns."""
    regular = overtime = pto = sick = ZERO
    for e in entries:
        if e.entry_type == TimeEntryType.pto.value:
            pto += _q(e.worked_hours)
        elif e.entry_type == TimeEntryType.sick.value:
            sick += _q(e.worked_hours)
        else:
            regular += _q(e.regular_hours)
            overtime += _q(e.overtime_hours)
    return {
        "regular_hours": regular,
        "overtime_hours": overtime,
        "pto_hours": pto,
        "sick_hours": sick,
        "total_hours": regular + overtime + pto + sick,
    }


# ═════════════════════════════════════════════════════════════════════
# Timesheets
# ═════════════════════════════════════════════════════════════════════


def _total(ts: Timesheet) -> Decimal:
    return _q(ts.regular_hours) + _q(ts.overtime_hours) + _q(ts.pto_hours) + _q(ts.sick_hours)


class TimesheetService:

    @staticmethod
    async def _ensure_no_overlap(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> None:
        query = scoped_select(Timesheet, organization_id).where(
            Timesheet.employee_id == employee_id,
            Timesheet.status != ApprovalState.rejected.value,
            Timesheet.period_start <= period_end,
            Timesheet.period_end >= period_start,
        )
        if (await db.execute(query)).scalars().first() is not None:
            raise ConflictError("period_start", f"{period_start}..{period_end}")

    @staticmethod
    async def _insert(
        db: AsyncSession,
        organization_id: uuid.UUID,
        values: dict[str, Any],
        actor_id: Optional[uuid.UUID],
        action: str,
    ) -> Timesheet:
        await ensure_exists(db, Employee, values["employee_id"], organization_id, "employee_id", "Employee")
        await TimesheetService._ensure_no_overlap(
            db, organization_id, values["employee_id"], values["period_start"], values["period_end"],
        )
        timesheet = Timesheet(
            **values,
            organization_id=organization_id,
            status=ApprovalState.draft.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        timesheet.total_hours = _total(timesheet)
        db.add(timesheet)
        await db.flush()

        await create_audit_entry(
            db,
            action=action,
            entity_type="timesheet",
            entity_id=timesheet.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json({**values, "total_hours": timesheet.total_hours}),
        )
        logger.info(
            "Timesheet %s org=%s timesheet=%s employee=%s hours=%s",
            action, organization_id, timesheet.id, timesheet.employee_id, timesheet.total_hours,
        )
        return timesheet

    @staticmethod
    async def create_timesheet(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: TimesheetCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Timesheet:
        return await TimesheetService._insert(db, organization_id, data.model_dump(), actor_id, "create")

    @staticmethod
    async def generate_timesheet(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: TimesheetGenerate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Timesheet:
        entries = await TimeEntryService.get_approved_entries(
            db, organization_id, data.employee_id, data.period_start, data.period_end,
        )
        if not entries:
            raise BusinessRuleException("No approved time entries in the period.")
        totals = _bucket(entries)
        totals.pop("total_hours")
        values = {**data.model_dump(), **totals}
        return await TimesheetService._insert(db, organization_id, values, actor_id, "generate")

    @staticmethod
    async def list_timesheets(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = scoped_select(Timesheet, organization_id)
        query = apply_filters(query, Timesheet, {
            "employee_id": employee_id,
            "status": status,
            "period_end__from": from_date,
            "period_start__to": to_date,
        })
        query = query.order_by(Timesheet.period_start.desc())
        return await paginate(db, query, pagination, model=Timesheet)

    @staticmethod
    async def get_timesheet(
        db: AsyncSession,
        organization_id: uuid.UUID,
        timesheet_id: uuid.UUID,
    ) -> Timesheet:
        return await get_scoped_or_404(db, Timesheet, timesheet_id, organization_id, "Timesheet")

    @staticmethod
    async def update_timesheet(
        db: AsyncSession,
        organization_id: uuid.UUID,
        timesheet_id: uuid.UUID,
        data: TimesheetUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Timesheet:
        timesheet = await TimesheetService.get_timesheet(db, organization_id, timesheet_id)
        if timesheet.status != ApprovalState.draft.value:
            raise BusinessRuleException("Only draft timesheets can be modified.")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return timesheet
        for field, value in changes.items():
            if field.endswith("_hours") and value is None:
                raise ValidationException.for_field(field, "Field cannot be null.")

        old_values = apply_changes(timesheet, changes, actor_id=actor_id)
        timesheet.total_hours = _total(timesheet)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="timesheet",
            entity_id=timesheet.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Timesheet updated org=%s timesheet=%s", organization_id, timesheet.id)
        return timesheet

    @staticmethod
    async def _transition(
        db: AsyncSession,
        organization_id: uuid.UUID,
        timesheet_id: uuid.UUID,
        allowed_from: tuple[str, ...],
        target: str,
        actor_id: Optional[uuid.UUID],
        **extra: Any,
    ) -> Timesheet:
        timesheet = await TimesheetService.get_timesheet(db, organization_id, timesheet_id)
        if timesheet.status not in allowed_from:
            raise BusinessRuleException(
                f"Cannot move timesheet from '{timesheet.status}' to '{target}'.",
            )
        old_status = timesheet.status
        timesheet.status = target
        timesheet.updated_by = actor_id
        for field, value in extra.items():
            setattr(timesheet, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action=target,
            entity_type="timesheet",
            entity_id=timesheet.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values=to_json({"status": target, **extra}),
        )
        logger.info(
            "Timesheet status changed org=%s timesheet=%s %s->%s",
            organization_id, timesheet.id, old_status, target,
        )
        return timesheet

    @staticmethod
    async def submit_timesheet(db, organization_id, timesheet_id, *, actor_id=None) -> Timesheet:
        return await TimesheetService._transition(
            db, organization_id, timesheet_id,
            (ApprovalState.draft.value, ApprovalState.rejected.value),
            ApprovalState.submitted.value, actor_id,
            submitted_at=utcnow(), submitted_by=actor_id, rejection_reason=None,
        )

    @staticmethod
    async def approve_timesheet(db, organization_id, timesheet_id, *, actor_id=None) -> Timesheet:
        return await TimesheetService._transition(
            db, organization_id, timesheet_id,
            (ApprovalState.submitted.value,), ApprovalState.approved.value, actor_id,
            approved_at=utcnow(), approved_by=actor_id,
        )

    @staticmethod
    async def reject_timesheet(db, organization_id, timesheet_id, reason: str, *, actor_id=None) -> Timesheet:
        return await TimesheetService._transition(
            db, organization_id, timesheet_id,
            (ApprovalState.submitted.value,), ApprovalState.rejected.value, actor_id,
            rejection_reason=reason,
        )

    @staticmethod
    async def delete_timesheet(
        db: AsyncSession,
        organization_id: uuid.UUID,
        timesheet_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        timesheet = await TimesheetService.get_timesheet(db, organization_id, timesheet_id)
        if timesheet.status == ApprovalState.approved.value:
            raise BusinessRuleException("An approved timesheet cannot be deleted.")
        timesheet.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="timesheet",
            entity_id=timesheet.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Timesheet deleted org=%s timesheet=%s", organization_id, timesheet.id)

    @staticmethod
    async def get_approved_for_period(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> Sequence[Timesheet]:
        """Approved timesheets falling inside a pay period."""
        result = await db.execute(
            scoped_select(Timesheet, organization_id).where(
                Timesheet.employee_id == employee_id,
                Timesheet.status == ApprovalState.approved.value,
                Timesheet.period_start >= period_start,
                Timesheet.period_end <= period_end,
            ),
        )
        return result.scalars().all()
