"""Scheduling service — work schedules and their shifts."""

from __future__ import annotations

import logging
import uuid
from datetime import date, time
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import ScheduleStatus, ShiftStatus
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.exceptions import BusinessRuleException, ConflictError, ValidationException
from workforce.common.filters import apply_filters, apply_search
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee
from workforce.schedules.models import Shift, WorkSchedule
from workforce.schedules.schemas import (
    ScheduleCreate,
    ScheduleDetail,
    ScheduleResponse,
    ScheduleUpdate,
    ShiftCreate,
    ShiftResponse,
    ShiftUpdate,
)

logger = logging.getLogger(__name__)

_INACTIVE_SHIFT = (ShiftStatus.cancelled.value,)
_CLOSED_SHIFT = (ShiftStatus.completed.value, ShiftStatus.cancelled.value)


def _minutes(start: time, end: time) -> tuple[int, int]:
    """Shift interval in minutes from midnight; overnight shifts end past 1440."""
    s = start.hour * 60 + start.minute
    e = end.hour * 60 + end.minute
    if e <= s:
        e += 24 * 60
    return s, e


def _overlaps(a: tuple[time, time], b: tuple[time, time]) -> bool:
    a_start, a_end = _minutes(*a)
    b_start, b_end = _minutes(*b)
    return a_start < b_end and b_start < a_end


# ═════════════════════════════════════════════════════════════════════
# Schedules
# ═════════════════════════════════════════════════════════════════════


class ScheduleService:

    @staticmethod
    async def list_schedules(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = scoped_select(WorkSchedule, organization_id)
        query = apply_filters(query, WorkSchedule, {
            "status": status,
            "end_date__from": from_date,
            "start_date__to": to_date,
        })
        query = apply_search(query, WorkSchedule, search, ["name", "notes"])
        query = query.order_by(WorkSchedule.start_date.desc())
        return await paginate(db, query, pagination, model=WorkSchedule)

    @staticmethod
    async def get_schedule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        schedule_id: uuid.UUID,
    ) -> WorkSchedule:
        return await get_scoped_or_404(db, WorkSchedule, schedule_id, organization_id, "WorkSchedule")

    @staticmethod
    async def get_schedule_detail(
        db: AsyncSession,
        organization_id: uuid.UUID,
        schedule_id: uuid.UUID,
    ) -> ScheduleDetail:
        schedule = await ScheduleService.get_schedule(db, organization_id, schedule_id)
        shifts = await ShiftService.list_schedule_shifts(db, organization_id, schedule.id)
        return ScheduleDetail(
            **ScheduleResponse.model_validate(schedule).model_dump(),
            shifts=[ShiftResponse.model_validate(s) for s in shifts],
        )

    @staticmethod
    async def create_schedule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: ScheduleCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> WorkSchedule:
        schedule = WorkSchedule(
            **data.model_dump(),
            organization_id=organization_id,
            status=ScheduleStatus.draft.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(schedule)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="work_schedule",
            entity_id=schedule.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info("Schedule created org=%s schedule=%s", organization_id, schedule.id)
        return schedule

    @staticmethod
    async def update_schedule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        schedule_id: uuid.UUID,
        data: ScheduleUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> WorkSchedule:
        schedule = await ScheduleService.get_schedule(db, organization_id, schedule_id)
        if schedule.status == ScheduleStatus.archived.value:
            raise BusinessRuleException("An archived schedule cannot be modified.")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return schedule
        for required in ("name", "start_date", "end_date"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")
        if changes.get("end_date", schedule.end_date) < changes.get("start_date", schedule.start_date):
            raise ValidationException.for_field("end_date", "end_date must be on or after start_date.")

        old_values = apply_changes(schedule, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="work_schedule",
            entity_id=schedule.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Schedule updated org=%s schedule=%s", organization_id, schedule.id)
        return schedule

    @staticmethod
    async def _transition(
        db: AsyncSession,
        organization_id: uuid.UUID,
        schedule_id: uuid.UUID,
        allowed_from: tuple[str, ...],
        target: str,
        actor_id: Optional[uuid.UUID],
    ) -> WorkSchedule:
        schedule = await ScheduleService.get_schedule(db, organization_id, schedule_id)
        if schedule.status not in allowed_from:
            raise BusinessRuleException(
                f"Cannot move schedule from '{schedule.status}' to '{target}'.",
            )
        old_status = schedule.status
        schedule.status = target
        schedule.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action=target,
            entity_type="work_schedule",
            entity_id=schedule.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": target},
        )
        logger.info(
            "Schedule status changed org=%s schedule=%s %s->%s",
            organization_id, schedule.id, old_status, target,
        )
        return schedule

    @staticmethod
    async def publish_schedule(db, organization_id, schedule_id, *, actor_id=None) -> WorkSchedule:
        return await ScheduleService._transition(
            db, organization_id, schedule_id,
            (ScheduleStatus.draft.value,), ScheduleStatus.published.value, actor_id,
        )

    @staticmethod
    async def archive_schedule(db, organization_id, schedule_id, *, actor_id=None) -> WorkSchedule:
        return await ScheduleService._transition(
            db, organization_id, schedule_id,
            (ScheduleStatus.draft.value, ScheduleStatus.published.value),
            ScheduleStatus.archived.value, actor_id,
        )

    @staticmethod
    async def delete_schedule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        schedule_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        schedule = await ScheduleService.get_schedule(db, organization_id, schedule_id)
        if schedule.status != ScheduleStatus.draft.value:
            raise BusinessRuleException("Only draft schedules can be deleted.")
        shifts = await ShiftService.list_schedule_shifts(db, organization_id, schedule.id)
        for shift in shifts:
            shift.soft_delete(actor_id)
        schedule.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="work_schedule",
            entity_id=schedule.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"shifts": len(shifts)},
        )
        logger.info("Schedule deleted org=%s schedule=%s shifts=%d", organization_id, schedule.id, len(shifts))


# ═════════════════════════════════════════════════════════════════════
# Shifts
# ═════════════════════════════════════════════════════════════════════


class ShiftService:

    @staticmethod
    async def _check_overlap(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: Optional[uuid.UUID],
        shift_date: date,
        start: time,
        end: time,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        if employee_id is None:
            return
        query = scoped_select(Shift, organization_id).where(
            Shift.employee_id == employee_id,
            Shift.shift_date == shift_date,
            Shift.status.not_in(_INACTIVE_SHIFT),
        )
        if exclude_id is not None:
            query = query.where(Shift.id != exclude_id)
        for other in (await db.execute(query)).scalars().all():
            if _overlaps((start, end), (other.start_time, other.end_time)):
                raise ConflictError(
                    "shift",
                    f"{shift_date} {other.start_time.isoformat()}-{other.end_time.isoformat()}",
                )

    @staticmethod
    def _check_in_range(schedule: WorkSchedule, shift_date: date) -> None:
        if not schedule.start_date <= shift_date <= schedule.end_date:
            raise ValidationException.for_field(
                "shift_date",
                f"shift_date must fall within the schedule ({schedule.start_date} to {schedule.end_date}).",
            )

    @staticmethod
    async def get_shift(
        db: AsyncSession,
        organization_id: uuid.UUID,
        shift_id: uuid.UUID,
    ) -> Shift:
        return await get_scoped_or_404(db, Shift, shift_id, organization_id, "Shift")

    @staticmethod
    async def add_shift(
        db: AsyncSession,
        organization_id: uuid.UUID,
        schedule_id: uuid.UUID,
        data: ShiftCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Shift:
        schedule = await ScheduleService.get_schedule(db, organization_id, schedule_id)
        if schedule.status == ScheduleStatus.archived.value:
            raise BusinessRuleException("Shifts cannot be added to an archived schedule.")
        ShiftService._check_in_range(schedule, data.shift_date)
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")
        await ShiftService._check_overlap(
            db, organization_id, data.employee_id, data.shift_date, data.start_time, data.end_time,
        )

        shift = Shift(
            **data.model_dump(),
            organization_id=organization_id,
            schedule_id=schedule.id,
            status=ShiftStatus.scheduled.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(shift)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="shift",
            entity_id=shift.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Shift added org=%s schedule=%s shift=%s employee=%s",
            organization_id, schedule.id, shift.id, shift.employee_id,
        )
        return shift

    @staticmethod
    async def update_shift(
        db: AsyncSession,
        organization_id: uuid.UUID,
        shift_id: uuid.UUID,
        data: ShiftUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Shift:
        shift = await ShiftService.get_shift(db, organization_id, shift_id)
        if shift.status in _CLOSED_SHIFT:
            raise BusinessRuleException(f"A {shift.status} shift cannot be modified.")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return shift
        for required in ("shift_date", "start_time", "end_time", "break_minutes"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        shift_date = changes.get("shift_date", shift.shift_date)
        start = changes.get("start_time", shift.start_time)
        end = changes.get("end_time", shift.end_time)
        employee_id = changes.get("employee_id", shift.employee_id)
        if start == end:
            raise ValidationException.for_field("end_time", "start_time and end_time must differ.")

        schedule = await ScheduleService.get_schedule(db, organization_id, shift.schedule_id)
        ShiftService._check_in_range(schedule, shift_date)
        await ensure_exists(db, Employee, changes.get("employee_id"), organization_id, "employee_id", "Employee")
        await ShiftService._check_overlap(
            db, organization_id, employee_id, shift_date, start, end, exclude_id=shift.id,
        )

        old_values = apply_changes(shift, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="shift",
            entity_id=shift.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Shift updated org=%s shift=%s", organization_id, shift.id)
        return shift

    @staticmethod
    async def _set_status(
        db: AsyncSession,
        organization_id: uuid.UUID,
        shift_id: uuid.UUID,
        allowed_from: tuple[str, ...],
        target: str,
        actor_id: Optional[uuid.UUID],
    ) -> Shift:
        shift = await ShiftService.get_shift(db, organization_id, shift_id)
        if shift.status not in allowed_from:
            raise BusinessRuleException(f"Cannot move shift from '{shift.status}' to '{target}'.")
        old_status = shift.status
        shift.status = target
        shift.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action=target,
            entity_type="shift",
            entity_id=shift.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": target},
        )
        logger.info("Shift %s org=%s shift=%s", target, organization_id, shift.id)
        return shift

    @staticmethod
    async def cancel_shift(db, organization_id, shift_id, *, actor_id=None) -> Shift:
        return await ShiftService._set_status(
            db, organization_id, shift_id,
            (ShiftStatus.scheduled.value, ShiftStatus.confirmed.value),
            ShiftStatus.cancelled.value, actor_id,
        )

    @staticmethod
    async def confirm_shift(db, organization_id, shift_id, *, actor_id=None) -> Shift:
        return await ShiftService._set_status(
            db, organization_id, shift_id,
            (ShiftStatus.scheduled.value,), ShiftStatus.confirmed.value, actor_id,
        )

    @staticmethod
    async def complete_shift(db, organization_id, shift_id, *, actor_id=None) -> Shift:
        return await ShiftService._set_status(
            db, organization_id, shift_id,
            (ShiftStatus.scheduled.value, ShiftStatus.confirmed.value),
            ShiftStatus.completed.value, actor_id,
        )

    # ── Listings ────────────────────────────────────────────────────

    @staticmethod
    async def list_schedule_shifts(
        db: AsyncSession,
        organization_id: uuid.UUID,
        schedule_id: uuid.UUID,
    ) -> Sequence[Shift]:
        result = await db.execute(
            scoped_select(Shift, organization_id)
            .where(Shift.schedule_id == schedule_id)
            .order_by(Shift.shift_date, Shift.start_time),
        )
        return result.scalars().all()

    @staticmethod
    async def list_employee_shifts(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        *,
        status: Optional[str] = None,
    ) -> Sequence[Shift]:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        query = scoped_select(Shift, organization_id).where(Shift.employee_id == employee_id)
        query = apply_filters(query, Shift, {
            "shift_date__from": from_date,
            "shift_date__to": to_date,
            "status": status,
        })
        result = await db.execute(query.order_by(Shift.shift_date, Shift.start_time))
        return result.scalars().all()

    @staticmethod
    async def list_shifts_in_range(
        db: AsyncSession,
        organization_id: uuid.UUID,
        from_date: date,
        to_date: date,
        *,
        station_id: Optional[uuid.UUID] = None,
        role_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[Shift]:
        if from_date > to_date:
            raise ValidationException.for_field("from_date", "from_date must be on or before to_date.")
        query = scoped_select(Shift, organization_id)
        query = apply_filters(query, Shift, {
            "shift_date__from": from_date,
            "shift_date__to": to_date,
            "station_id": station_id,
            "role_id": role_id,
            "status": status,
        })
        result = await db.execute(query.order_by(Shift.shift_date, Shift.start_time))
        return result.scalars().all()
