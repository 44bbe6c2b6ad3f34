"""Attendance service layer — clock in/out, manual entries, summaries.

Business logic:
  - Clock in refused while an open record exists for the day
  - Clock in after ``ATTENDANCE_LATE_AFTER`` local time is marked late; the
    zone is the employee's location, else the organization
  - Clock out closes the open record and computes total hours
  - Read operations for one employee, one day and today's overview
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.attendance.models import AttendanceRecord
from workforce.attendance.schemas import (
    AttendanceCreate,
    AttendanceSummary,
    AttendanceUpdate,
    TodayStats,
)
from workforce.common.audit import create_audit_entry
from workforce.common.constants import AttendanceStatus, EmploymentStatus
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import ensure_utc, hours_between, utcnow
from workforce.common.exceptions import ConflictError, ValidationException
from workforce.config import settings
from workforce.core_hr.models import Employee, Location, Organization

logger = logging.getLogger(__name__)

# ── Constants ───────────────────────────────────────────────────────

MAX_DATE_RANGE_DAYS = 366


def _late_after() -> time:
    return time.fromisoformat(settings.ATTENDANCE_LATE_AFTER)


async def _local_zone(
    db: AsyncSession,
    organization_id: uuid.UUID,
    employee: Optional[Employee] = None,
) -> ZoneInfo:
    name = None
    if employee is not None and employee.location_id is not None:
        location = await db.get(Location, employee.location_id)
        if location is not None:
            name = location.timezone
    if not name:
        organization = await db.get(Organization, organization_id)
        name = organization.timezone if organization else None
    return ZoneInfo(name or "UTC")


def _hours(start: Optional[datetime], end: Optional[datetime]) -> Optional[Decimal]:
    if start is None or end is None:
        return None
    return Decimal(str(hours_between(start, end)))


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Attendance records per employee and day."""

    @staticmethod
    def _validate_date_range(from_date: date, to_date: date) -> None:
        if from_date > to_date:
            raise ValidationException(
                {"date_range": ["from_date must be before or equal to to_date."]}
            )
        if (to_date - from_date).days > MAX_DATE_RANGE_DAYS:
            raise ValidationException(
                {"date_range": [f"Date range cannot exceed {MAX_DATE_RANGE_DAYS} days."]}
            )

    @staticmethod
    async def _open_record(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        day: date,
    ) -> Optional[AttendanceRecord]:
        result = await db.execute(
            scoped_select(AttendanceRecord, organization_id)
            .where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date == day,
                AttendanceRecord.clock_in_time.is_not(None),
                AttendanceRecord.clock_out_time.is_(None),
            )
            .order_by(AttendanceRecord.clock_in_time.desc())
            .limit(1)
        )
        return result.scalars().first()

    # ── Clock in ────────────────────────────────────────────────────

    @staticmethod
    async def clock_in(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Open today's attendance record for *employee_id*."""
        employee = await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")

        now = utcnow()
        local = now.astimezone(await _local_zone(db, organization_id, employee))
        day = local.date()
        if await AttendanceService._open_record(db, organization_id, employee_id, day):
            raise ConflictError("clock_in", "Already clocked in today without clocking out.")

        status = AttendanceStatus.late if local.time() > _late_after() else AttendanceStatus.present
        record = AttendanceRecord(
            organization_id=organization_id,
            employee_id=employee_id,
            attendance_date=day,
            clock_in_time=now,
            clock_in_location=location,
            status=status.value,
            notes=notes,
            is_manual=False,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="clock_in",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values={"timestamp": now.isoformat(), "location": location, "status": record.status},
        )
        logger.info(
            "Clock in org=%s employee=%s record=%s status=%s",
            organization_id, employee_id, record.id, record.status,
        )
        return record

    # ── Clock out ───────────────────────────────────────────────────

    @staticmethod
    async def clock_out(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Close today's open record and compute total hours."""
        employee = await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        now = utcnow()
        day = now.astimezone(await _local_zone(db, organization_id, employee)).date()
        record = await AttendanceService._open_record(db, organization_id, employee_id, day)
        if record is None:
            raise ValidationException(
                {"clock_out": ["No open clock-in found for today. Please clock in first."]}
            )

        record.clock_out_time = now
        record.clock_out_location = location
        record.total_hours = _hours(record.clock_in_time, now)
        if notes:
            record.notes = f"{record.notes}\n{notes}" if record.notes else notes
        record.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="clock_out",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values={
                "timestamp": now.isoformat(),
                "location": location,
                "total_hours": str(record.total_hours),
            },
        )
        logger.info(
            "Clock out org=%s employee=%s record=%s hours=%s",
            organization_id, employee_id, record.id, record.total_hours,
        )
        return record

    # ── Manual entry ────────────────────────────────────────────────

    @staticmethod
    async def create_manual_entry(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: AttendanceCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")

        record = AttendanceRecord(
            **data.model_dump(),
            organization_id=organization_id,
            total_hours=_hours(data.clock_in_time, data.clock_out_time),
            is_manual=True,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Manual attendance created org=%s employee=%s date=%s",
            organization_id, record.employee_id, record.attendance_date,
        )
        return record

    # ── Read ────────────────────────────────────────────────────────

    @staticmethod
    async def get_record(
        db: AsyncSession,
        organization_id: uuid.UUID,
        record_id: uuid.UUID,
    ) -> AttendanceRecord:
        return await get_scoped_or_404(
            db, AttendanceRecord, record_id, organization_id, "AttendanceRecord",
        )

    @staticmethod
    async def get_employee_attendance(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        from_date: date,
        to_date: date,
        *,
        status: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        AttendanceService._validate_date_range(from_date, to_date)
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")

        query = scoped_select(AttendanceRecord, organization_id).where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.attendance_date >= from_date,
            AttendanceRecord.attendance_date <= to_date,
        )
        if status:
            query = query.where(AttendanceRecord.status == status)
        result = await db.execute(
            query.order_by(AttendanceRecord.attendance_date.desc(), AttendanceRecord.clock_in_time.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def get_attendance_summary(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        from_date: date,
        to_date: date,
    ) -> AttendanceSummary:
        """Days per status (one status per calendar day) plus hour totals."""
        records = await AttendanceService.get_employee_attendance(
            db, organization_id, employee_id, from_date, to_date,
        )

        day_status: dict[date, str] = {}
        total_hours = 0.0
        hours_days: set[date] = set()
        for r in records:
            # A late clock-in on any record marks the day late
            if r.attendance_date not in day_status or r.status == AttendanceStatus.late.value:
                day_status[r.attendance_date] = r.status
            if r.total_hours is not None:
                total_hours += float(r.total_hours)
                hours_days.add(r.attendance_date)

        counts = {s.value: 0 for s in AttendanceStatus}
        for s in day_status.values():
            counts[s] = counts.get(s, 0) + 1

        return AttendanceSummary(
            employee_id=employee_id,
            from_date=from_date,
            to_date=to_date,
            days_present=counts[AttendanceStatus.present.value] + counts[AttendanceStatus.late.value],
            days_absent=counts[AttendanceStatus.absent.value],
            days_late=counts[AttendanceStatus.late.value],
            days_half_day=counts[AttendanceStatus.half_day.value],
            days_on_leave=counts[AttendanceStatus.on_leave.value],
            total_hours=round(total_hours, 2),
            average_hours=round(total_hours / len(hours_days), 2) if hours_days else 0.0,
        )

    @staticmethod
    async def get_daily_attendance(
        db: AsyncSession,
        organization_id: uuid.UUID,
        day: date,
        *,
        department_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        query = scoped_select(AttendanceRecord, organization_id).where(
            AttendanceRecord.attendance_date == day,
        )
        if department_id:
            query = query.join(Employee, Employee.id == AttendanceRecord.employee_id).where(
                Employee.department_id == department_id,
            )
        if status:
            query = query.where(AttendanceRecord.status == status)
        result = await db.execute(query.order_by(AttendanceRecord.clock_in_time))
        return result.scalars().all()

    @staticmethod
    async def get_today_stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> TodayStats:
        """Counts of today's attendance against all active employees.

        "Today" is the calendar day in the organization's timezone.
        """
        day = utcnow().astimezone(await _local_zone(db, organization_id)).date()
        employee_ids = set((await db.execute(
            select(Employee.id).where(
                Employee.organization_id == organization_id,
                Employee.deleted_at.is_(None),
                Employee.employment_status == EmploymentStatus.active.value,
            )
        )).scalars().all())

        records = await AttendanceService.get_daily_attendance(db, organization_id, day)
        stats = TodayStats(date=day, total_employees=len(employee_ids))

        seen: dict[uuid.UUID, str] = {}
        for r in records:
            if r.employee_id not in seen or r.status == AttendanceStatus.late.value:
                seen[r.employee_id] = r.status
            if r.is_open:
                stats.currently_working += 1

        for status in seen.values():
            if status == AttendanceStatus.late.value:
                stats.late += 1
                stats.present += 1
            elif status in (AttendanceStatus.present.value, AttendanceStatus.half_day.value):
                stats.present += 1
            elif status == AttendanceStatus.absent.value:
                stats.absent += 1
            elif status == AttendanceStatus.on_leave.value:
                stats.on_leave += 1

        stats.clocked_in = len({r.employee_id for r in records if r.clock_in_time is not None})
        stats.not_clocked_in = len(employee_ids - set(seen))
        return stats

    # ── Update / delete ─────────────────────────────────────────────

    @staticmethod
    async def update_record(
        db: AsyncSession,
        organization_id: uuid.UUID,
        record_id: uuid.UUID,
        data: AttendanceUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Partial update; total hours are recomputed from the clock times."""
        record = await AttendanceService.get_record(db, organization_id, record_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return record
        if "status" in changes and changes["status"] is None:
            raise ValidationException.for_field("status", "Field cannot be null.")

        clock_in = ensure_utc(changes.get("clock_in_time", record.clock_in_time))
        clock_out = ensure_utc(changes.get("clock_out_time", record.clock_out_time))
        if clock_out is not None and clock_in is None:
            raise ValidationException.for_field("clock_out_time", "clock_out_time requires clock_in_time.")
        if clock_in is not None and clock_out is not None and clock_out <= clock_in:
            raise ValidationException.for_field("clock_out_time", "clock_out_time must be after clock_in_time.")

        changes["total_hours"] = _hours(clock_in, clock_out)
        old_values = apply_changes(record, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Attendance updated org=%s record=%s", organization_id, record.id)
        return record

    @staticmethod
    async def delete_record(
        db: AsyncSession,
        organization_id: uuid.UUID,
        record_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        record = await AttendanceService.get_record(db, organization_id, record_id)
        record.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Attendance deleted org=%s record=%s", organization_id, record.id)
