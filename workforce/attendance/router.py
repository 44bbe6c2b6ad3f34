"""Attendance router — clock in/out, manual entries, daily views, summaries.

All endpoints require authentication. Acting on another employee's
attendance requires ``attendance:write``; reading it requires
``attendance:read`` and passes the VIP check.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.attendance.schemas import (
    AttendanceCreate,
    AttendanceResponse,
    AttendanceUpdate,
    ClockInRequest,
    ClockOutRequest,
)
from workforce.attendance.service import AttendanceService
from workforce.auth.dependencies import has_permission, require_permission
from workforce.common.constants import AccessType, AttendanceStatus
from workforce.common.dates import today
from workforce.common.exceptions import ForbiddenException
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.vip.dependencies import enforce_vip_access, require_vip_access

router = APIRouter(prefix="", tags=["attendance"])


def _out(record) -> dict:
    return AttendanceResponse.model_validate(record).model_dump(mode="json")


def _target(request: Request, user: Employee, employee_id: Optional[uuid.UUID]) -> uuid.UUID:
    if employee_id is None or employee_id == user.id:
        return user.id
    if not has_permission(request.state.user_role, "attendance:write"):
        raise ForbiddenException(detail="You can only record your own attendance.")
    return employee_id


# ── POST /clock-in ──────────────────────────────────────────────────

@router.post("/clock-in", status_code=201)
async def clock_in(
    body: ClockInRequest,
    request: Request,
    employee: Employee = Depends(require_permission("attendance:clock")),
    db: AsyncSession = Depends(get_db),
):
    """Record a clock-in event for the caller (or another employee)."""
    record = await AttendanceService.clock_in(
        db,
        employee.organization_id,
        _target(request, employee, body.employee_id),
        location=body.location,
        notes=body.notes,
        actor_id=employee.id,
    )
    return {"data": _out(record), "message": "Clocked in successfully."}


# ── POST /clock-out ─────────────────────────────────────────────────

@router.post("/clock-out")
async def clock_out(
    body: ClockOutRequest,
    request: Request,
    employee: Employee = Depends(require_permission("attendance:clock")),
    db: AsyncSession = Depends(get_db),
):
    record = await AttendanceService.clock_out(
        db,
        employee.organization_id,
        _target(request, employee, body.employee_id),
        location=body.location,
        notes=body.notes,
        actor_id=employee.id,
    )
    return {"data": _out(record), "message": "Clocked out successfully."}


# ── POST / — Manual entry ───────────────────────────────────────────

@router.post("", status_code=201)
async def create_manual_entry(
    body: AttendanceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("attendance:write")),
):
    record = await AttendanceService.create_manual_entry(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(record), "message": "Attendance record created successfully."}


# ── GET /today/stats, /daily ────────────────────────────────────────

@router.get("/today/stats")
async def get_today_stats(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("attendance:read")),
):
    stats = await AttendanceService.get_today_stats(db, current_user.organization_id)
    return {"data": stats.model_dump(mode="json"), "message": "Today's attendance statistics."}


@router.get("/daily")
async def get_daily_attendance(
    day: Optional[date] = Query(None, alias="date"),
    department_id: Optional[uuid.UUID] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("attendance:read")),
):
    records = await AttendanceService.get_daily_attendance(
        db,
        current_user.organization_id,
        day or today(),
        department_id=department_id,
        status=status.value if status else None,
    )
    return {"data": [_out(r) for r in records], "message": f"Found {len(records)} record(s)."}


# ── Per-employee views ──────────────────────────────────────────────

def _ensure_can_read(request: Request, user: Employee, employee_id: uuid.UUID) -> None:
    if user.id != employee_id and not has_permission(request.state.user_role, "attendance:read"):
        raise ForbiddenException(detail="You can only view your own attendance.")


@router.get("/employees/{employee_id}")
async def get_employee_attendance(
    employee_id: uuid.UUID,
    request: Request,
    from_date: date = Query(...),
    to_date: date = Query(...),
    status: Optional[AttendanceStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_vip_access(AccessType.attendance)),
):
    _ensure_can_read(request, current_user, employee_id)
    records = await AttendanceService.get_employee_attendance(
        db,
        current_user.organization_id,
        employee_id,
        from_date,
        to_date,
        status=status.value if status else None,
    )
    return {"data": [_out(r) for r in records], "message": f"Found {len(records)} record(s)."}


@router.get("/employees/{employee_id}/summary")
async def get_attendance_summary(
    employee_id: uuid.UUID,
    request: Request,
    from_date: date = Query(...),
    to_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_vip_access(AccessType.attendance)),
):
    _ensure_can_read(request, current_user, employee_id)
    summary = await AttendanceService.get_attendance_summary(
        db, current_user.organization_id, employee_id, from_date, to_date,
    )
    return {"data": summary.model_dump(mode="json"), "message": "Attendance summary retrieved."}


# ── /{record_id} ────────────────────────────────────────────────────

@router.get("/{record_id}")
async def get_record(
    record_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("attendance:clock")),
):
    record = await AttendanceService.get_record(db, current_user.organization_id, record_id)
    _ensure_can_read(request, current_user, record.employee_id)
    await enforce_vip_access(db, request, current_user, record.employee_id, AccessType.attendance)
    return {"data": _out(record), "message": "Attendance record retrieved successfully."}


@router.patch("/{record_id}")
async def update_record(
    record_id: uuid.UUID,
    body: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("attendance:write")),
):
    record = await AttendanceService.update_record(
        db, current_user.organization_id, record_id, body, actor_id=current_user.id,
    )
    return {"data": _out(record), "message": "Attendance record updated successfully."}


@router.delete("/{record_id}")
async def delete_record(
    record_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("attendance:write")),
):
    await AttendanceService.delete_record(
        db, current_user.organization_id, record_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Attendance record deleted successfully."}
