"""Schedules router.

Routes (mounted under /api/v1/payroll/schedules):
    ""                              — List, create schedules
    /shifts                         — Shifts in a date range
    /shifts/employee/{employee_id}  — Shifts of one employee
    /shifts/{id}                    — Get, update a shift
    /shifts/{id}/cancel|confirm|complete
    /{id}                           — Get (with shifts), update, delete
    /{id}/publish, /{id}/archive    — Status changes
    /{id}/shifts                    — Add a shift
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import has_permission, require_permission
from workforce.common.constants import ScheduleStatus, ShiftStatus
from workforce.common.exceptions import ForbiddenException
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.schedules.schemas import (
    ScheduleCreate,
    ScheduleResponse,
    ScheduleUpdate,
    ShiftCreate,
    ShiftResponse,
    ShiftUpdate,
)
from workforce.schedules.service import ScheduleService, ShiftService

router = APIRouter(prefix="", tags=["schedules"])


def _schedule(s) -> dict:
    return ScheduleResponse.model_validate(s).model_dump(mode="json")


def _shift(s) -> dict:
    return ShiftResponse.model_validate(s).model_dump(mode="json")


# ── Schedules ───────────────────────────────────────────────────────

@router.get("")
async def list_schedules(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:read")),
    pagination: PaginationParams = Depends(),
    status: Optional[ScheduleStatus] = Query(None),
    search: Optional[str] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await ScheduleService.list_schedules(
        db,
        current_user.organization_id,
        pagination,
        status=status.value if status else None,
        search=search,
        from_date=from_date,
        to_date=to_date,
    )
    return {"data": [_schedule(s) for s in result.data], "meta": result.meta.model_dump()}


@router.post("", status_code=201)
async def create_schedule(
    body: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    schedule = await ScheduleService.create_schedule(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _schedule(schedule), "message": "Schedule created successfully."}


# ── Shifts (static paths before /{schedule_id}) ─────────────────────

@router.get("/shifts")
async def list_shifts_in_range(
    from_date: date = Query(...),
    to_date: date = Query(...),
    station_id: Optional[uuid.UUID] = Query(None),
    role_id: Optional[uuid.UUID] = Query(None),
    status: Optional[ShiftStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:read")),
):
    shifts = await ShiftService.list_shifts_in_range(
        db,
        current_user.organization_id,
        from_date,
        to_date,
        station_id=station_id,
        role_id=role_id,
        status=status.value if status else None,
    )
    return {"data": [_shift(s) for s in shifts], "message": f"Found {len(shifts)} shift(s)."}


@router.get("/shifts/employee/{employee_id}")
async def list_employee_shifts(
    employee_id: uuid.UUID,
    request: Request,
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    status: Optional[ShiftStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("profile:read_own")),
):
    """Employees see their own shifts; ``schedules:read`` sees anyone's."""
    if current_user.id != employee_id and not has_permission(
        request.state.user_role, "schedules:read",
    ):
        raise ForbiddenException(detail="You can only view your own shifts.")
    shifts = await ShiftService.list_employee_shifts(
        db,
        current_user.organization_id,
        employee_id,
        from_date,
        to_date,
        status=status.value if status else None,
    )
    return {"data": [_shift(s) for s in shifts], "message": f"Found {len(shifts)} shift(s)."}


@router.get("/shifts/{shift_id}")
async def get_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:read")),
):
    shift = await ShiftService.get_shift(db, current_user.organization_id, shift_id)
    return {"data": _shift(shift), "message": "Shift retrieved successfully."}


@router.patch("/shifts/{shift_id}")
async def update_shift(
    shift_id: uuid.UUID,
    body: ShiftUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    shift = await ShiftService.update_shift(
        db, current_user.organization_id, shift_id, body, actor_id=current_user.id,
    )
    return {"data": _shift(shift), "message": "Shift updated successfully."}


@router.post("/shifts/{shift_id}/cancel")
async def cancel_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    shift = await ShiftService.cancel_shift(
        db, current_user.organization_id, shift_id, actor_id=current_user.id,
    )
    return {"data": _shift(shift), "message": "Shift cancelled successfully."}


@router.post("/shifts/{shift_id}/confirm")
async def confirm_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    shift = await ShiftService.confirm_shift(
        db, current_user.organization_id, shift_id, actor_id=current_user.id,
    )
    return {"data": _shift(shift), "message": "Shift confirmed successfully."}


@router.post("/shifts/{shift_id}/complete")
async def complete_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    shift = await ShiftService.complete_shift(
        db, current_user.organization_id, shift_id, actor_id=current_user.id,
    )
    return {"data": _shift(shift), "message": "Shift completed successfully."}


# ── /{schedule_id} ──────────────────────────────────────────────────

@router.get("/{schedule_id}")
async def get_schedule(
    schedule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:read")),
):
    detail = await ScheduleService.get_schedule_detail(db, current_user.organization_id, schedule_id)
    return {"data": detail.model_dump(mode="json"), "message": "Schedule retrieved successfully."}


@router.patch("/{schedule_id}")
async def update_schedule(
    schedule_id: uuid.UUID,
    body: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    schedule = await ScheduleService.update_schedule(
        db, current_user.organization_id, schedule_id, body, actor_id=current_user.id,
    )
    return {"data": _schedule(schedule), "message": "Schedule updated successfully."}


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    await ScheduleService.delete_schedule(
        db, current_user.organization_id, schedule_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Schedule deleted successfully."}


@router.post("/{schedule_id}/publish")
async def publish_schedule(
    schedule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    schedule = await ScheduleService.publish_schedule(
        db, current_user.organization_id, schedule_id, actor_id=current_user.id,
    )
    return {"data": _schedule(schedule), "message": "Schedule published successfully."}


@router.post("/{schedule_id}/archive")
async def archive_schedule(
    schedule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    schedule = await ScheduleService.archive_schedule(
        db, current_user.organization_id, schedule_id, actor_id=current_user.id,
    )
    return {"data": _schedule(schedule), "message": "Schedule archived successfully."}


@router.post("/{schedule_id}/shifts", status_code=201)
async def add_shift(
    schedule_id: uuid.UUID,
    body: ShiftCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("schedules:write")),
):
    shift = await ShiftService.add_shift(
        db, current_user.organization_id, schedule_id, body, actor_id=current_user.id,
    )
    return {"data": _shift(shift), "message": "Shift added successfully."}
