"""Timesheets router.

Routes (mounted under /api/v1/payroll/timesheets):
    /entries                          — List, create time entries
    /entries/bulk-approve             — Approve many entries
    /entries/summary/{employee_id}    — Approved hours summary
    /entries/{id}                     — Get, update, delete an entry
    /entries/{id}/approve|reject
    ""                                — List, create timesheets
    /generate                         — Build a timesheet from approved entries
    /{id}                             — Get, update, delete
    /{id}/submit|approve|reject
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import has_permission, require_permission
from workforce.common.constants import ApprovalState, TimeEntryType
from workforce.common.exceptions import ForbiddenException
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.timesheets.schemas import (
    BulkApproveRequest,
    TimeEntryCreate,
    TimeEntryReject,
    TimeEntryResponse,
    TimeEntryUpdate,
    TimesheetCreate,
    TimesheetGenerate,
    TimesheetReject,
    TimesheetResponse,
    TimesheetUpdate,
)
from workforce.timesheets.service import TimeEntryService, TimesheetService

router = APIRouter(prefix="", tags=["timesheets"])


def _entry(e) -> dict:
    return TimeEntryResponse.model_validate(e).model_dump(mode="json")


def _sheet(t) -> dict:
    return TimesheetResponse.model_validate(t).model_dump(mode="json")


def _ensure_self_or(request: Request, user: Employee, employee_id: uuid.UUID, permission: str) -> None:
    if user.id != employee_id and not has_permission(request.state.user_role, permission):
        raise ForbiddenException(detail="You can only access your own time records.")


def _scope_employee(request: Request, user: Employee, employee_id: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    """Without ``timesheets:read`` listings are limited to the caller."""
    if has_permission(request.state.user_role, "timesheets:read"):
        return employee_id
    if employee_id is not None and employee_id != user.id:
        raise ForbiddenException(detail="You can only access your own time records.")
    return user.id


# ═════════════════════════════════════════════════════════════════════
# Time entries
# ═════════════════════════════════════════════════════════════════════

@router.get("/entries")
async def list_entries(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[ApprovalState] = Query(None),
    entry_type: Optional[TimeEntryType] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await TimeEntryService.list_entries(
        db,
        current_user.organization_id,
        pagination,
        employee_id=_scope_employee(request, current_user, employee_id),
        status=status.value if status else None,
        entry_type=entry_type.value if entry_type else None,
        from_date=from_date,
        to_date=to_date,
    )
    return {"data": [_entry(e) for e in result.data], "meta": result.meta.model_dump()}


@router.post("/entries", status_code=201)
async def create_entry(
    body: TimeEntryCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    employee_id = body.employee_id or current_user.id
    _ensure_self_or(request, current_user, employee_id, "timesheets:write")
    entry = await TimeEntryService.create_entry(
        db, current_user.organization_id, employee_id, body, actor_id=current_user.id,
    )
    return {"data": _entry(entry), "message": "Time entry created successfully."}


@router.post("/entries/bulk-approve")
async def bulk_approve_entries(
    body: BulkApproveRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:approve")),
):
    result = await TimeEntryService.bulk_approve(
        db, current_user.organization_id, body.entry_ids, actor_id=current_user.id,
    )
    return {
        "data": result.model_dump(mode="json"),
        "message": f"Approved {len(result.approved)} time entr{'y' if len(result.approved) == 1 else 'ies'}.",
    }


@router.get("/entries/summary/{employee_id}")
async def hours_summary(
    employee_id: uuid.UUID,
    request: Request,
    from_date: date = Query(...),
    to_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    _ensure_self_or(request, current_user, employee_id, "timesheets:read")
    summary = await TimeEntryService.get_hours_summary(
        db, current_user.organization_id, employee_id, from_date, to_date,
    )
    return {"data": summary.model_dump(mode="json"), "message": "Hours summary retrieved successfully."}


@router.get("/entries/{entry_id}")
async def get_entry(
    entry_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    entry = await TimeEntryService.get_entry(db, current_user.organization_id, entry_id)
    _ensure_self_or(request, current_user, entry.employee_id, "timesheets:read")
    return {"data": _entry(entry), "message": "Time entry retrieved successfully."}


@router.patch("/entries/{entry_id}")
async def update_entry(
    entry_id: uuid.UUID,
    body: TimeEntryUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    entry = await TimeEntryService.get_entry(db, current_user.organization_id, entry_id)
    _ensure_self_or(request, current_user, entry.employee_id, "timesheets:write")
    entry = await TimeEntryService.update_entry(
        db, current_user.organization_id, entry_id, body, actor_id=current_user.id,
    )
    return {"data": _entry(entry), "message": "Time entry updated successfully."}


@router.delete("/entries/{entry_id}")
async def delete_entry(
    entry_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    entry = await TimeEntryService.get_entry(db, current_user.organization_id, entry_id)
    _ensure_self_or(request, current_user, entry.employee_id, "timesheets:write")
    await TimeEntryService.delete_entry(
        db, current_user.organization_id, entry_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Time entry deleted successfully."}


@router.post("/entries/{entry_id}/approve")
async def approve_entry(
    entry_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:approve")),
):
    entry = await TimeEntryService.approve_entry(
        db, current_user.organization_id, entry_id, actor_id=current_user.id,
    )
    return {"data": _entry(entry), "message": "Time entry approved."}


@router.post("/entries/{entry_id}/reject")
async def reject_entry(
    entry_id: uuid.UUID,
    body: TimeEntryReject,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:approve")),
):
    entry = await TimeEntryService.reject_entry(
        db, current_user.organization_id, entry_id, body.reason, actor_id=current_user.id,
    )
    return {"data": _entry(entry), "message": "Time entry rejected."}


# ═════════════════════════════════════════════════════════════════════
# Timesheets
# ═════════════════════════════════════════════════════════════════════

@router.get("")
async def list_timesheets(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[ApprovalState] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await TimesheetService.list_timesheets(
        db,
        current_user.organization_id,
        pagination,
        employee_id=_scope_employee(request, current_user, employee_id),
        status=status.value if status else None,
        from_date=from_date,
        to_date=to_date,
    )
    return {"data": [_sheet(t) for t in result.data], "meta": result.meta.model_dump()}


@router.post("", status_code=201)
async def create_timesheet(
    body: TimesheetCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:write")),
):
    timesheet = await TimesheetService.create_timesheet(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _sheet(timesheet), "message": "Timesheet created successfully."}


@router.post("/generate", status_code=201)
async def generate_timesheet(
    body: TimesheetGenerate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    _ensure_self_or(request, current_user, body.employee_id, "timesheets:write")
    timesheet = await TimesheetService.generate_timesheet(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _sheet(timesheet), "message": "Timesheet generated successfully."}


@router.get("/{timesheet_id}")
async def get_timesheet(
    timesheet_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    timesheet = await TimesheetService.get_timesheet(db, current_user.organization_id, timesheet_id)
    _ensure_self_or(request, current_user, timesheet.employee_id, "timesheets:read")
    return {"data": _sheet(timesheet), "message": "Timesheet retrieved successfully."}


@router.patch("/{timesheet_id}")
async def update_timesheet(
    timesheet_id: uuid.UUID,
    body: TimesheetUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:write")),
):
    timesheet = await TimesheetService.update_timesheet(
        db, current_user.organization_id, timesheet_id, body, actor_id=current_user.id,
    )
    return {"data": _sheet(timesheet), "message": "Timesheet updated successfully."}


@router.delete("/{timesheet_id}")
async def delete_timesheet(
    timesheet_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:write")),
):
    await TimesheetService.delete_timesheet(
        db, current_user.organization_id, timesheet_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Timesheet deleted successfully."}


@router.post("/{timesheet_id}/submit")
async def submit_timesheet(
    timesheet_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:submit")),
):
    timesheet = await TimesheetService.get_timesheet(db, current_user.organization_id, timesheet_id)
    _ensure_self_or(request, current_user, timesheet.employee_id, "timesheets:write")
    timesheet = await TimesheetService.submit_timesheet(
        db, current_user.organization_id, timesheet_id, actor_id=current_user.id,
    )
    return {"data": _sheet(timesheet), "message": "Timesheet submitted for approval."}


@router.post("/{timesheet_id}/approve")
async def approve_timesheet(
    timesheet_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:approve")),
):
    timesheet = await TimesheetService.approve_timesheet(
        db, current_user.organization_id, timesheet_id, actor_id=current_user.id,
    )
    return {"data": _sheet(timesheet), "message": "Timesheet approved."}


@router.post("/{timesheet_id}/reject")
async def reject_timesheet(
    timesheet_id: uuid.UUID,
    body: TimesheetReject,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("timesheets:approve")),
):
    timesheet = await TimesheetService.reject_timesheet(
        db, current_user.organization_id, timesheet_id, body.reason, actor_id=current_user.id,
    )
    return {"data": _sheet(timesheet), "message": "Timesheet rejected."}
