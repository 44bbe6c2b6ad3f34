"""Payroll router.

Routes (runs mounted under /api/v1/payroll/runs):
    ""                          — List, create payroll runs
    /{id}                       — Get, update, delete (draft only)
    /{id}/paychecks             — Paychecks of a run
    /{id}/calculate             — (Re)calculate paychecks
    /{id}/review|approve|finalize|cancel

Routes (paychecks mounted under /api/v1/payroll/paychecks):
    ""                                      — List with run/employee/status filters
    /employees/{employee_id}                — Employee paychecks (VIP-checked)
    /employees/{employee_id}/ytd            — Year-to-date summary (VIP-checked)
    /{id}                                   — Get, update, delete
    /{id}/void|reissue
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import AccessType, PaycheckStatus, PayrollRunStatus, PayrollRunType
from workforce.common.dates import today
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.payroll.schemas import (
    CalculationResult,
    PaycheckReissue,
    PaycheckResponse,
    PaycheckUpdate,
    PaycheckVoid,
    PayrollRunCancel,
    PayrollRunCreate,
    PayrollRunResponse,
    PayrollRunUpdate,
)
from workforce.payroll.service import PaycheckService, PayrollRunService
from workforce.vip.dependencies import enforce_vip_access, require_vip_access

runs_router = APIRouter(prefix="", tags=["payroll-runs"])
paychecks_router = APIRouter(prefix="", tags=["paychecks"])


def _run(r) -> dict:
    return PayrollRunResponse.model_validate(r).model_dump(mode="json")


def _check(p) -> dict:
    return PaycheckResponse.model_validate(p).model_dump(mode="json")


# ═════════════════════════════════════════════════════════════════════
# Payroll runs
# ═════════════════════════════════════════════════════════════════════

@runs_router.get("")
async def list_runs(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:read")),
    pagination: PaginationParams = Depends(),
    status: Optional[PayrollRunStatus] = Query(None),
    run_type: Optional[PayrollRunType] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await PayrollRunService.list_runs(
        db, current_user.organization_id, pagination,
        status=status.value if status else None,
        run_type=run_type.value if run_type else None,
        from_date=from_date,
        to_date=to_date,
    )
    return {"data": [_run(r) for r in result.data], "meta": result.meta.model_dump()}


@runs_router.post("", status_code=201)
async def create_run(
    body: PayrollRunCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    run = await PayrollRunService.create_run(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _run(run), "message": f"Payroll run {run.run_number} created."}


@runs_router.get("/{run_id}")
async def get_run(
    run_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:read")),
):
    run = await PayrollRunService.get_run(db, current_user.organization_id, run_id)
    return {"data": _run(run), "message": "Payroll run retrieved successfully."}


@runs_router.patch("/{run_id}")
async def update_run(
    run_id: uuid.UUID,
    body: PayrollRunUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    run = await PayrollRunService.update_run(
        db, current_user.organization_id, run_id, body, actor_id=current_user.id,
    )
    return {"data": _run(run), "message": "Payroll run updated successfully."}


@runs_router.delete("/{run_id}")
async def delete_run(
    run_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    await PayrollRunService.delete_run(
        db, current_user.organization_id, run_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Payroll run deleted successfully."}


@runs_router.get("/{run_id}/paychecks")
async def get_run_paychecks(
    run_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:read")),
):
    run = await PayrollRunService.get_run(db, current_user.organization_id, run_id)
    paychecks = await PayrollRunService.get_paychecks(db, current_user.organization_id, run.id)
    return {"data": [_check(p) for p in paychecks], "message": f"Found {len(paychecks)} paycheck(s)."}


@runs_router.post("/{run_id}/calculate")
async def calculate_run(
    run_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    run, created, skipped = await PayrollRunService.calculate_run(
        db, current_user.organization_id, run_id, actor_id=current_user.id,
    )
    result = CalculationResult(
        run=PayrollRunResponse.model_validate(run),
        paychecks_created=created,
        skipped=skipped,
    )
    return {
        "data": result.model_dump(mode="json"),
        "message": f"Payroll run calculated: {created} paycheck(s).",
    }


@runs_router.post("/{run_id}/review")
async def mark_for_review(
    run_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    run = await PayrollRunService.mark_for_review(
        db, current_user.organization_id, run_id, actor_id=current_user.id,
    )
    return {"data": _run(run), "message": "Payroll run sent for review."}


@runs_router.post("/{run_id}/approve")
async def approve_run(
    run_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:approve")),
):
    run = await PayrollRunService.approve_run(
        db, current_user.organization_id, run_id, actor_id=current_user.id,
    )
    return {"data": _run(run), "message": "Payroll run approved."}


@runs_router.post("/{run_id}/finalize")
async def finalize_run(
    run_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:approve")),
):
    run = await PayrollRunService.finalize_run(
        db, current_user.organization_id, run_id, actor_id=current_user.id,
    )
    return {"data": _run(run), "message": "Payroll run finalized."}


@runs_router.post("/{run_id}/cancel")
async def cancel_run(
    run_id: uuid.UUID,
    body: Optional[PayrollRunCancel] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    run = await PayrollRunService.cancel_run(
        db, current_user.organization_id, run_id,
        reason=body.reason if body else None,
        actor_id=current_user.id,
    )
    return {"data": _run(run), "message": "Payroll run cancelled."}


# ═════════════════════════════════════════════════════════════════════
# Paychecks
# ═════════════════════════════════════════════════════════════════════

@paychecks_router.get("")
async def list_paychecks(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:read")),
    pagination: PaginationParams = Depends(),
    payroll_run_id: Optional[uuid.UUID] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[PaycheckStatus] = Query(None),
):
    if employee_id is not None:
        await enforce_vip_access(db, request, current_user, employee_id, AccessType.compensation)
    result = await PaycheckService.list_paychecks(
        db, current_user.organization_id, pagination,
        payroll_run_id=payroll_run_id,
        employee_id=employee_id,
        status=status.value if status else None,
    )
    return {"data": [_check(p) for p in result.data], "meta": result.meta.model_dump()}


@paychecks_router.get("/employees/{employee_id}")
async def get_employee_paychecks(
    employee_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=1900, le=2999),
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("payroll:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.compensation)),
):
    paychecks = await PaycheckService.get_employee_paychecks(
        db, current_user.organization_id, employee_id, year=year,
    )
    return {"data": [_check(p) for p in paychecks], "message": f"Found {len(paychecks)} paycheck(s)."}


@paychecks_router.get("/employees/{employee_id}/ytd")
async def get_year_to_date(
    employee_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=1900, le=2999),
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("payroll:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.compensation)),
):
    summary = await PaycheckService.year_to_date(
        db, current_user.organization_id, employee_id, year or today().year,
    )
    return {"data": summary.model_dump(mode="json"), "message": "Year-to-date summary retrieved."}


@paychecks_router.get("/{paycheck_id}")
async def get_paycheck(
    paycheck_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:read")),
):
    paycheck = await PaycheckService.get_paycheck(db, current_user.organization_id, paycheck_id)
    await enforce_vip_access(db, request, current_user, paycheck.employee_id, AccessType.compensation)
    return {"data": _check(paycheck), "message": "Paycheck retrieved successfully."}


@paychecks_router.patch("/{paycheck_id}")
async def update_paycheck(
    paycheck_id: uuid.UUID,
    body: PaycheckUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    existing = await PaycheckService.get_paycheck(db, current_user.organization_id, paycheck_id)
    await enforce_vip_access(db, request, current_user, existing.employee_id, AccessType.compensation)
    paycheck = await PaycheckService.update_paycheck(
        db, current_user.organization_id, paycheck_id, body, actor_id=current_user.id,
    )
    return {"data": _check(paycheck), "message": "Paycheck updated successfully."}


@paychecks_router.post("/{paycheck_id}/void")
async def void_paycheck(
    paycheck_id: uuid.UUID,
    body: PaycheckVoid,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:approve")),
):
    paycheck = await PaycheckService.void_paycheck(
        db, current_user.organization_id, paycheck_id, body.reason, actor_id=current_user.id,
    )
    return {"data": _check(paycheck), "message": "Paycheck voided."}


@paychecks_router.post("/{paycheck_id}/reissue", status_code=201)
async def reissue_paycheck(
    paycheck_id: uuid.UUID,
    body: Optional[PaycheckReissue] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:approve")),
):
    paycheck = await PaycheckService.reissue_paycheck(
        db, current_user.organization_id, paycheck_id, body, actor_id=current_user.id,
    )
    return {"data": _check(paycheck), "message": "Paycheck reissued."}


@paychecks_router.delete("/{paycheck_id}")
async def delete_paycheck(
    paycheck_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("payroll:write")),
):
    await PaycheckService.delete_paycheck(
        db, current_user.organization_id, paycheck_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Paycheck deleted successfully."}
