"""Temporal patterns router.

Routes (mounted under /api/v1/payroll/temporal-patterns):
    /validate   — Normalize and validate a pattern definition
    /evaluate   — Evaluate a pattern for one employee
    /test       — Preview a pattern against several employees
"""


from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import AccessType
from workforce.common.crud import ensure_exists
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.temporal_patterns.schemas import EvaluateRequest, TemporalPattern, TestPatternRequest
from workforce.temporal_patterns.service import TemporalPatternService
from workforce.vip.dependencies import enforce_vip_access

router = APIRouter(prefix="", tags=["temporal-patterns"])


@router.post("/validate")
async def validate_pattern(
    body: TemporalPattern,
    current_user: Employee = Depends(require_permission("pay_components:read")),
):
    return {"data": body.model_dump(mode="json", exclude_none=True), "message": "Pattern is valid."}


@router.post("/evaluate")
async def evaluate_pattern(
    body: EvaluateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:read")),
):
    await ensure_exists(db, Employee, body.employee_id, current_user.organization_id, "employee_id", "Employee")
    await enforce_vip_access(db, request, current_user, body.employee_id, AccessType.attendance)
    evaluation = await TemporalPatternService.evaluate_pattern(
        db, current_user.organization_id, body.employee_id, body.pattern, body.as_of_date,
    )
    return {
        "data": evaluation.model_dump(mode="json"),
        "message": "Worker qualifies." if evaluation.qualified else "Worker does not qualify.",
    }


@router.post("/test")
async def test_pattern(
    body: TestPatternRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("pay_components:read")),
):
    result = await TemporalPatternService.test_pattern(
        db, current_user.organization_id, body.pattern, body.employee_ids, body.as_of_date,
    )
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{result.qualified_count} of {result.total_tested} worker(s) qualify.",
    }
