"""Currency router.

Routes (mounted under /api/v1/payroll/currency):
    /config             — Organization currency configuration
    /rates              — List, create exchange rates
    /rates/import       — Create many rates at once
    /rates/lookup       — Resolve the rate for a pair on a date
    /rates/{id}         — Get, update, delete a rate
    /convert            — Convert one amount
    /convert/batch      — Convert many amounts
    /conversions        — Conversion log
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.currency.schemas import (
    BatchConversionRequest,
    ConversionRequest,
    ConversionResponse,
    CurrencyConfigUpdate,
    ExchangeRateCreate,
    ExchangeRateImport,
    ExchangeRateResponse,
    ExchangeRateUpdate,
    RateChangeResult,
)
from workforce.currency.service import CurrencyService
from workforce.database import get_db

router = APIRouter(prefix="", tags=["currency"])


def _out(rate) -> dict:
    return ExchangeRateResponse.model_validate(rate).model_dump(mode="json")


# ── Configuration ───────────────────────────────────────────────────

@router.get("/config")
async def get_config(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:read")),
):
    config = await CurrencyService.get_config(db, current_user.organization_id)
    return {"data": config.model_dump(mode="json"), "message": "Currency configuration retrieved."}


@router.patch("/config")
async def update_config(
    body: CurrencyConfigUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:write")),
):
    config = await CurrencyService.update_config(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": config.model_dump(mode="json"), "message": "Currency configuration updated."}


# ── Rates ───────────────────────────────────────────────────────────

@router.get("/rates")
async def list_rates(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:read")),
    pagination: PaginationParams = Depends(),
    from_currency: Optional[str] = Query(None, min_length=3, max_length=3),
    to_currency: Optional[str] = Query(None, min_length=3, max_length=3),
    status: Optional[str] = Query(None),
    active_on: Optional[date] = Query(None),
):
    result = await CurrencyService.list_rates(
        db, current_user.organization_id, pagination,
        from_currency=from_currency, to_currency=to_currency, status=status, active_on=active_on,
    )
    return {"data": [_out(r) for r in result.data], "meta": result.meta.model_dump()}


@router.post("/rates", status_code=201)
async def create_rate(
    body: ExchangeRateCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:write")),
):
    rate, approval = await CurrencyService.create_rate(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    result = RateChangeResult(
        rate=ExchangeRateResponse.model_validate(rate),
        requires_approval=approval is not None,
        approval_request_id=approval.id if approval else None,
    )
    message = "Exchange rate pending approval." if approval else "Exchange rate created successfully."
    return {"data": result.model_dump(mode="json"), "message": message}


@router.post("/rates/import", status_code=201)
async def import_rates(
    body: ExchangeRateImport,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:write")),
):
    rates, approval = await CurrencyService.import_rates(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {
        "data": {
            "rates": [_out(r) for r in rates],
            "requires_approval": approval is not None,
            "approval_request_id": str(approval.id) if approval else None,
        },
        "message": f"Imported {len(rates)} rate(s).",
    }


@router.get("/rates/lookup")
async def lookup_rate(
    from_currency: str = Query(..., min_length=3, max_length=3),
    to_currency: str = Query(..., min_length=3, max_length=3),
    as_of_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:read")),
):
    resolved = await CurrencyService.get_exchange_rate(
        db, current_user.organization_id, from_currency, to_currency, as_of_date,
    )
    return {"data": resolved.model_dump(mode="json"), "message": "Exchange rate resolved."}


@router.get("/rates/{rate_id}")
async def get_rate(
    rate_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:read")),
):
    rate = await CurrencyService.get_rate(db, current_user.organization_id, rate_id)
    return {"data": _out(rate), "message": "Exchange rate retrieved successfully."}


@router.patch("/rates/{rate_id}")
async def update_rate(
    rate_id: uuid.UUID,
    body: ExchangeRateUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:write")),
):
    rate = await CurrencyService.update_rate(
        db, current_user.organization_id, rate_id, body, actor_id=current_user.id,
    )
    return {"data": _out(rate), "message": "Exchange rate updated successfully."}


@router.delete("/rates/{rate_id}")
async def delete_rate(
    rate_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:write")),
):
    await CurrencyService.delete_rate(db, current_user.organization_id, rate_id, actor_id=current_user.id)
    return {"data": None, "message": "Exchange rate deleted successfully."}


# ── Conversion ──────────────────────────────────────────────────────

@router.post("/convert")
async def convert(
    body: ConversionRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:read")),
):
    result = await CurrencyService.convert_amount(
        db,
        current_user.organization_id,
        body.amount,
        body.from_currency,
        body.to_currency,
        as_of=body.as_of_date,
        rounding_mode=body.rounding_mode,
        decimal_places=body.decimal_places,
        reference_type=body.reference_type,
        reference_id=body.reference_id,
        check_approval=True,
        actor_id=current_user.id,
    )
    if result.requires_approval:
        response.status_code = 202
        return {"data": result.model_dump(mode="json"), "message": "Conversion requires approval."}
    return {"data": result.model_dump(mode="json"), "message": "Amount converted."}


@router.post("/convert/batch")
async def convert_batch(
    body: BatchConversionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:read")),
):
    results = await CurrencyService.batch_convert(
        db, current_user.organization_id, body.conversions, actor_id=current_user.id,
    )
    succeeded = sum(r.success for r in results)
    return {
        "data": [r.model_dump(mode="json") for r in results],
        "message": f"Converted {succeeded} of {len(results)} amount(s).",
    }


@router.get("/conversions")
async def conversion_history(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("currency:read")),
    pagination: PaginationParams = Depends(),
    reference_type: Optional[str] = Query(None),
    reference_id: Optional[uuid.UUID] = Query(None),
    from_currency: Optional[str] = Query(None, min_length=3, max_length=3),
    to_currency: Optional[str] = Query(None, min_length=3, max_length=3),
):
    result = await CurrencyService.get_conversion_history(
        db, current_user.organization_id, pagination,
        reference_type=reference_type, reference_id=reference_id,
        from_currency=from_currency, to_currency=to_currency,
    )
    return {
        "data": [ConversionResponse.model_validate(c).model_dump(mode="json") for c in result.data],
        "meta": result.meta.model_dump(),
    }
