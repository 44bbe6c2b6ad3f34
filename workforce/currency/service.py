"""Currency service — exchange rates, conversions and per-tenant configuration.

Rate lookup for a pair on a date tries, in order:
  identity (same currency) → a direct active rate → the reverse rate
  inverted → triangulation through the organization's base currency.

A new rate that replaces an existing one may need approval under a
``rate_variance`` rule; until then it is stored as ``pending_approval``
and lookups keep using the old rate.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    Decimal,
)
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.approvals.models import ApprovalRequest
from workforce.approvals.schemas import ApprovalRequestCreate
from workforce.approvals.service import ApprovalService, register_handler
from workforce.common.audit import create_audit_entry
from workforce.common.constants import ApprovalRequestType, RateStatus, RoundingMode
from workforce.common.crud import apply_changes, get_scoped_or_404, scoped_select, to_json
from workforce.common.dates import today
from workforce.common.exceptions import AppException, NotFoundException, ValidationException
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.config import settings
from workforce.core_hr.models import Organization
from workforce.currency.models import CurrencyConfig, CurrencyConversion, ExchangeRate
from workforce.currency.schemas import (
    BatchConversionItem,
    ConversionRequest,
    ConversionResult,
    CurrencyConfigResponse,
    CurrencyConfigUpdate,
    ExchangeRateCreate,
    ExchangeRateImport,
    ExchangeRateUpdate,
    ResolvedRate,
)

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal("0.0000000001")

_ROUNDING = {
    RoundingMode.half_up.value: ROUND_HALF_UP,
    RoundingMode.up.value: ROUND_CEILING,
    RoundingMode.down.value: ROUND_FLOOR,
    RoundingMode.half_down.value: ROUND_HALF_DOWN,
    RoundingMode.half_even.value: ROUND_HALF_EVEN,
}


def round_amount(amount: Decimal, decimal_places: int = 2, mode: str = RoundingMode.half_up.value) -> Decimal:
    """Round *amount* to *decimal_places*; ``up``/``down`` round toward ±infinity."""
    exponent = Decimal(1).scaleb(-decimal_places)
    return Decimal(amount).quantize(exponent, rounding=_ROUNDING.get(mode, ROUND_HALF_UP))


class RateNotFound(NotFoundException):
    def __init__(self, from_currency: str, to_currency: str) -> None:
        super().__init__("ExchangeRate", f"{from_currency}->{to_currency}")
        self.detail = f"No exchange rate found for {from_currency} to {to_currency}."


# ═════════════════════════════════════════════════════════════════════
# CurrencyService
# ═════════════════════════════════════════════════════════════════════


class CurrencyService:

    # ── Configuration ───────────────────────────────────────────────

    @staticmethod
    async def _get_or_create_config(db: AsyncSession, organization_id: uuid.UUID) -> CurrencyConfig:
        result = await db.execute(
            select(CurrencyConfig).where(CurrencyConfig.organization_id == organization_id),
        )
        config = result.scalars().first()
        if config is None:
            organization = await db.get(Organization, organization_id)
            base = organization.base_currency if organization else settings.DEFAULT_CURRENCY
            config = CurrencyConfig(
                organization_id=organization_id,
                supported_currencies=[base],
                default_rounding_mode=RoundingMode.half_up.value,
                default_decimal_places=2,
                require_approval_for_rate_changes=True,
            )
            db.add(config)
            await db.flush()
        return config

    @staticmethod
    async def get_base_currency(db: AsyncSession, organization_id: uuid.UUID) -> str:
        organization = await db.get(Organization, organization_id)
        return organization.base_currency if organization else settings.DEFAULT_CURRENCY

    @staticmethod
    async def get_config(db: AsyncSession, organization_id: uuid.UUID) -> CurrencyConfigResponse:
        config = await CurrencyService._get_or_create_config(db, organization_id)
        return CurrencyConfigResponse(
            base_currency=await CurrencyService.get_base_currency(db, organization_id),
            supported_currencies=list(config.supported_currencies or []),
            default_rounding_mode=config.default_rounding_mode,
            default_decimal_places=config.default_decimal_places,
            require_approval_for_rate_changes=config.require_approval_for_rate_changes,
        )

    @staticmethod
    async def update_config(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: CurrencyConfigUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> CurrencyConfigResponse:
        changes = data.model_dump(exclude_unset=True)
        for required in changes:
            if changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        config = await CurrencyService._get_or_create_config(db, organization_id)
        old_values: dict = {}
        base = changes.pop("base_currency", None)
        if base is not None:
            organization = await db.get(Organization, organization_id)
            old_values["base_currency"] = organization.base_currency
            organization.base_currency = base
        old_values.update(apply_changes(config, changes, actor_id=actor_id))

        supported = list(config.supported_currencies or [])
        current_base = base or await CurrencyService.get_base_currency(db, organization_id)
        if current_base not in supported:
            config.supported_currencies = [current_base] + supported
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="currency_config",
            entity_id=config.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(data.model_dump(exclude_unset=True)),
        )
        logger.info("Currency config updated org=%s fields=%s", organization_id, sorted(old_values))
        return await CurrencyService.get_config(db, organization_id)

    # ── Rates ───────────────────────────────────────────────────────

    @staticmethod
    async def list_rates(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        from_currency: Optional[str] = None,
        to_currency: Optional[str] = None,
        status: Optional[str] = None,
        active_on: Optional[date] = None,
    ) -> PaginatedResponse:
        query = scoped_select(ExchangeRate, organization_id)
        query = apply_filters(query, ExchangeRate, {
            "from_currency": from_currency.upper() if from_currency else None,
            "to_currency": to_currency.upper() if to_currency else None,
            "status": status,
        })
        if active_on is not None:
            query = query.where(
                ExchangeRate.effective_from <= active_on,
                or_(ExchangeRate.effective_to.is_(None), ExchangeRate.effective_to >= active_on),
            )
        query = query.order_by(
            ExchangeRate.from_currency, ExchangeRate.to_currency, ExchangeRate.effective_from.desc(),
        )
        return await paginate(db, query, pagination, model=ExchangeRate)

    @staticmethod
    async def get_rate(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rate_id: uuid.UUID,
    ) -> ExchangeRate:
        return await get_scoped_or_404(db, ExchangeRate, rate_id, organization_id, "ExchangeRate")

    @staticmethod
    async def _current_rate(
        db: AsyncSession,
        organization_id: uuid.UUID,
        from_currency: str,
        to_currency: str,
        on: date,
    ) -> Optional[ExchangeRate]:
        result = await db.execute(
            scoped_select(ExchangeRate, organization_id)
            .where(
                ExchangeRate.from_currency == from_currency,
                ExchangeRate.to_currency == to_currency,
                ExchangeRate.status == RateStatus.active.value,
                ExchangeRate.effective_from <= on,
                or_(ExchangeRate.effective_to.is_(None), ExchangeRate.effective_to >= on),
            )
            .order_by(ExchangeRate.effective_from.desc(), ExchangeRate.created_at.desc())
            .limit(1),
        )
        return result.scalars().first()

    @staticmethod
    async def _activate(
        db: AsyncSession,
        rate: ExchangeRate,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        """Make *rate* current and close the active rates it supersedes."""
        result = await db.execute(
            scoped_select(ExchangeRate, rate.organization_id).where(
                ExchangeRate.id != rate.id,
                ExchangeRate.from_currency == rate.from_currency,
                ExchangeRate.to_currency == rate.to_currency,
                ExchangeRate.status == RateStatus.active.value,
                or_(ExchangeRate.effective_to.is_(None), ExchangeRate.effective_to >= rate.effective_from),
            ),
        )
        for previous in result.scalars().all():
            if previous.effective_from < rate.effective_from:
                previous.effective_to = rate.effective_from - timedelta(days=1)
            else:
                previous.status = RateStatus.inactive.value
            previous.updated_by = actor_id
        rate.status = RateStatus.active.value
        rate.updated_by = actor_id
        await db.flush()

    @staticmethod
    async def create_rate(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: ExchangeRateCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[ExchangeRate, Optional[ApprovalRequest]]:
        """Insert a rate; returns the approval request when the change must be approved first."""
        config = await CurrencyService._get_or_create_config(db, organization_id)
        previous = await CurrencyService._current_rate(
            db, organization_id, data.from_currency, data.to_currency, data.effective_from,
        )

        rate = ExchangeRate(
            **data.model_dump(),
            organization_id=organization_id,
            status=RateStatus.pending_approval.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(rate)
        await db.flush()

        approval = None
        if previous is not None and config.require_approval_for_rate_changes:
            approval = await ApprovalService.create_approval_request(
                db,
                organization_id,
                ApprovalRequestCreate(
                    request_type=ApprovalRequestType.rate_change,
                    reference_type="exchange_rate",
                    reference_id=rate.id,
                    request_data={
                        "from_currency": rate.from_currency,
                        "to_currency": rate.to_currency,
                        "old_rate": str(previous.rate),
                        "new_rate": str(rate.rate),
                    },
                    reason=f"Rate change {rate.from_currency}->{rate.to_currency}: {previous.rate} -> {rate.rate}",
                ),
                actor_id=actor_id,
            )
        if approval is None:
            await CurrencyService._activate(db, rate, actor_id)

        await create_audit_entry(
            db,
            action="create",
            entity_type="exchange_rate",
            entity_id=rate.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json({**data.model_dump(), "status": rate.status}),
        )
        logger.info(
            "Exchange rate created org=%s rate=%s %s->%s %s status=%s",
            organization_id, rate.id, rate.from_currency, rate.to_currency, rate.rate, rate.status,
        )
        return rate, approval

    @staticmethod
    async def import_rates(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: ExchangeRateImport,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[ExchangeRate], Optional[ApprovalRequest]]:
        """Create many rates; a ``bulk_operation`` rule holds them all for one approval."""
        batch_id = uuid.uuid4()
        approval = await ApprovalService.create_approval_request(
            db,
            organization_id,
            ApprovalRequestCreate(
                request_type=ApprovalRequestType.bulk_rate_import,
                reference_type="exchange_rate_import",
                reference_id=batch_id,
                request_data={"count": len(data.rates)},
                reason=data.reason,
            ),
            actor_id=actor_id,
        )
        if approval is None:
            rates = []
            for item in data.rates:
                rate, _ = await CurrencyService.create_rate(db, organization_id, item, actor_id=actor_id)
                rates.append(rate)
            return rates, None

        rates = [
            ExchangeRate(
                **item.model_dump(),
                organization_id=organization_id,
                status=RateStatus.pending_approval.value,
                created_by=actor_id,
                updated_by=actor_id,
            )
            for item in data.rates
        ]
        db.add_all(rates)
        await db.flush()
        approval.request_data = {**approval.request_data, "rate_ids": [str(r.id) for r in rates]}
        await db.flush()

        await create_audit_entry(
            db,
            action="import",
            entity_type="exchange_rate",
            entity_id=batch_id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values={"count": len(rates), "approval_request_id": str(approval.id)},
        )
        logger.info(
            "Exchange rates imported pending approval org=%s count=%d request=%s",
            organization_id, len(rates), approval.id,
        )
        return rates, approval

    @staticmethod
    async def update_rate(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rate_id: uuid.UUID,
        data: ExchangeRateUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ExchangeRate:
        rate = await CurrencyService.get_rate(db, organization_id, rate_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return rate
        if "source" in changes and changes["source"] is None:
            raise ValidationException.for_field("source", "Field cannot be null.")
        end = changes.get("effective_to", rate.effective_to)
        if end is not None and end < rate.effective_from:
            raise ValidationException.for_field("effective_to", "effective_to cannot be before effective_from.")

        old_values = apply_changes(rate, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="exchange_rate",
            entity_id=rate.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Exchange rate updated org=%s rate=%s", organization_id, rate.id)
        return rate

    @staticmethod
    async def delete_rate(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rate_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        rate = await CurrencyService.get_rate(db, organization_id, rate_id)
        rate.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="exchange_rate",
            entity_id=rate.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Exchange rate deleted org=%s rate=%s", organization_id, rate.id)

    # ── Lookup ──────────────────────────────────────────────────────

    @staticmethod
    async def get_exchange_rate(
        db: AsyncSession,
        organization_id: uuid.UUID,
        from_currency: str,
        to_currency: str,
        as_of: Optional[date] = None,
    ) -> ResolvedRate:
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        as_of = as_of or today()
        if from_currency == to_currency:
            return ResolvedRate(
                from_currency=from_currency, to_currency=to_currency,
                rate=Decimal("1"), source="identity", effective_from=as_of,
            )

        direct = await CurrencyService._current_rate(db, organization_id, from_currency, to_currency, as_of)
        if direct is not None:
            return ResolvedRate(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=Decimal(direct.rate),
                source=direct.source,
                exchange_rate_id=direct.id,
                effective_from=direct.effective_from,
            )

        reverse = await CurrencyService._current_rate(db, organization_id, to_currency, from_currency, as_of)
        if reverse is not None:
            logger.debug("Using inverted rate org=%s %s->%s", organization_id, from_currency, to_currency)
            return ResolvedRate(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=(Decimal(1) / Decimal(reverse.rate)).quantize(RATE_PRECISION),
                source=f"{reverse.source}_inverted",
                exchange_rate_id=reverse.id,
                effective_from=reverse.effective_from,
            )

        base = await CurrencyService.get_base_currency(db, organization_id)
        if base not in (from_currency, to_currency):
            to_base = await CurrencyService._current_rate(db, organization_id, from_currency, base, as_of)
            from_base = await CurrencyService._current_rate(db, organization_id, base, to_currency, as_of)
            if to_base is not None and from_base is not None:
                logger.debug(
                    "Triangulated rate org=%s %s->%s via %s", organization_id, from_currency, to_currency, base,
                )
                return ResolvedRate(
                    from_currency=from_currency,
                    to_currency=to_currency,
                    rate=(Decimal(to_base.rate) * Decimal(from_base.rate)).quantize(RATE_PRECISION),
                    source="triangulated",
                    effective_from=max(to_base.effective_from, from_base.effective_from),
                    via=base,
                )

        raise RateNotFound(from_currency, to_currency)

    # ── Conversion ──────────────────────────────────────────────────

    @staticmethod
    async def convert_amount(
        db: AsyncSession,
        organization_id: uuid.UUID,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        *,
        as_of: Optional[date] = None,
        rounding_mode: Optional[str] = None,
        decimal_places: Optional[int] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[uuid.UUID] = None,
        check_approval: bool = False,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ConversionResult:
        """Convert *amount*; logs a conversion row when a reference is given.

        With *check_approval*, a conversion caught by a ``conversion_threshold``
        rule opens an approval request and is not logged.
        """
        if rounding_mode is None or decimal_places is None:
            config = await CurrencyService._get_or_create_config(db, organization_id)
            rounding_mode = rounding_mode or config.default_rounding_mode
            decimal_places = config.default_decimal_places if decimal_places is None else decimal_places

        resolved = await CurrencyService.get_exchange_rate(db, organization_id, from_currency, to_currency, as_of)
        converted = round_amount(Decimal(amount) * resolved.rate, decimal_places, rounding_mode)
        result = ConversionResult(
            from_currency=resolved.from_currency,
            to_currency=resolved.to_currency,
            from_amount=Decimal(amount),
            to_amount=converted,
            rate=resolved.rate,
            source=resolved.source,
            exchange_rate_id=resolved.exchange_rate_id,
        )

        if check_approval:
            approval = await ApprovalService.create_approval_request(
                db,
                organization_id,
                ApprovalRequestCreate(
                    request_type=ApprovalRequestType.conversion,
                    reference_type=reference_type or "conversion",
                    reference_id=reference_id,
                    request_data={
                        "from_currency": result.from_currency,
                        "to_currency": result.to_currency,
                        "amount": str(result.from_amount),
                        "rate": str(result.rate),
                    },
                ),
                actor_id=actor_id,
            )
            if approval is not None:
                result.requires_approval = True
                result.approval_request_id = approval.id
                logger.info(
                    "Conversion held for approval org=%s %s %s->%s request=%s",
                    organization_id, amount, result.from_currency, result.to_currency, approval.id,
                )
                return result

        if reference_type and reference_id:
            conversion = CurrencyConversion(
                organization_id=organization_id,
                from_currency=result.from_currency,
                to_currency=result.to_currency,
                from_amount=result.from_amount,
                to_amount=result.to_amount,
                rate_used=result.rate,
                exchange_rate_id=result.exchange_rate_id,
                source=result.source,
                rounding_mode=rounding_mode,
                decimal_places=decimal_places,
                reference_type=reference_type,
                reference_id=reference_id,
                created_by=actor_id,
            )
            db.add(conversion)
            await db.flush()
            result.conversion_id = conversion.id

        logger.info(
            "Currency conversion org=%s %s %s -> %s %s rate=%s",
            organization_id, amount, result.from_currency, converted, result.to_currency, result.rate,
        )
        return result

    @staticmethod
    async def batch_convert(
        db: AsyncSession,
        organization_id: uuid.UUID,
        conversions: Sequence[ConversionRequest],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[BatchConversionItem]:
        results: list[BatchConversionItem] = []
        for item in conversions:
            try:
                converted = await CurrencyService.convert_amount(
                    db,
                    organization_id,
                    item.amount,
                    item.from_currency,
                    item.to_currency,
                    as_of=item.as_of_date,
                    rounding_mode=item.rounding_mode,
                    decimal_places=item.decimal_places,
                    reference_type=item.reference_type,
                    reference_id=item.reference_id,
                    actor_id=actor_id,
                )
            except AppException as exc:
                logger.warning(
                    "Batch conversion item failed org=%s %s->%s: %s",
                    organization_id, item.from_currency, item.to_currency, exc.detail,
                )
                results.append(BatchConversionItem(
                    success=False,
                    from_currency=item.from_currency,
                    to_currency=item.to_currency,
                    from_amount=item.amount,
                    error=exc.detail,
                ))
                continue
            results.append(BatchConversionItem(
                success=True,
                from_currency=converted.from_currency,
                to_currency=converted.to_currency,
                from_amount=converted.from_amount,
                to_amount=converted.to_amount,
                rate=converted.rate,
                source=converted.source,
            ))

        logger.info(
            "Batch conversion org=%s total=%d failed=%d",
            organization_id, len(results), sum(not r.success for r in results),
        )
        return results

    @staticmethod
    async def get_conversion_history(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        reference_type: Optional[str] = None,
        reference_id: Optional[uuid.UUID] = None,
        from_currency: Optional[str] = None,
        to_currency: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(CurrencyConversion, organization_id)
        query = apply_filters(query, CurrencyConversion, {
            "reference_type": reference_type,
            "reference_id": reference_id,
            "from_currency": from_currency.upper() if from_currency else None,
            "to_currency": to_currency.upper() if to_currency else None,
        })
        query = query.order_by(CurrencyConversion.created_at.desc())
        return await paginate(db, query, pagination, model=CurrencyConversion)


# ── Approval outcomes ───────────────────────────────────────────────

async def _decide_rates(
    db: AsyncSession,
    rates: Sequence[Optional[ExchangeRate]],
    approved: bool,
    actor_id: Optional[uuid.UUID],
) -> None:
    for rate in rates:
        if rate is None or rate.deleted_at is not None:
            continue
        if rate.status != RateStatus.pending_approval.value:
            continue
        if approved:
            await CurrencyService._activate(db, rate, actor_id)
        else:
            rate.status = RateStatus.inactive.value
            rate.updated_by = actor_id
    await db.flush()


@register_handler("exchange_rate")
async def _on_rate_change_decided(
    db: AsyncSession,
    request: ApprovalRequest,
    approved: bool,
    actor_id: Optional[uuid.UUID],
) -> None:
    rate = await db.get(ExchangeRate, request.reference_id) if request.reference_id else None
    await _decide_rates(db, [rate], approved, actor_id)
    logger.info(
        "Rate change %s org=%s rate=%s",
        "activated" if approved else "discarded", request.organization_id, request.reference_id,
    )


@register_handler("exchange_rate_import")
async def _on_rate_import_decided(
    db: AsyncSession,
    request: ApprovalRequest,
    approved: bool,
    actor_id: Optional[uuid.UUID],
) -> None:
    ids = [uuid.UUID(i) for i in (request.request_data or {}).get("rate_ids", [])]
    rates = [await db.get(ExchangeRate, rate_id) for rate_id in ids]
    await _decide_rates(db, rates, approved, actor_id)
    logger.info(
        "Rate import %s org=%s count=%d",
        "activated" if approved else "discarded", request.organization_id, len(ids),
    )
