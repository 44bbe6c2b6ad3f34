"""Tax rule service — rule sets, brackets and the tax calculation engine.

Taxes are computed per pay period:
  1. the rule's per-period allowance is subtracted from taxable income
  2. a rule with an ``annual_cap`` only taxes income up to the cap,
     counting gross already paid this year
  3. ``bracket``/``graduated`` rules walk the brackets in order;
     ``flat_rate`` rules apply one percentage
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import TaxCalculationMethod
from workforce.common.crud import (
    apply_changes,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import today
from workforce.common.exceptions import ConflictError, ValidationException
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.config import settings
from workforce.core_hr.models import Organization
from workforce.tax.models import TaxBracket, TaxRuleSet
from workforce.tax.schemas import (
    TaxBracketCreate,
    TaxBracketResponse,
    TaxBracketUpdate,
    TaxBreakdown,
    TaxLine,
    TaxRuleSetCreate,
    TaxRuleSetDetail,
    TaxRuleSetResponse,
    TaxRuleSetUpdate,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ── Pure calculations ───────────────────────────────────────────────

def calculate_bracket_tax(income: Decimal, brackets: Sequence[TaxBracket]) -> Decimal:
    """Progressive tax: each bracket taxes the slice of income it spans.

    A bracket without ``income_max`` is open-ended and takes the rest.
    """
    remaining = Decimal(income)
    total = ZERO
    for bracket in sorted(brackets, key=lambda b: b.bracket_order):
        if remaining <= 0:
            break
        if bracket.income_max is not None:
            width = Decimal(bracket.income_max) - Decimal(bracket.income_min or 0)
            slice_ = min(remaining, width)
        else:
            slice_ = remaining
        total += slice_ * Decimal(bracket.rate_percentage) / HUNDRED + Decimal(bracket.fixed_amount or 0)
        remaining -= slice_
    return _money(total)


def calculate_flat_rate_tax(income: Decimal, rate_percentage: Decimal) -> Decimal:
    return _money(Decimal(income) * Decimal(rate_percentage) / HUNDRED)


def taxable_for_rule(rule_set: TaxRuleSet, income: Decimal, ytd_gross: Decimal) -> Decimal:
    """Income this rule actually taxes after its allowance and annual cap."""
    taxable = max(Decimal(income) - Decimal(rule_set.allowance_per_period or 0), ZERO)
    if rule_set.annual_cap is not None:
        room = max(Decimal(rule_set.annual_cap) - Decimal(ytd_gross), ZERO)
        taxable = min(taxable, room)
    return _money(taxable)


# ═════════════════════════════════════════════════════════════════════
# TaxService
# ═════════════════════════════════════════════════════════════════════


class TaxService:

    # ── Rule sets ───────────────────────────────────────────────────

    @staticmethod
    async def list_rule_sets(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        tax_type: Optional[str] = None,
        country: Optional[str] = None,
        state: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        query = scoped_select(TaxRuleSet, organization_id)
        query = apply_filters(query, TaxRuleSet, {
            "tax_type": tax_type,
            "country": country.upper() if country else None,
            "state": state,
            "is_active": is_active,
        })
        query = query.order_by(TaxRuleSet.country, TaxRuleSet.tax_type, TaxRuleSet.effective_from.desc())
        return await paginate(db, query, pagination, model=TaxRuleSet)

    @staticmethod
    async def get_rule_set(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_set_id: uuid.UUID,
    ) -> TaxRuleSet:
        return await get_scoped_or_404(db, TaxRuleSet, rule_set_id, organization_id, "TaxRuleSet")

    @staticmethod
    async def get_rule_set_detail(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_set_id: uuid.UUID,
    ) -> TaxRuleSetDetail:
        rule_set = await TaxService.get_rule_set(db, organization_id, rule_set_id)
        brackets = await TaxService.get_brackets(db, organization_id, rule_set.id)
        return TaxRuleSetDetail(
            **TaxRuleSetResponse.model_validate(rule_set).model_dump(),
            brackets=[TaxBracketResponse.model_validate(b) for b in brackets],
        )

    @staticmethod
    async def create_rule_set(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: TaxRuleSetCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TaxRuleSet:
        rule_set = TaxRuleSet(
            **data.model_dump(),
            organization_id=organization_id,
            is_active=True,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(rule_set)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="tax_rule_set",
            entity_id=rule_set.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Tax rule set created org=%s rule_set=%s %s/%s",
            organization_id, rule_set.id, rule_set.country, rule_set.tax_type,
        )
        return rule_set

    @staticmethod
    async def update_rule_set(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_set_id: uuid.UUID,
        data: TaxRuleSetUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TaxRuleSet:
        rule_set = await TaxService.get_rule_set(db, organization_id, rule_set_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return rule_set
        for required in ("tax_name", "effective_from", "calculation_method",
                         "allowance_per_period", "is_active"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        start = changes.get("effective_from", rule_set.effective_from)
        end = changes.get("effective_to", rule_set.effective_to)
        if end is not None and end <= start:
            raise ValidationException.for_field("effective_to", "effective_to must be after effective_from.")
        method = changes.get("calculation_method", rule_set.calculation_method)
        rate = changes.get("flat_rate", rule_set.flat_rate)
        if method == TaxCalculationMethod.flat_rate.value and rate is None:
            raise ValidationException.for_field("flat_rate", "flat_rate is required for the flat_rate method.")

        old_values = apply_changes(rule_set, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="tax_rule_set",
            entity_id=rule_set.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Tax rule set updated org=%s rule_set=%s", organization_id, rule_set.id)
        return rule_set

    @staticmethod
    async def delete_rule_set(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_set_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        rule_set = await TaxService.get_rule_set(db, organization_id, rule_set_id)
        brackets = await TaxService.get_brackets(db, organization_id, rule_set.id)
        for bracket in brackets:
            bracket.soft_delete(actor_id)
        rule_set.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="tax_rule_set",
            entity_id=rule_set.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values={"brackets": len(brackets)},
        )
        logger.info("Tax rule set deleted org=%s rule_set=%s", organization_id, rule_set.id)

    @staticmethod
    async def get_applicable_rule_sets(
        db: AsyncSession,
        organization_id: uuid.UUID,
        country: str,
        on: date,
        *,
        state: Optional[str] = None,
        locality: Optional[str] = None,
    ) -> Sequence[TaxRuleSet]:
        """Active rule sets in force on *on* for a jurisdiction.

        Country-wide rules always apply; state and locality rules only when
        they match.
        """
        query = scoped_select(TaxRuleSet, organization_id).where(
            TaxRuleSet.is_active.is_(True),
            TaxRuleSet.country == country.upper(),
            TaxRuleSet.effective_from <= on,
            or_(TaxRuleSet.effective_to.is_(None), TaxRuleSet.effective_to >= on),
            or_(TaxRuleSet.state.is_(None), TaxRuleSet.state == state),
            or_(TaxRuleSet.locality.is_(None), TaxRuleSet.locality == locality),
        )
        result = await db.execute(query.order_by(TaxRuleSet.tax_type, TaxRuleSet.tax_name))
        return result.scalars().all()

    # ── Brackets ────────────────────────────────────────────────────

    @staticmethod
    async def get_brackets(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_set_id: uuid.UUID,
    ) -> Sequence[TaxBracket]:
        result = await db.execute(
            scoped_select(TaxBracket, organization_id)
            .where(TaxBracket.tax_rule_set_id == rule_set_id)
            .order_by(TaxBracket.bracket_order),
        )
        return result.scalars().all()

    @staticmethod
    async def _ensure_order_free(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_set_id: uuid.UUID,
        bracket_order: int,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = scoped_select(TaxBracket, organization_id).where(
            TaxBracket.tax_rule_set_id == rule_set_id,
            TaxBracket.bracket_order == bracket_order,
        )
        if exclude_id is not None:
            query = query.where(TaxBracket.id != exclude_id)
        if (await db.execute(query)).scalars().first() is not None:
            raise ConflictError("bracket_order", bracket_order)

    @staticmethod
    async def create_bracket(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_set_id: uuid.UUID,
        data: TaxBracketCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TaxBracket:
        rule_set = await TaxService.get_rule_set(db, organization_id, rule_set_id)
        await TaxService._ensure_order_free(db, organization_id, rule_set.id, data.bracket_order)

        bracket = TaxBracket(
            **data.model_dump(),
            organization_id=organization_id,
            tax_rule_set_id=rule_set.id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(bracket)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="tax_bracket",
            entity_id=bracket.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json({**data.model_dump(), "tax_rule_set_id": rule_set.id}),
        )
        logger.info(
            "Tax bracket created org=%s rule_set=%s order=%d",
            organization_id, rule_set.id, bracket.bracket_order,
        )
        return bracket

    @staticmethod
    async def update_bracket(
        db: AsyncSession,
        organization_id: uuid.UUID,
        bracket_id: uuid.UUID,
        data: TaxBracketUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TaxBracket:
        bracket = await get_scoped_or_404(db, TaxBracket, bracket_id, organization_id, "TaxBracket")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return bracket
        for required in ("bracket_order", "income_min", "rate_percentage", "fixed_amount"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")
        low = changes.get("income_min", bracket.income_min)
        high = changes.get("income_max", bracket.income_max)
        if high is not None and high <= low:
            raise ValidationException.for_field("income_max", "income_max must be greater than income_min.")
        if "bracket_order" in changes:
            await TaxService._ensure_order_free(
                db, organization_id, bracket.tax_rule_set_id, changes["bracket_order"], exclude_id=bracket.id,
            )

        old_values = apply_changes(bracket, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="tax_bracket",
            entity_id=bracket.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Tax bracket updated org=%s bracket=%s", organization_id, bracket.id)
        return bracket

    @staticmethod
    async def delete_bracket(
        db: AsyncSession,
        organization_id: uuid.UUID,
        bracket_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        bracket = await get_scoped_or_404(db, TaxBracket, bracket_id, organization_id, "TaxBracket")
        bracket.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="tax_bracket",
            entity_id=bracket.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Tax bracket deleted org=%s bracket=%s", organization_id, bracket.id)

    # ── Calculation ─────────────────────────────────────────────────

    @staticmethod
    async def calculate_employee_taxes(
        db: AsyncSession,
        organization_id: uuid.UUID,
        taxable_income: Decimal,
        *,
        country: Optional[str] = None,
        state: Optional[str] = None,
        locality: Optional[str] = None,
        as_of: Optional[date] = None,
        ytd_gross: Decimal = ZERO,
    ) -> TaxBreakdown:
        """Per-tax breakdown for one period's taxable income.

        *country* defaults to the organization's country.
        """
        as_of = as_of or today()
        if country is None:
            organization = await db.get(Organization, organization_id)
            country = organization.country if organization else settings.DEFAULT_COUNTRY
        if not country:
            raise ValidationException.for_field("country", "A country is required to calculate taxes.")

        income = _money(taxable_income)
        rule_sets = await TaxService.get_applicable_rule_sets(
            db, organization_id, country, as_of, state=state, locality=locality,
        )

        lines: list[TaxLine] = []
        for rule_set in rule_sets:
            taxable = taxable_for_rule(rule_set, income, ytd_gross)
            if rule_set.calculation_method == TaxCalculationMethod.flat_rate.value:
                amount = calculate_flat_rate_tax(taxable, rule_set.flat_rate or ZERO)
            else:
                brackets = await TaxService.get_brackets(db, organization_id, rule_set.id)
                amount = calculate_bracket_tax(taxable, brackets)
            lines.append(TaxLine(
                tax_rule_set_id=rule_set.id,
                tax_type=rule_set.tax_type,
                tax_name=rule_set.tax_name,
                calculation_method=rule_set.calculation_method,
                taxable_income=taxable,
                amount=amount,
            ))

        total = sum((line.amount for line in lines), ZERO)
        effective = _money(total / income * HUNDRED) if income > 0 else ZERO
        logger.debug(
            "Taxes calculated org=%s country=%s income=%s total=%s rules=%d",
            organization_id, country, income, total, len(lines),
        )
        return TaxBreakdown(
            taxable_income=income,
            taxes=lines,
            total_tax=_money(total),
            effective_rate=effective,
        )
