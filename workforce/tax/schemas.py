"""Tax rule schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import TaxCalculationMethod, TaxType


# ── Rule sets ───────────────────────────────────────────────────────

class TaxRuleSetCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    tax_type: TaxType
    tax_name: str = Field(..., min_length=1, max_length=150)
    country: str = Field(..., min_length=2, max_length=2)
    state: Optional[str] = Field(None, max_length=50)
    locality: Optional[str] = Field(None, max_length=100)
    effective_from: date
    effective_to: Optional[date] = None
    calculation_method: TaxCalculationMethod = TaxCalculationMethod.bracket
    flat_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    annual_cap: Optional[Decimal] = Field(None, gt=0)
    allowance_per_period: Decimal = Field(Decimal("0"), ge=0)
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check(self) -> "TaxRuleSetCreate":
        self.country = self.country.upper()
        if self.effective_to and self.effective_to <= self.effective_from:
            raise ValueError("effective_to must be after effective_from")
        if self.calculation_method == TaxCalculationMethod.flat_rate.value and self.flat_rate is None:
            raise ValueError("flat_rate is required for the flat_rate calculation method")
        return self


class TaxRuleSetUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    tax_name: Optional[str] = Field(None, min_length=1, max_length=150)
    state: Optional[str] = Field(None, max_length=50)
    locality: Optional[str] = Field(None, max_length=100)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    calculation_method: Optional[TaxCalculationMethod] = None
    flat_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    annual_cap: Optional[Decimal] = Field(None, gt=0)
    allowance_per_period: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    description: Optional[str] = None


class TaxBracketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tax_rule_set_id: uuid.UUID
    bracket_order: int
    income_min: Decimal
    income_max: Optional[Decimal] = None
    rate_percentage: Decimal
    fixed_amount: Decimal


class TaxRuleSetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tax_type: str
    tax_name: str
    country: str
    state: Optional[str] = None
    locality: Optional[str] = None
    effective_from: date
    effective_to: Optional[date] = None
    calculation_method: str
    flat_rate: Optional[Decimal] = None
    annual_cap: Optional[Decimal] = None
    allowance_per_period: Decimal
    is_active: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TaxRuleSetDetail(TaxRuleSetResponse):
    brackets: list[TaxBracketResponse] = []


# ── Brackets ────────────────────────────────────────────────────────

class TaxBracketCreate(BaseModel):
    bracket_order: int = Field(..., ge=1)
    income_min: Decimal = Field(Decimal("0"), ge=0)
    income_max: Optional[Decimal] = None
    rate_percentage: Decimal = Field(..., ge=0, le=100)
    fixed_amount: Decimal = Field(Decimal("0"), ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "TaxBracketCreate":
        if self.income_max is not None and self.income_max <= self.income_min:
            raise ValueError("income_max must be greater than income_min")
        return self


class TaxBracketUpdate(BaseModel):
    bracket_order: Optional[int] = Field(None, ge=1)
    income_min: Optional[Decimal] = Field(None, ge=0)
    income_max: Optional[Decimal] = None
    rate_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    fixed_amount: Optional[Decimal] = Field(None, ge=0)


# ── Calculation ─────────────────────────────────────────────────────

class TaxCalculationRequest(BaseModel):
    """Preview the taxes on one period's taxable income."""

    taxable_income: Decimal = Field(..., ge=0)
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    state: Optional[str] = None
    locality: Optional[str] = None
    as_of_date: Optional[date] = None
    ytd_gross: Decimal = Field(Decimal("0"), ge=0)


class TaxLine(BaseModel):
    tax_rule_set_id: uuid.UUID
    tax_type: str
    tax_name: str
    calculation_method: str
    taxable_income: Decimal
    amount: Decimal


class TaxBreakdown(BaseModel):
    taxable_income: Decimal
    taxes: list[TaxLine]
    total_tax: Decimal
    effective_rate: Decimal
