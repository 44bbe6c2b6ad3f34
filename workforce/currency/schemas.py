"""Currency schemas — exchange rates, conversions and configuration."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from workforce.common.constants import RoundingMode

_CODE = r"^[A-Za-z]{3}$"


# ── Exchange rates ──────────────────────────────────────────────────

class ExchangeRateCreate(BaseModel):
    from_currency: str = Field(..., pattern=_CODE)
    to_currency: str = Field(..., pattern=_CODE)
    rate: Decimal = Field(..., gt=0, max_digits=18, decimal_places=8)
    effective_from: date
    effective_to: Optional[date] = None
    source: str = Field("manual", min_length=1, max_length=50)
    notes: Optional[str] = None

    @field_validator("from_currency", "to_currency")
    @classmethod
    def _upper_codes(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _check(self) -> "ExchangeRateCreate":
        if self.from_currency == self.to_currency:
            raise ValueError("from_currency and to_currency must differ")
        if self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("effective_to cannot be before effective_from")
        return self


class ExchangeRateUpdate(BaseModel):
    """Rates are history: a new rate value is a new row, not an edit."""

    effective_to: Optional[date] = None
    source: Optional[str] = Field(None, min_length=1, max_length=50)
    notes: Optional[str] = None


class ExchangeRateImport(BaseModel):
    rates: list[ExchangeRateCreate] = Field(..., min_length=1, max_length=500)
    reason: Optional[str] = None


class ExchangeRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    from_currency: str
    to_currency: str
    rate: Decimal
    effective_from: date
    effective_to: Optional[date] = None
    source: str
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ResolvedRate(BaseModel):
    """The rate used for a pair on a date and how it was found."""

    from_currency: str
    to_currency: str
    rate: Decimal
    source: str
    exchange_rate_id: Optional[uuid.UUID] = None
    effective_from: Optional[date] = None
    via: Optional[str] = None


class RateChangeResult(BaseModel):
    rate: ExchangeRateResponse
    requires_approval: bool = False
    approval_request_id: Optional[uuid.UUID] = None


# ── Conversions ─────────────────────────────────────────────────────

class ConversionRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    amount: Decimal = Field(..., ge=0)
    from_currency: str = Field(..., pattern=_CODE)
    to_currency: str = Field(..., pattern=_CODE)
    as_of_date: Optional[date] = None
    rounding_mode: Optional[RoundingMode] = None
    decimal_places: Optional[int] = Field(None, ge=0, le=8)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[uuid.UUID] = None

    @field_validator("from_currency", "to_currency")
    @classmethod
    def _upper_codes(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _check_reference(self) -> "ConversionRequest":
        if (self.reference_type is None) != (self.reference_id is None):
            raise ValueError("reference_type and reference_id must be given together")
        return self


class ConversionResult(BaseModel):
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    rate: Decimal
    source: str
    exchange_rate_id: Optional[uuid.UUID] = None
    conversion_id: Optional[uuid.UUID] = None
    requires_approval: bool = False
    approval_request_id: Optional[uuid.UUID] = None


class BatchConversionRequest(BaseModel):
    conversions: list[ConversionRequest] = Field(..., min_length=1, max_length=500)


class BatchConversionItem(BaseModel):
    success: bool
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    source: Optional[str] = None
    error: Optional[str] = None


class ConversionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    rate_used: Decimal
    exchange_rate_id: Optional[uuid.UUID] = None
    source: str
    rounding_mode: str
    decimal_places: int
    reference_type: str
    reference_id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


# ── Configuration ───────────────────────────────────────────────────

class CurrencyConfigResponse(BaseModel):
    base_currency: str
    supported_currencies: list[str]
    default_rounding_mode: str
    default_decimal_places: int
    require_approval_for_rate_changes: bool


class CurrencyConfigUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    base_currency: Optional[str] = Field(None, pattern=_CODE)
    supported_currencies: Optional[list[str]] = None
    default_rounding_mode: Optional[RoundingMode] = None
    default_decimal_places: Optional[int] = Field(None, ge=0, le=8)
    require_approval_for_rate_changes: Optional[bool] = None

    @field_validator("base_currency")
    @classmethod
    def _upper_base(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    @field_validator("supported_currencies")
    @classmethod
    def _check_codes(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return value
        codes = []
        for code in value:
            if len(code) != 3 or not code.isalpha():
                raise ValueError(f"'{code}' is not a 3-letter currency code")
            if code.upper() not in codes:
                codes.append(code.upper())
        return codes
