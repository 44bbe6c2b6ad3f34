"""Compensation schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from workforce.common.constants import CompensationType, PayFrequency


class CompensationCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    employee_id: uuid.UUID
    compensation_type: CompensationType
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    overtime_multiplier: Optional[Decimal] = Field(None, ge=1, le=5)
    currency: Optional[str] = Field(None, pattern=r"^[A-Za-z]{3}$")
    pay_frequency: PayFrequency = PayFrequency.bi_weekly
    effective_from: date
    effective_to: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    @model_validator(mode="after")
    def _check_dates(self) -> "CompensationCreate":
        if self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("effective_to cannot be before effective_from")
        return self


class CompensationUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    overtime_multiplier: Optional[Decimal] = Field(None, ge=1, le=5)
    pay_frequency: Optional[PayFrequency] = None
    effective_to: Optional[date] = None
    notes: Optional[str] = None


class CompensationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    compensation_type: str
    amount: Decimal
    overtime_multiplier: Decimal
    currency: str
    pay_frequency: str
    effective_from: date
    effective_to: Optional[date] = None
    is_current: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
