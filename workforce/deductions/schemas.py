"""Deduction schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import DeductionCalculation, DeductionType, PayFrequency


class DeductionCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    employee_id: uuid.UUID
    deduction_type: DeductionType
    name: Optional[str] = Field(None, max_length=150)
    code: Optional[str] = Field(None, max_length=50)
    calculation_type: DeductionCalculation = DeductionCalculation.fixed_amount
    amount: Optional[Decimal] = Field(None, ge=0)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    max_per_payroll: Optional[Decimal] = Field(None, ge=0)
    max_annual: Optional[Decimal] = Field(None, ge=0)
    is_pre_tax: bool = False
    is_recurring: bool = True
    frequency: Optional[PayFrequency] = None
    effective_from: date
    effective_to: Optional[date] = None
    priority: int = Field(100, ge=0)
    notes: Optional[str] = None
    source_type: Optional[str] = Field(None, max_length=50)
    source_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def _check(self) -> "DeductionCreate":
        if self.calculation_type == DeductionCalculation.fixed_amount.value and self.amount is None:
            raise ValueError("amount is required for fixed_amount deductions")
        if self.calculation_type == DeductionCalculation.percentage.value and self.percentage is None:
            raise ValueError("percentage is required for percentage deductions")
        if self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("effective_to must be on or after effective_from")
        return self


class DeductionUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    calculation_type: Optional[DeductionCalculation] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    max_per_payroll: Optional[Decimal] = Field(None, ge=0)
    max_annual: Optional[Decimal] = Field(None, ge=0)
    is_pre_tax: Optional[bool] = None
    is_recurring: Optional[bool] = None
    frequency: Optional[PayFrequency] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class DeductionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    deduction_type: str
    name: str
    code: str
    calculation_type: str
    amount: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    max_per_payroll: Optional[Decimal] = None
    max_annual: Optional[Decimal] = None
    is_pre_tax: bool
    is_recurring: bool
    frequency: Optional[str] = None
    effective_from: date
    effective_to: Optional[date] = None
    is_active: bool
    priority: int
    notes: Optional[str] = None
    source_type: Optional[str] = None
    source_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class DeductionLine(BaseModel):
    deduction_id: uuid.UUID
    code: str
    name: str
    deduction_type: str
    amount: Decimal
    capped: bool = False


class DeductionBreakdown(BaseModel):
    pre_tax: list[DeductionLine] = []
    post_tax: list[DeductionLine] = []
    total_pre_tax: Decimal = Decimal("0")
    total_post_tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")


class DeductionPreviewRequest(BaseModel):
    gross_pay: Decimal = Field(..., ge=0)
    period_start: date
    period_end: date
