"""Payroll run and paycheck schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import PaymentMethod, PayrollRunType


# ── Payroll runs ────────────────────────────────────────────────────

class PayrollRunCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    run_name: str = Field(..., min_length=1, max_length=150)
    run_type: PayrollRunType = PayrollRunType.regular
    pay_period_start: date
    pay_period_end: date
    payment_date: date
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "PayrollRunCreate":
        if self.pay_period_end <= self.pay_period_start:
            raise ValueError("pay_period_end must be after pay_period_start")
        if self.payment_date < self.pay_period_end:
            raise ValueError("payment_date cannot be before pay_period_end")
        return self


class PayrollRunUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    run_name: Optional[str] = Field(None, min_length=1, max_length=150)
    run_type: Optional[PayrollRunType] = None
    pay_period_start: Optional[date] = None
    pay_period_end: Optional[date] = None
    payment_date: Optional[date] = None
    notes: Optional[str] = None


class PayrollRunCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class PayrollRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    run_number: str
    run_name: str
    run_type: str
    pay_period_start: date
    pay_period_end: date
    payment_date: date
    status: str
    total_employees: int
    total_gross: Decimal
    total_taxes: Decimal
    total_deductions: Decimal
    total_net: Decimal
    currency: str
    calculated_at: Optional[datetime] = None
    calculated_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[uuid.UUID] = None
    finalized_at: Optional[datetime] = None
    finalized_by: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CalculationSkip(BaseModel):
    employee_id: uuid.UUID
    reason: str


class CalculationResult(BaseModel):
    run: PayrollRunResponse
    paychecks_created: int
    skipped: list[CalculationSkip] = []


# ── Paychecks ───────────────────────────────────────────────────────

class PaycheckUpdate(BaseModel):
    """Manual adjustments to a pending paycheck; net pay is recomputed."""

    model_config = ConfigDict(use_enum_values=True)

    gross_pay: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    total_taxes: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    pre_tax_deductions: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    post_tax_deductions: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class PaycheckReissue(PaycheckUpdate):
    """Adjustments applied to the copy when a voided paycheck is reissued."""

    payment_date: Optional[date] = None


class PaycheckVoid(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class PaycheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    payroll_run_id: uuid.UUID
    employee_id: uuid.UUID
    compensation_id: Optional[uuid.UUID] = None
    reissued_from_id: Optional[uuid.UUID] = None
    pay_period_start: date
    pay_period_end: date
    payment_date: date
    compensation_type: str
    regular_hours: Decimal
    overtime_hours: Decimal
    pto_hours: Decimal
    hourly_rate: Optional[Decimal] = None
    regular_pay: Decimal
    overtime_pay: Decimal
    pto_pay: Decimal
    component_earnings: Decimal
    gross_pay: Decimal
    pre_tax_deductions: Decimal
    taxable_income: Decimal
    total_taxes: Decimal
    post_tax_deductions: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    currency: str
    earnings: list[dict[str, Any]] = []
    taxes: list[dict[str, Any]] = []
    deductions: list[dict[str, Any]] = []
    status: str
    payment_method: str
    voided_at: Optional[datetime] = None
    voided_by: Optional[uuid.UUID] = None
    void_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class YearToDateSummary(BaseModel):
    employee_id: uuid.UUID
    year: int
    paycheck_count: int
    gross_pay: Decimal
    total_taxes: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    first_period_start: Optional[date] = None
    last_period_end: Optional[date] = None
