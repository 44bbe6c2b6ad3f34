"""Benefit plan and enrollment schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import BenefitPlanType, CoverageLevel, EnrollmentStatus, PayFrequency


# ── Plans ───────────────────────────────────────────────────────────

class BenefitPlanCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    plan_name: str = Field(..., min_length=1, max_length=200)
    plan_type: BenefitPlanType
    description: Optional[str] = None
    provider: Optional[str] = Field(None, max_length=200)
    coverage_level: Optional[CoverageLevel] = None
    effective_date: date
    termination_date: Optional[date] = None
    employee_cost: Decimal = Field(Decimal("0"), ge=0)
    employer_contribution: Decimal = Field(Decimal("0"), ge=0)
    contribution_frequency: PayFrequency = PayFrequency.monthly
    waiting_period_days: int = Field(0, ge=0)
    eligibility_rules: Optional[dict[str, Any]] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _check_dates(self) -> "BenefitPlanCreate":
        if self.termination_date and self.termination_date < self.effective_date:
            raise ValueError("termination_date must be on or after effective_date")
        return self


class BenefitPlanUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    plan_name: Optional[str] = Field(None, min_length=1, max_length=200)
    plan_type: Optional[BenefitPlanType] = None
    description: Optional[str] = None
    provider: Optional[str] = Field(None, max_length=200)
    coverage_level: Optional[CoverageLevel] = None
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None
    employee_cost: Optional[Decimal] = Field(None, ge=0)
    employer_contribution: Optional[Decimal] = Field(None, ge=0)
    contribution_frequency: Optional[PayFrequency] = None
    waiting_period_days: Optional[int] = Field(None, ge=0)
    eligibility_rules: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None


class BenefitPlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    plan_name: str
    plan_type: str
    description: Optional[str] = None
    provider: Optional[str] = None
    coverage_level: Optional[str] = None
    effective_date: date
    termination_date: Optional[date] = None
    employee_cost: Decimal
    employer_contribution: Decimal
    contribution_frequency: str
    waiting_period_days: int
    eligibility_rules: Optional[dict[str, Any]] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PlanEnrollmentSummary(BaseModel):
    plan_id: uuid.UUID
    plan_name: str
    total_enrollments: int
    by_status: dict[str, int]
    monthly_employee_cost: Decimal
    monthly_employer_cost: Decimal


# ── Enrollments ─────────────────────────────────────────────────────

class EnrollmentCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    employee_id: uuid.UUID
    plan_id: uuid.UUID
    enrollment_date: date
    coverage_start_date: date
    coverage_end_date: Optional[date] = None
    coverage_level: Optional[CoverageLevel] = None
    employee_contribution: Optional[Decimal] = Field(None, ge=0)
    employer_contribution: Optional[Decimal] = Field(None, ge=0)
    beneficiaries: Optional[list[dict[str, Any]]] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "EnrollmentCreate":
        if self.coverage_end_date and self.coverage_end_date < self.coverage_start_date:
            raise ValueError("coverage_end_date must be on or after coverage_start_date")
        return self


class EnrollmentUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    coverage_start_date: Optional[date] = None
    coverage_end_date: Optional[date] = None
    coverage_level: Optional[CoverageLevel] = None
    employee_contribution: Optional[Decimal] = Field(None, ge=0)
    employer_contribution: Optional[Decimal] = Field(None, ge=0)
    beneficiaries: Optional[list[dict[str, Any]]] = None
    status: Optional[EnrollmentStatus] = None


class EnrollmentTerminate(BaseModel):
    termination_date: date
    termination_reason: Optional[str] = Field(None, max_length=2000)


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    plan_id: uuid.UUID
    enrollment_date: date
    coverage_start_date: date
    coverage_end_date: Optional[date] = None
    coverage_level: Optional[str] = None
    employee_contribution: Decimal
    employer_contribution: Decimal
    beneficiaries: Optional[list[Any]] = None
    status: str
    termination_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
