"""Contract schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import ContractType, PayFrequency


class ContractCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    contract_number: str = Field(..., min_length=1, max_length=50)
    employee_id: uuid.UUID
    contract_type: ContractType
    start_date: date
    end_date: Optional[date] = None
    salary_amount: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    pay_frequency: Optional[PayFrequency] = None
    hours_per_week: Optional[Decimal] = Field(None, gt=0, le=168)
    notice_period_days: Optional[int] = Field(None, ge=0)
    terms: Optional[str] = None
    signed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "ContractCreate":
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        if self.contract_type == ContractType.fixed_term.value and self.end_date is None:
            raise ValueError("end_date is required for fixed_term contracts")
        return self


class ContractUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    contract_type: Optional[ContractType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    salary_amount: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    pay_frequency: Optional[PayFrequency] = None
    hours_per_week: Optional[Decimal] = Field(None, gt=0, le=168)
    notice_period_days: Optional[int] = Field(None, ge=0)
    terms: Optional[str] = None
    signed_at: Optional[datetime] = None


class ContractTerminate(BaseModel):
    termination_date: date
    termination_reason: Optional[str] = Field(None, max_length=2000)


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    contract_number: str
    employee_id: uuid.UUID
    contract_type: str
    status: str
    start_date: date
    end_date: Optional[date] = None
    salary_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    pay_frequency: Optional[str] = None
    hours_per_week: Optional[Decimal] = None
    notice_period_days: Optional[int] = None
    terms: Optional[str] = None
    signed_at: Optional[datetime] = None
    termination_date: Optional[date] = None
    termination_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
