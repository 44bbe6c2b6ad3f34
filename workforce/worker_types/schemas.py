"""Worker type schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from workforce.common.constants import PayFrequency, PaymentMethod


class WorkerTypeCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=30, pattern=r"^[A-Za-z0-9_\-]+$")
    description: Optional[str] = None
    default_pay_frequency: PayFrequency = PayFrequency.monthly
    default_payment_method: PaymentMethod = PaymentMethod.ach
    benefits_eligible: bool = True
    overtime_eligible: bool = True
    pto_eligible: bool = True
    sick_leave_eligible: bool = True
    vacation_accrual_rate: Decimal = Field(Decimal("0"), ge=0, le=1)


class WorkerTypeUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    default_pay_frequency: Optional[PayFrequency] = None
    default_payment_method: Optional[PaymentMethod] = None
    benefits_eligible: Optional[bool] = None
    overtime_eligible: Optional[bool] = None
    pto_eligible: Optional[bool] = None
    sick_leave_eligible: Optional[bool] = None
    vacation_accrual_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    is_active: Optional[bool] = None


class WorkerTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    description: Optional[str] = None
    default_pay_frequency: str
    default_payment_method: str
    benefits_eligible: bool
    overtime_eligible: bool
    pto_eligible: bool
    sick_leave_eligible: bool
    vacation_accrual_rate: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime


class WorkerTypeCount(BaseModel):
    worker_type_id: uuid.UUID
    code: str
    name: str
    employee_count: int


class AssignmentCreate(BaseModel):
    employee_id: uuid.UUID
    worker_type_id: uuid.UUID
    effective_from: date
    notes: Optional[str] = None


class BulkAssignRequest(BaseModel):
    worker_type_id: uuid.UUID
    employee_ids: list[uuid.UUID] = Field(..., min_length=1, max_length=500)
    effective_from: date
    notes: Optional[str] = None


class BulkAssignItem(BaseModel):
    employee_id: uuid.UUID
    success: bool
    assignment_id: Optional[uuid.UUID] = None
    error: Optional[str] = None


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    worker_type_id: uuid.UUID
    effective_from: date
    effective_to: Optional[date] = None
    is_current: bool
    notes: Optional[str] = None
    created_at: datetime
