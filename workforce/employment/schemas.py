"""Employment history Pydantic schemas."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from workforce.common.constants import EmploymentType, TerminationReason
from workforce.core_hr.schemas import EmployeeResponse


class EmploymentHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    start_date: date
    end_date: Optional[date] = None
    is_current: bool
    is_rehire: bool
    employment_status: str
    employment_type: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    job_title: Optional[str] = None
    termination_reason: Optional[str] = None
    termination_notes: Optional[str] = None
    is_rehire_eligible: Optional[bool] = None
    rehire_notes: Optional[str] = None
    created_at: datetime


class TerminateRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    termination_date: date
    termination_reason: TerminationReason
    termination_notes: Optional[str] = Field(None, max_length=2000)
    is_rehire_eligible: bool = True


class RehireRequest(BaseModel):
    """New position on rehire; omitted fields keep the employee's last values."""

    model_config = ConfigDict(use_enum_values=True)

    rehire_date: date
    employment_type: Optional[EmploymentType] = None
    department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    job_title: Optional[str] = Field(None, max_length=200)
    rehire_notes: Optional[str] = Field(None, max_length=2000)


class EmploymentChangeResponse(BaseModel):
    employee: EmployeeResponse
    employment_history: EmploymentHistoryResponse


class RehireEligibility(BaseModel):
    eligible: bool
    reason: Optional[str] = None
    termination_reason: Optional[str] = None
    termination_date: Optional[date] = None
