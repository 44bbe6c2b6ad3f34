"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response / *Detail → response bodies (read)
  - *Brief / *Summary  → compact read representations
"""


import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from workforce.common.constants import EmploymentStatus, EmploymentType, GenderType


# ═════════════════════════════════════════════════════════════════════
# Shared / embedded
# ═════════════════════════════════════════════════════════════════════


class AddressSchema(BaseModel):
    """Reusable address block (stored as JSONB)."""

    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class EmergencyContactSchema(BaseModel):
    """Emergency contact block (stored as JSONB)."""

    name: Optional[str] = None
    relationship: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Location
# ═════════════════════════════════════════════════════════════════════


class LocationCreate(BaseModel):
    location_name: str = Field(..., min_length=1, max_length=150)
    location_code: Optional[str] = Field(None, max_length=30)
    location_type: str = Field("branch", max_length=30)
    address_line1: Optional[str] = Field(None, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state_province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    timezone: str = "UTC"
    is_active: bool = True


class LocationUpdate(BaseModel):
    location_name: Optional[str] = Field(None, min_length=1, max_length=150)
    location_code: Optional[str] = Field(None, max_length=30)
    location_type: Optional[str] = Field(None, max_length=30)
    address_line1: Optional[str] = Field(None, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state_province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    timezone: Optional[str] = None
    is_active: Optional[bool] = None


class LocationResponse(BaseModel):
    """Full location representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    location_name: str
    location_code: Optional[str] = None
    location_type: str = "branch"
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    timezone: str = "UTC"
    is_primary: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class LocationBrief(BaseModel):
    """Minimal location info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    location_name: str
    city: Optional[str] = None


class LocationStats(BaseModel):
    location_id: uuid.UUID
    location_name: str
    total_employees: int = 0
    active_employees: int = 0
    departments: int = 0


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    department_name: str = Field(..., min_length=1, max_length=150)
    department_code: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None
    parent_department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    cost_center: Optional[str] = Field(None, max_length=50)
    is_active: bool = True


class DepartmentUpdate(BaseModel):
    department_name: Optional[str] = Field(None, min_length=1, max_length=150)
    department_code: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None
    parent_department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    cost_center: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None


class DepartmentResponse(BaseModel):
    """Full department representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    department_name: str
    department_code: Optional[str] = None
    description: Optional[str] = None
    parent_department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    cost_center: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    # Enriched by the service layer
    employee_count: int = 0


class DepartmentBrief(BaseModel):
    """Minimal department info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    department_name: str
    department_code: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Employee — write schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Payload for creating a new employee."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    employee_number: str = Field(..., min_length=1, max_length=30)
    first_name: str = Field(..., min_length=1, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    preferred_name: Optional[str] = Field(None, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    gender: Optional[GenderType] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = Field(None, max_length=50)
    address: Optional[AddressSchema] = None
    emergency_contact: Optional[EmergencyContactSchema] = None
    department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    job_title: Optional[str] = Field(None, max_length=200)
    employment_type: EmploymentType = EmploymentType.full_time
    hire_date: date

    @model_validator(mode="after")
    def _birth_before_hire(self) -> "EmployeeCreate":
        if self.date_of_birth and self.date_of_birth >= self.hire_date:
            raise ValueError("date_of_birth must be before hire_date")
        return self


class EmployeeUpdate(BaseModel):
    """Partial update — every field optional; only provided fields are written."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    employee_number: Optional[str] = Field(None, min_length=1, max_length=30)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    preferred_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    gender: Optional[GenderType] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = Field(None, max_length=50)
    address: Optional[AddressSchema] = None
    emergency_contact: Optional[EmergencyContactSchema] = None
    department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    job_title: Optional[str] = Field(None, max_length=200)
    employment_type: Optional[EmploymentType] = None
    employment_status: Optional[EmploymentStatus] = None
    profile_photo_url: Optional[str] = None

    @model_validator(mode="after")
    def _no_terminated_status(self) -> "EmployeeUpdate":
        if self.employment_status == EmploymentStatus.terminated:
            raise ValueError(
                "use the termination endpoint to terminate an employee",
            )
        return self


# ═════════════════════════════════════════════════════════════════════
# Employee — read schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeSummary(BaseModel):
    """Compact employee representation (manager refs, lists for non-HR)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_number: str
    first_name: str
    last_name: str
    email: str
    job_title: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    employment_status: str


class EmployeeResponse(BaseModel):
    """Full employee row."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    employee_number: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    preferred_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    address: Optional[dict[str, Any]] = None
    emergency_contact: Optional[dict[str, Any]] = None
    department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    job_title: Optional[str] = None
    employment_type: str
    employment_status: str
    hire_date: date
    termination_date: Optional[date] = None
    is_vip: bool = False
    is_restricted: bool = False
    restriction_level: Optional[str] = None
    profile_photo_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class EmployeeDetail(EmployeeResponse):
    """Employee row enriched with department / location / manager."""

    department: Optional[DepartmentBrief] = None
    location: Optional[LocationBrief] = None
    manager: Optional[EmployeeSummary] = None
    direct_reports_count: int = 0
