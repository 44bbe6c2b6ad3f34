"""VIP / restricted-employee schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from workforce.common.constants import AccessType, RestrictionLevel, UserRole


class AccessDecision(BaseModel):
    """Outcome of ``VIPService.check_access``."""

    granted: bool
    reason: str
    log_id: Optional[uuid.UUID] = None


class MarkVIPRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    is_vip: bool
    is_restricted: bool
    restriction_level: Optional[RestrictionLevel] = None
    restriction_reason: Optional[str] = Field(None, max_length=500)
    allowed_user_ids: list[uuid.UUID] = Field(default_factory=list)
    allowed_roles: list[UserRole] = Field(default_factory=list)
    allowed_department_ids: list[uuid.UUID] = Field(default_factory=list)
    restrict_compensation: bool = True
    restrict_personal_info: bool = False
    restrict_performance: bool = False
    restrict_documents: bool = False
    restrict_time_off: bool = False
    restrict_benefits: bool = False
    restrict_attendance: bool = False

    @model_validator(mode="after")
    def _level_matches_restriction(self) -> "MarkVIPRequest":
        if self.is_restricted and self.restriction_level is None:
            raise ValueError("restriction_level is required when is_restricted is true")
        if not self.is_restricted and self.restriction_level not in (None, RestrictionLevel.none.value):
            raise ValueError("restriction_level must be empty when is_restricted is false")
        return self


class AccessControlUpdate(BaseModel):
    """At least one field must be provided."""

    model_config = ConfigDict(use_enum_values=True)

    allowed_user_ids: Optional[list[uuid.UUID]] = None
    allowed_roles: Optional[list[UserRole]] = None
    allowed_department_ids: Optional[list[uuid.UUID]] = None
    restrict_compensation: Optional[bool] = None
    restrict_personal_info: Optional[bool] = None
    restrict_performance: Optional[bool] = None
    restrict_documents: Optional[bool] = None
    restrict_time_off: Optional[bool] = None
    restrict_benefits: Optional[bool] = None
    restrict_attendance: Optional[bool] = None

    @model_validator(mode="after")
    def _at_least_one(self) -> "AccessControlUpdate":
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        return self


class AccessControlResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    restriction_level: Optional[str] = None
    allowed_user_ids: list[str] = []
    allowed_roles: list[str] = []
    allowed_department_ids: list[str] = []
    restrict_compensation: bool
    restrict_personal_info: bool
    restrict_performance: bool
    restrict_documents: bool
    restrict_time_off: bool
    restrict_benefits: bool
    restrict_attendance: bool
    restriction_reason: Optional[str] = None
    updated_at: datetime


class VIPStatusResponse(BaseModel):
    employee_id: uuid.UUID
    is_vip: bool
    is_restricted: bool
    restriction_level: Optional[str] = None
    restricted_at: Optional[datetime] = None
    restricted_by: Optional[uuid.UUID] = None
    restriction_reason: Optional[str] = None
    access_control: Optional[AccessControlResponse] = None


class VIPEmployeeItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_number: str
    first_name: str
    last_name: str
    email: str
    job_title: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    is_vip: bool
    is_restricted: bool
    restriction_level: Optional[str] = None
    restricted_at: Optional[datetime] = None


class VIPCount(BaseModel):
    total_vip: int = 0
    restricted: int = 0
    unrestricted: int = 0


class AccessLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    user_id: uuid.UUID
    access_type: AccessType
    access_granted: bool
    denial_reason: Optional[str] = None
    endpoint: Optional[str] = None
    http_method: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    accessed_at: datetime

    @field_validator("ip_address", mode="before")
    @classmethod
    def _ip_to_str(cls, v):
        return str(v) if v is not None else None
