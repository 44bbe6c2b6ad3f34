"""Attendance Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Request / *Create / *Update → request bodies (write)
  - *Response                    → response bodies (read)
  - *Summary / *Stats            → aggregates
"""


import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import AttendanceStatus


# ═════════════════════════════════════════════════════════════════════
# Clock in / out
# ═════════════════════════════════════════════════════════════════════


class ClockInRequest(BaseModel):
    """Payload for clocking in."""

    employee_id: Optional[uuid.UUID] = Field(
        None, description="Defaults to the caller; clocking in others needs attendance:write",
    )
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class ClockOutRequest(BaseModel):
    """Payload for clocking out."""

    employee_id: Optional[uuid.UUID] = None
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Records
# ═════════════════════════════════════════════════════════════════════


class AttendanceCreate(BaseModel):
    """Manual attendance entry."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    employee_id: uuid.UUID
    attendance_date: date
    clock_in_time: Optional[datetime] = None
    clock_out_time: Optional[datetime] = None
    clock_in_location: Optional[str] = Field(None, max_length=255)
    clock_out_location: Optional[str] = Field(None, max_length=255)
    status: AttendanceStatus = AttendanceStatus.present
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_times(self) -> "AttendanceCreate":
        if self.clock_in_time and self.clock_out_time and self.clock_out_time <= self.clock_in_time:
            raise ValueError("clock_out_time must be after clock_in_time")
        if self.clock_out_time and not self.clock_in_time:
            raise ValueError("clock_out_time requires clock_in_time")
        return self


class AttendanceUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    clock_in_time: Optional[datetime] = None
    clock_out_time: Optional[datetime] = None
    clock_in_location: Optional[str] = Field(None, max_length=255)
    clock_out_location: Optional[str] = Field(None, max_length=255)
    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = None


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    attendance_date: date
    clock_in_time: Optional[datetime] = None
    clock_out_time: Optional[datetime] = None
    clock_in_location: Optional[str] = None
    clock_out_location: Optional[str] = None
    total_hours: Optional[Decimal] = None
    status: str
    notes: Optional[str] = None
    is_manual: bool
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Aggregates
# ═════════════════════════════════════════════════════════════════════


class AttendanceSummary(BaseModel):
    """Aggregate attendance statistics for one employee over a date range."""

    employee_id: uuid.UUID
    from_date: date
    to_date: date
    days_present: int = 0
    days_absent: int = 0
    days_late: int = 0
    days_half_day: int = 0
    days_on_leave: int = 0
    total_hours: float = 0.0
    average_hours: float = 0.0


class TodayStats(BaseModel):
    """Organization-wide counts for today."""

    date: date
    total_employees: int = 0
    clocked_in: int = 0
    currently_working: int = 0
    present: int = 0
    late: int = 0
    absent: int = 0
    on_leave: int = 0
    not_clocked_in: int = 0
