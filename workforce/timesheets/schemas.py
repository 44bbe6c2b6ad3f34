"""Time entry and timesheet schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import TimeEntryType


# ── Time entries ────────────────────────────────────────────────────

class TimeEntryCreate(BaseModel):
    """Either clock_in/clock_out or worked_hours must be supplied."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    employee_id: Optional[uuid.UUID] = None
    entry_date: date
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    break_minutes: int = Field(0, ge=0, le=720)
    worked_hours: Optional[Decimal] = Field(None, ge=0, le=24)
    entry_type: TimeEntryType = TimeEntryType.regular
    shift_type_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_hours(self) -> "TimeEntryCreate":
        if self.clock_in and self.clock_out and self.clock_out <= self.clock_in:
            raise ValueError("clock_out must be after clock_in")
        if self.worked_hours is None and not (self.clock_in and self.clock_out):
            raise ValueError("Provide clock_in and clock_out, or worked_hours")
        return self


class TimeEntryUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    entry_date: Optional[date] = None
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    break_minutes: Optional[int] = Field(None, ge=0, le=720)
    worked_hours: Optional[Decimal] = Field(None, ge=0, le=24)
    entry_type: Optional[TimeEntryType] = None
    shift_type_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class TimeEntryReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class BulkApproveRequest(BaseModel):
    entry_ids: list[uuid.UUID] = Field(..., min_length=1, max_length=500)


class BulkApproveResult(BaseModel):
    approved: list[uuid.UUID]
    failed: list[dict]


class TimeEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    entry_date: date
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    break_minutes: int
    worked_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    entry_type: str
    shift_type_id: Optional[uuid.UUID] = None
    status: str
    notes: Optional[str] = None
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class HoursSummary(BaseModel):
    employee_id: uuid.UUID
    from_date: date
    to_date: date
    entries: int
    regular_hours: Decimal
    overtime_hours: Decimal
    pto_hours: Decimal
    sick_hours: Decimal
    holiday_hours: Decimal
    total_hours: Decimal


# ── Timesheets ──────────────────────────────────────────────────────

class TimesheetCreate(BaseModel):
    employee_id: uuid.UUID
    period_start: date
    period_end: date
    regular_hours: Decimal = Field(Decimal("0"), ge=0)
    overtime_hours: Decimal = Field(Decimal("0"), ge=0)
    pto_hours: Decimal = Field(Decimal("0"), ge=0)
    sick_hours: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_period(self) -> "TimesheetCreate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must be on or after period_start")
        return self


class TimesheetGenerate(BaseModel):
    employee_id: uuid.UUID
    period_start: date
    period_end: date

    @model_validator(mode="after")
    def _check_period(self) -> "TimesheetGenerate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must be on or after period_start")
        return self


class TimesheetUpdate(BaseModel):
    regular_hours: Optional[Decimal] = Field(None, ge=0)
    overtime_hours: Optional[Decimal] = Field(None, ge=0)
    pto_hours: Optional[Decimal] = Field(None, ge=0)
    sick_hours: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class TimesheetReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class TimesheetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    period_start: date
    period_end: date
    regular_hours: Decimal
    overtime_hours: Decimal
    pto_hours: Decimal
    sick_hours: Decimal
    total_hours: Decimal
    status: str
    notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    submitted_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    payroll_run_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
