"""Schedule and shift schemas."""

import uuid
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScheduleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    start_date: date
    end_date: date
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "ScheduleCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class ScheduleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    start_date: date
    end_date: date
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ShiftCreate(BaseModel):
    employee_id: Optional[uuid.UUID] = None
    shift_date: date
    start_time: time
    end_time: time
    station_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    shift_type_id: Optional[uuid.UUID] = None
    break_minutes: int = Field(0, ge=0, le=720)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_times(self) -> "ShiftCreate":
        if self.start_time == self.end_time:
            raise ValueError("start_time and end_time must differ")
        return self


class ShiftUpdate(BaseModel):
    employee_id: Optional[uuid.UUID] = None
    shift_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    station_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    shift_type_id: Optional[uuid.UUID] = None
    break_minutes: Optional[int] = Field(None, ge=0, le=720)
    notes: Optional[str] = None


class ShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    schedule_id: uuid.UUID
    employee_id: Optional[uuid.UUID] = None
    shift_date: date
    start_time: time
    end_time: time
    station_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    shift_type_id: Optional[uuid.UUID] = None
    break_minutes: int
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ScheduleDetail(ScheduleResponse):
    shifts: list[ShiftResponse] = []
