"""Temporal pattern definitions and evaluation results."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import (
    ComparisonOperator,
    DayOfWeek,
    LogicalOperator,
    PatternType,
)

# Fields each pattern type cannot do without
_REQUIRED_BY_TYPE: dict[str, tuple[str, ...]] = {
    PatternType.day_of_week.value: ("day_of_week",),
    PatternType.shift_type.value: ("shift_type_id",),
    PatternType.station.value: ("station_id",),
    PatternType.role.value: ("role_id",),
    PatternType.hours_threshold.value: ("hours_threshold", "comparison_operator"),
    PatternType.combined.value: ("combined_patterns", "logical_operator"),
}


class TemporalPattern(BaseModel):
    """A rule such as "3 consecutive Sundays" or "> 40h in any 5 worked days"."""

    model_config = ConfigDict(use_enum_values=True)

    pattern_type: PatternType
    consecutive_count: int = Field(..., ge=1, le=365)
    lookback_period_days: int = Field(90, ge=1, le=730)
    day_of_week: Optional[DayOfWeek] = None
    shift_type_id: Optional[uuid.UUID] = None
    station_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    hours_threshold: Optional[float] = Field(None, ge=0)
    comparison_operator: Optional[ComparisonOperator] = None
    combined_patterns: Optional[list[TemporalPattern]] = Field(None, min_length=1)
    logical_operator: Optional[LogicalOperator] = None

    @model_validator(mode="after")
    def _check_type_fields(self) -> "TemporalPattern":
        missing = [
            name for name in _REQUIRED_BY_TYPE[self.pattern_type]
            if getattr(self, name) is None
        ]
        if missing:
            raise ValueError(
                f"{', '.join(missing)} required for pattern_type '{self.pattern_type}'"
            )
        return self


TemporalPattern.model_rebuild()


class EvaluateRequest(BaseModel):
    employee_id: uuid.UUID
    pattern: TemporalPattern
    as_of_date: Optional[date] = None


class TestPatternRequest(BaseModel):
    pattern: TemporalPattern
    employee_ids: list[uuid.UUID] = Field(..., min_length=1, max_length=500)
    as_of_date: Optional[date] = None


class PatternEvaluation(BaseModel):
    qualified: bool
    pattern_type: str
    metadata: dict[str, Any]
    execution_time_ms: float
    evaluated_at: date


class WorkerPatternResult(BaseModel):
    employee_id: uuid.UUID
    employee_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    job_title: Optional[str] = None
    qualified: bool
    pattern_type: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    execution_time_ms: Optional[float] = None
    evaluated_at: Optional[date] = None
    error: Optional[str] = None


class PatternTestResult(BaseModel):
    total_tested: int
    qualified_count: int
    not_qualified_count: int
    qualified_workers: list[WorkerPatternResult]
    not_qualified_workers: list[WorkerPatternResult]
    all_results: list[WorkerPatternResult]
