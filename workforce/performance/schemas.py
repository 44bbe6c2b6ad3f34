"""Performance review schemas."""

import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import ReviewType


class ReviewCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    employee_id: uuid.UUID
    reviewer_id: uuid.UUID
    review_type: ReviewType
    review_period_start: date
    review_period_end: date
    due_date: Optional[date] = None
    overall_rating: Optional[int] = Field(None, ge=1, le=5)
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    goals: Optional[list[Any]] = None
    reviewer_comments: Optional[str] = None

    @model_validator(mode="after")
    def _check(self) -> "ReviewCreate":
        if self.review_period_end < self.review_period_start:
            raise ValueError("review_period_end must be on or after review_period_start")
        if self.reviewer_id == self.employee_id:
            raise ValueError("An employee cannot review themselves")
        return self


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    reviewer_id: Optional[uuid.UUID] = None
    review_type: Optional[ReviewType] = None
    review_period_start: Optional[date] = None
    review_period_end: Optional[date] = None
    due_date: Optional[date] = None
    overall_rating: Optional[int] = Field(None, ge=1, le=5)
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    goals: Optional[list[Any]] = None
    reviewer_comments: Optional[str] = None
    employee_comments: Optional[str] = None


class ReviewCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    reviewer_id: uuid.UUID
    review_type: str
    review_period_start: date
    review_period_end: date
    due_date: Optional[date] = None
    status: str
    overall_rating: Optional[int] = None
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    goals: Optional[list[Any]] = None
    reviewer_comments: Optional[str] = None
    employee_comments: Optional[str] = None
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ReviewSummary(BaseModel):
    employee_id: uuid.UUID
    total_reviews: int
    by_status: dict[str, int]
    average_rating: Optional[float] = None
    latest_review_date: Optional[date] = None
