"""Pay component schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from workforce.common.constants import (
    DEDUCTION_CATEGORIES,
    EARNING_CATEGORIES,
    CalculationType,
    ComponentType,
)
from workforce.temporal_patterns.schemas import TemporalPattern


def categories_for(component_type: str) -> tuple[str, ...]:
    if component_type == ComponentType.earning.value:
        return EARNING_CATEGORIES
    return DEDUCTION_CATEGORIES


def _validate_condition(value: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if value is None:
        return None
    try:
        pattern = TemporalPattern.model_validate(value)
    except ValidationError as exc:
        first = exc.errors()[0]
        raise ValueError(f"Invalid temporal pattern: {first['msg']}") from exc
    return pattern.model_dump(mode="json", exclude_none=True)


class PayComponentCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    code: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_\-]+$")
    name: str = Field(..., min_length=1, max_length=150)
    component_type: ComponentType
    category: str = Field(..., max_length=30)
    calculation_type: CalculationType = CalculationType.fixed_amount
    default_amount: Optional[Decimal] = Field(None, ge=0)
    default_rate: Optional[Decimal] = Field(None, ge=0)
    is_taxable: bool = True
    is_recurring: bool = True
    is_pre_tax: bool = False
    is_active: bool = True
    description: Optional[str] = None
    temporal_condition: Optional[dict[str, Any]] = None

    @field_validator("temporal_condition")
    @classmethod
    def _check_condition(cls, value):
        return _validate_condition(value)

    @model_validator(mode="after")
    def _check_category(self) -> "PayComponentCreate":
        allowed = categories_for(self.component_type)
        if self.category not in allowed:
            raise ValueError(
                f"category '{self.category}' is not valid for {self.component_type} "
                f"components (allowed: {', '.join(allowed)})"
            )
        return self


class PayComponentUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    component_type: Optional[ComponentType] = None
    category: Optional[str] = Field(None, max_length=30)
    calculation_type: Optional[CalculationType] = None
    default_amount: Optional[Decimal] = Field(None, ge=0)
    default_rate: Optional[Decimal] = Field(None, ge=0)
    is_taxable: Optional[bool] = None
    is_recurring: Optional[bool] = None
    is_pre_tax: Optional[bool] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None
    temporal_condition: Optional[dict[str, Any]] = None

    @field_validator("temporal_condition")
    @classmethod
    def _check_condition(cls, value):
        return _validate_condition(value)


class PayComponentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    component_type: str
    category: str
    calculation_type: str
    default_amount: Optional[Decimal] = None
    default_rate: Optional[Decimal] = None
    is_taxable: bool
    is_recurring: bool
    is_pre_tax: bool
    is_active: bool
    description: Optional[str] = None
    temporal_condition: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


# ── Employee assignments ────────────────────────────────────────────

class AssignmentCreate(BaseModel):
    employee_id: uuid.UUID
    pay_component_id: uuid.UUID
    amount: Optional[Decimal] = Field(None, ge=0)
    rate: Optional[Decimal] = Field(None, ge=0)
    effective_from: date
    effective_to: Optional[date] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self) -> "AssignmentCreate":
        if self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("effective_to must be on or after effective_from")
        return self


class AssignmentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, ge=0)
    rate: Optional[Decimal] = Field(None, ge=0)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    pay_component_id: uuid.UUID
    amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    effective_from: date
    effective_to: Optional[date] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
