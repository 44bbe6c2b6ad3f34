"""Approval workflow schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import (
    ApprovalPriority,
    ApprovalRequestType,
    ApprovalRuleType,
    UserRole,
)


def check_conditions(rule_type: str, conditions: dict) -> None:
    if rule_type == ApprovalRuleType.conversion_threshold.value:
        threshold = conditions.get("threshold_amount")
        if not isinstance(threshold, (int, float)) or threshold <= 0:
            raise ValueError("conversion_threshold rules need a positive conditions.threshold_amount")
        currencies = conditions.get("currencies", [])
        if not isinstance(currencies, list):
            raise ValueError("conditions.currencies must be a list of currency codes")
    elif rule_type == ApprovalRuleType.rate_variance.value:
        variance = conditions.get("variance_percentage")
        if not isinstance(variance, (int, float)) or variance <= 0:
            raise ValueError("rate_variance rules need a positive conditions.variance_percentage")


# ── Rules ───────────────────────────────────────────────────────────

class ApprovalRuleCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=1, max_length=150)
    rule_type: ApprovalRuleType
    conditions: dict[str, Any] = Field(default_factory=dict)
    required_approvals: int = Field(1, ge=1, le=10)
    approver_user_ids: list[uuid.UUID] = Field(default_factory=list)
    approver_role: Optional[UserRole] = None
    expiration_hours: Optional[int] = Field(None, ge=1, le=8760)
    priority: int = Field(0, ge=0, le=1000)
    enabled: bool = True
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check(self) -> "ApprovalRuleCreate":
        check_conditions(self.rule_type, self.conditions)
        if not self.approver_user_ids and self.approver_role is None:
            raise ValueError("Either approver_user_ids or approver_role is required")
        if self.approver_user_ids and len(self.approver_user_ids) < self.required_approvals:
            raise ValueError("required_approvals cannot exceed the number of approvers")
        return self


class ApprovalRuleUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    conditions: Optional[dict[str, Any]] = None
    required_approvals: Optional[int] = Field(None, ge=1, le=10)
    approver_user_ids: Optional[list[uuid.UUID]] = None
    approver_role: Optional[UserRole] = None
    expiration_hours: Optional[int] = Field(None, ge=1, le=8760)
    priority: Optional[int] = Field(None, ge=0, le=1000)
    enabled: Optional[bool] = None
    description: Optional[str] = None


class ApprovalRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    rule_type: str
    conditions: dict[str, Any]
    required_approvals: int
    approver_user_ids: list[uuid.UUID]
    approver_role: Optional[str] = None
    expiration_hours: Optional[int] = None
    priority: int
    enabled: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ── Requests ────────────────────────────────────────────────────────

class ApprovalRequestCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    request_type: ApprovalRequestType
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[uuid.UUID] = None
    request_data: dict[str, Any] = Field(default_factory=dict)
    reason: Optional[str] = None
    priority: ApprovalPriority = ApprovalPriority.normal


class ApprovalDecision(BaseModel):
    comments: Optional[str] = Field(None, max_length=2000)


class ApprovalRejection(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ApprovalActionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    approval_request_id: uuid.UUID
    action: str
    comments: Optional[str] = None
    actor_id: uuid.UUID
    created_at: datetime


class ApprovalRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    approval_rule_id: Optional[uuid.UUID] = None
    request_type: str
    reference_type: Optional[str] = None
    reference_id: Optional[uuid.UUID] = None
    request_data: dict[str, Any]
    reason: Optional[str] = None
    priority: str
    status: str
    required_approvals: int
    current_approvals: int
    expires_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


class ApprovalRequestDetail(ApprovalRequestResponse):
    actions: list[ApprovalActionResponse] = []


class ApprovalCheck(BaseModel):
    """Outcome of asking whether an operation needs approval."""

    requires_approval: bool
    request: Optional[ApprovalRequestResponse] = None
