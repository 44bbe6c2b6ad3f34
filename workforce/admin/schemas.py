"""Admin Pydantic schemas — role assignment and audit trail."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from workforce.common.constants import UserRole


# ── Role Management Schemas ─────────────────────────────────────────

class EmployeeRoleOut(BaseModel):
    employee_id: uuid.UUID
    employee_number: str
    display_name: str
    email: str
    role: str
    department_id: Optional[uuid.UUID] = None

    model_config = {"from_attributes": True}


class RoleAssignRequest(BaseModel):
    employee_id: uuid.UUID
    role: UserRole


# ── Audit Trail Schemas ─────────────────────────────────────────────

class AuditTrailOut(BaseModel):
    id: uuid.UUID
    organization_id: Optional[uuid.UUID] = None
    actor_id: Optional[uuid.UUID] = None
    action: str
    entity_type: str
    entity_id: uuid.UUID
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("ip_address", mode="before")
    @classmethod
    def _ip_to_str(cls, v):
        return str(v) if v is not None else None
