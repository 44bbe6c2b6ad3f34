"""Approval rule, request and action ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.dates import utcnow
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class ApprovalRule(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "approval_rules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    rule_type: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    conditions: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    required_approvals: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)
    approver_user_ids: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    approver_role: Mapped[Optional[str]] = mapped_column(sa.String(30))
    expiration_hours: Mapped[Optional[int]] = mapped_column(sa.Integer)
    priority: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<ApprovalRule {self.name} {self.rule_type}>"


class ApprovalRequest(Base, TenantMixin, AuditMixin):
    __tablename__ = "approval_requests"
    __table_args__ = (
        sa.Index("ix_approval_requests_reference", "reference_type", "reference_id"),
        sa.Index("ix_approval_requests_status", "organization_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    approval_rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("approval_rules.id", ondelete="SET NULL"),
    )
    request_type: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    reference_type: Mapped[Optional[str]] = mapped_column(sa.String(50))
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    request_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    priority: Mapped[str] = mapped_column(sa.String(10), nullable=False, default="normal")
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="pending")
    required_approvals: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)
    current_approvals: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    resolved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<ApprovalRequest {self.request_type} {self.status} {self.current_approvals}/{self.required_approvals}>"


class ApprovalAction(Base, TenantMixin):
    """One vote on an approval request. Rows are never updated."""

    __tablename__ = "approval_actions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    approval_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("approval_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(sa.Text)
    actor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
