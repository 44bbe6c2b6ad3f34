"""VIP / restricted-employee ORM models: access-control rules and access log."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.dates import utcnow
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class EmployeeAccessControl(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    """Who may see a restricted employee, and which data areas are locked."""

    __tablename__ = "employee_access_control"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    restriction_level: Mapped[Optional[str]] = mapped_column(sa.String(20))

    # Allow-lists (stored as JSON arrays of strings)
    allowed_user_ids: Mapped[list] = mapped_column(JSONB, default=list)
    allowed_roles: Mapped[list] = mapped_column(JSONB, default=list)
    allowed_department_ids: Mapped[list] = mapped_column(JSONB, default=list)

    # Per-area restriction flags
    restrict_compensation: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    restrict_personal_info: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    restrict_performance: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    restrict_documents: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    restrict_time_off: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    restrict_benefits: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    restrict_attendance: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    restriction_reason: Mapped[Optional[str]] = mapped_column(sa.String(500))

    __table_args__ = (
        sa.Index(
            "uq_access_control_employee", "organization_id", "employee_id",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
    )

    def restricts(self, access_type: str) -> bool:
        """True when *access_type* data is locked; ``general`` never is."""
        return bool(getattr(self, f"restrict_{access_type}", False))


class RestrictedAccessLog(Base, TenantMixin):
    """Append-only record of access decisions on restricted employees."""

    __tablename__ = "restricted_access_log"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    access_type: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    access_granted: Mapped[bool] = mapped_column(sa.Boolean, nullable=False)
    denial_reason: Mapped[Optional[str]] = mapped_column(sa.String(255))
    endpoint: Mapped[Optional[str]] = mapped_column(sa.String(500))
    http_method: Mapped[Optional[str]] = mapped_column(sa.String(10))
    ip_address: Mapped[Optional[str]] = mapped_column(INET)
    user_agent: Mapped[Optional[str]] = mapped_column(sa.Text)
    accessed_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow,
    )

    __table_args__ = (
        sa.Index("idx_restricted_access_employee", "employee_id", "accessed_at"),
    )
