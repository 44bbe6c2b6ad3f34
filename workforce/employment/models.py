"""Employment history ORM model — one row per continuous employment period."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.models import TenantMixin
from workforce.database import Base


class EmploymentHistory(Base, TenantMixin, AuditMixin):
    __tablename__ = "employment_history"

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
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    is_current: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    is_rehire: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    # Snapshot of the position held during the period
    employment_status: Mapped[str] = mapped_column(sa.String(20), default="active")
    employment_type: Mapped[Optional[str]] = mapped_column(sa.String(20))
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    job_title: Mapped[Optional[str]] = mapped_column(sa.String(200))

    # Set when the period ends
    termination_reason: Mapped[Optional[str]] = mapped_column(sa.String(30))
    termination_notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_rehire_eligible: Mapped[Optional[bool]] = mapped_column(sa.Boolean)
    rehire_notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    __table_args__ = (
        sa.Index(
            "uq_employment_history_current", "employee_id",
            unique=True,
            postgresql_where=sa.text("is_current"),
            sqlite_where=sa.text("is_current = 1"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<EmploymentHistory {self.employee_id} {self.start_date}"
            f"..{self.end_date or ''}>"
        )
