"""Attendance ORM model: one AttendanceRecord per clock-in."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class AttendanceRecord(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "attendance_records"

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
    attendance_date: Mapped[date] = mapped_column(sa.Date, nullable=False, index=True)
    clock_in_time: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    clock_out_time: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    clock_in_location: Mapped[Optional[str]] = mapped_column(sa.String(255))
    clock_out_location: Mapped[Optional[str]] = mapped_column(sa.String(255))
    total_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 2))
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="present")
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_manual: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    __table_args__ = (
        sa.Index("ix_attendance_employee_date", "employee_id", "attendance_date"),
    )

    @property
    def is_open(self) -> bool:
        return self.clock_in_time is not None and self.clock_out_time is None

    def __repr__(self) -> str:
        return f"<AttendanceRecord {self.employee_id} {self.attendance_date} {self.status}>"
