"""Time entry and timesheet ORM models."""

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


class TimeEntry(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "time_entries"
    __table_args__ = (
        sa.Index("ix_time_entries_employee_date", "employee_id", "entry_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    entry_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    clock_in: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    clock_out: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    break_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    worked_hours: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), nullable=False, default=Decimal("0"))
    regular_hours: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), nullable=False, default=Decimal("0"))

    entry_type: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="regular")
    shift_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="draft", index=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<TimeEntry {self.entry_date} {self.worked_hours}h {self.status}>"


class Timesheet(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "timesheets"
    __table_args__ = (
        sa.Index("ix_timesheets_employee_period", "employee_id", "period_start"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(sa.Date, nullable=False)
    period_end: Mapped[date] = mapped_column(sa.Date, nullable=False)

    regular_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=Decimal("0"))
    pto_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=Decimal("0"))
    sick_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=Decimal("0"))
    total_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="draft", index=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    submitted_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    payroll_run_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)

    def __repr__(self) -> str:
        return f"<Timesheet {self.employee_id} {self.period_start}..{self.period_end} {self.status}>"
