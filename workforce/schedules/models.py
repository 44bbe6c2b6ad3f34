"""Work schedule and shift ORM models."""

from __future__ import annotations

import uuid
from datetime import date, time
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class WorkSchedule(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "work_schedules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="draft")
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    shifts: Mapped[list["Shift"]] = relationship(back_populates="schedule")

    def __repr__(self) -> str:
        return f"<WorkSchedule {self.name} {self.start_date}..{self.end_date}>"


class Shift(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "shifts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    schedule_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("work_schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="SET NULL"),
        index=True,
    )
    shift_date: Mapped[date] = mapped_column(sa.Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    end_time: Mapped[time] = mapped_column(sa.Time, nullable=False)

    # Scheduling dimensions; referenced by id only
    station_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)
    role_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)
    shift_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))

    break_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="scheduled")
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    schedule: Mapped["WorkSchedule"] = relationship(back_populates="shifts")

    def __repr__(self) -> str:
        return f"<Shift {self.shift_date} {self.start_time}-{self.end_time} {self.status}>"
