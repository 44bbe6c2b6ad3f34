"""Worker type templates and employee assignments."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class WorkerType(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "worker_types"
    __table_args__ = (
        sa.Index(
            "uq_worker_types_org_code", "organization_id", "code",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
        sa.CheckConstraint(
            "vacation_accrual_rate >= 0 AND vacation_accrual_rate <= 1",
            name="ck_worker_types_accrual",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    default_pay_frequency: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="monthly")
    default_payment_method: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="ach")

    # Eligibility
    benefits_eligible: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    overtime_eligible: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    pto_eligible: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    sick_leave_eligible: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    vacation_accrual_rate: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 4), nullable=False, default=Decimal("0"),
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<WorkerType {self.code}>"


class WorkerTypeAssignment(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "worker_type_assignments"
    __table_args__ = (
        sa.Index("ix_worker_type_assignments_current", "employee_id", "is_current"),
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
    worker_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("worker_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    is_current: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<WorkerTypeAssignment {self.employee_id} {self.worker_type_id} current={self.is_current}>"
