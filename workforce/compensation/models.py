"""Employee compensation ORM model."""

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


class EmployeeCompensation(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "employee_compensation"
    __table_args__ = (
        sa.Index("ix_employee_compensation_employee", "employee_id", "effective_from"),
        sa.CheckConstraint("amount >= 0", name="ck_employee_compensation_amount"),
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
    compensation_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)

    # Hourly rate for hourly workers, annual salary for salaried ones
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    overtime_multiplier: Mapped[Decimal] = mapped_column(
        sa.Numeric(4, 2), nullable=False, default=Decimal("1.5"),
    )
    currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)
    pay_frequency: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="bi-weekly")
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    is_current: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<EmployeeCompensation {self.employee_id} {self.compensation_type} {self.amount}>"
