"""Employee payroll deduction ORM model."""

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


class EmployeeDeduction(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "employee_deductions"

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
    deduction_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    calculation_type: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="fixed_amount")
    amount: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    percentage: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(7, 4))
    max_per_payroll: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    max_annual: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(14, 2))
    is_pre_tax: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    is_recurring: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    frequency: Mapped[Optional[str]] = mapped_column(sa.String(20))
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=100)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Origin of an auto-created deduction, e.g. ("benefit_enrollment", <id>)
    source_type: Mapped[Optional[str]] = mapped_column(sa.String(50))
    source_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)

    def __repr__(self) -> str:
        return f"<EmployeeDeduction {self.code} {self.employee_id}>"
