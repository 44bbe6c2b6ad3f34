"""Payroll run and paycheck ORM models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base

_MONEY = sa.Numeric(14, 2)
_ZERO = Decimal("0")


class PayrollRun(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "payroll_runs"
    __table_args__ = (
        sa.Index(
            "uq_payroll_runs_org_number", "organization_id", "run_number",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
        sa.CheckConstraint("pay_period_end > pay_period_start", name="ck_payroll_runs_period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    run_number: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    run_name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    run_type: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="regular")
    pay_period_start: Mapped[date] = mapped_column(sa.Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(sa.Date, nullable=False)
    payment_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="draft")

    # Totals in the organization's base currency
    total_employees: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    total_gross: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    total_taxes: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    total_net: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)

    calculated_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    calculated_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    finalized_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    finalized_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<PayrollRun {self.run_number} {self.status}>"


class Paycheck(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "paychecks"
    __table_args__ = (
        sa.Index("ix_paychecks_run", "payroll_run_id"),
        sa.Index("ix_paychecks_employee_period", "employee_id", "pay_period_end"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    payroll_run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("payroll_runs.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    compensation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employee_compensation.id", ondelete="SET NULL"),
    )
    reissued_from_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("paychecks.id", ondelete="SET NULL"),
    )
    pay_period_start: Mapped[date] = mapped_column(sa.Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(sa.Date, nullable=False)
    payment_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    compensation_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)

    regular_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=_ZERO)
    overtime_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=_ZERO)
    pto_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False, default=_ZERO)
    hourly_rate: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 4))

    regular_pay: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    overtime_pay: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    pto_pay: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    component_earnings: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    gross_pay: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    pre_tax_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    taxable_income: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    total_taxes: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    post_tax_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    net_pay: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=_ZERO)
    currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)

    # Line-item breakdowns
    earnings: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    taxes: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    deductions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="pending")
    payment_method: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="ach")
    voided_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    voided_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    void_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<Paycheck {self.employee_id} {self.net_pay} {self.status}>"
