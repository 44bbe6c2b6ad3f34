"""Benefit plan and enrollment ORM models."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class BenefitPlan(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "benefit_plans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    plan_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    plan_type: Mapped[str] = mapped_column(sa.String(20), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    provider: Mapped[Optional[str]] = mapped_column(sa.String(200))
    coverage_level: Mapped[Optional[str]] = mapped_column(sa.String(30))
    effective_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    termination_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    employee_cost: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    employer_contribution: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 2), nullable=False, default=Decimal("0"),
    )
    contribution_frequency: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="monthly")
    waiting_period_days: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    eligibility_rules: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    enrollments: Mapped[list["BenefitEnrollment"]] = relationship(back_populates="plan")

    def __repr__(self) -> str:
        return f"<BenefitPlan {self.plan_name}>"


class BenefitEnrollment(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "benefit_enrollments"

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
    plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("benefit_plans.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    enrollment_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    coverage_start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    coverage_end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    coverage_level: Mapped[Optional[str]] = mapped_column(sa.String(30))
    employee_contribution: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 2), nullable=False, default=Decimal("0"),
    )
    employer_contribution: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 2), nullable=False, default=Decimal("0"),
    )
    beneficiaries: Mapped[Optional[list[Any]]] = mapped_column(JSONB)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="active", index=True)
    termination_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    plan: Mapped["BenefitPlan"] = relationship(back_populates="enrollments")

    def __repr__(self) -> str:
        return f"<BenefitEnrollment {self.employee_id} {self.plan_id} {self.status}>"
