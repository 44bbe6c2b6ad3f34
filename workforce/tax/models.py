"""Tax rule set and bracket ORM models."""

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


class TaxRuleSet(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "tax_rule_sets"
    __table_args__ = (
        sa.Index("ix_tax_rule_sets_lookup", "organization_id", "country", "effective_from"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tax_type: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    tax_name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    country: Mapped[str] = mapped_column(sa.String(2), nullable=False)
    state: Mapped[Optional[str]] = mapped_column(sa.String(50))
    locality: Mapped[Optional[str]] = mapped_column(sa.String(100))
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    calculation_method: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="bracket")
    flat_rate: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(7, 4))

    # Income above this much per year is not taxed by this rule
    annual_cap: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(14, 2))
    allowance_per_period: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 2), nullable=False, default=Decimal("0"),
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<TaxRuleSet {self.tax_name} {self.country} {self.calculation_method}>"


class TaxBracket(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "tax_brackets"
    __table_args__ = (
        sa.Index(
            "uq_tax_brackets_order", "tax_rule_set_id", "bracket_order",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
        sa.CheckConstraint("bracket_order >= 1", name="ck_tax_brackets_order"),
        sa.CheckConstraint(
            "rate_percentage >= 0 AND rate_percentage <= 100", name="ck_tax_brackets_rate",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tax_rule_set_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("tax_rule_sets.id", ondelete="CASCADE"),
        nullable=False,
    )
    bracket_order: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    income_min: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=Decimal("0"))
    income_max: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(14, 2))
    rate_percentage: Mapped[Decimal] = mapped_column(sa.Numeric(7, 4), nullable=False)
    fixed_amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<TaxBracket #{self.bracket_order} {self.income_min}-{self.income_max} @{self.rate_percentage}%>"
