"""Pay component catalogue and employee assignments."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class PayComponent(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "pay_components"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    component_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    category: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    calculation_type: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="fixed_amount")
    default_amount: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    default_rate: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(9, 4))
    is_taxable: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    is_recurring: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    is_pre_tax: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Temporal pattern the employee must satisfy for the component to apply
    temporal_condition: Mapped[Optional[dict]] = mapped_column(JSONB)

    __table_args__ = (
        sa.Index(
            "uq_pay_components_org_code", "organization_id", "code",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<PayComponent {self.code} {self.component_type}/{self.category}>"


class EmployeePayComponent(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "employee_pay_components"

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
    pay_component_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("pay_components.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Overrides of the component defaults
    amount: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    rate: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(9, 4))
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    component: Mapped["PayComponent"] = relationship()

    def __repr__(self) -> str:
        return f"<EmployeePayComponent {self.employee_id} {self.pay_component_id}>"
