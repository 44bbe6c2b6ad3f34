"""Employment contract ORM model."""

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


class Contract(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "contracts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    contract_number: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contract_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="draft")
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    # Terms
    salary_amount: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(14, 2))
    currency: Mapped[Optional[str]] = mapped_column(sa.String(3))
    pay_frequency: Mapped[Optional[str]] = mapped_column(sa.String(20))
    hours_per_week: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 2))
    notice_period_days: Mapped[Optional[int]] = mapped_column(sa.Integer)
    terms: Mapped[Optional[str]] = mapped_column(sa.Text)
    signed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    # Termination
    termination_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    termination_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    __table_args__ = (
        sa.Index(
            "uq_contracts_org_number", "organization_id", "contract_number",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Contract {self.contract_number} {self.status}>"
