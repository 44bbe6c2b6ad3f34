"""Exchange rate, conversion log and currency configuration ORM models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.dates import utcnow
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class ExchangeRate(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "exchange_rates"
    __table_args__ = (
        sa.Index(
            "ix_exchange_rates_pair", "organization_id", "from_currency", "to_currency", "effective_from",
        ),
        sa.CheckConstraint("rate > 0", name="ck_exchange_rates_positive"),
        sa.CheckConstraint("from_currency <> to_currency", name="ck_exchange_rates_pair"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    from_currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)
    to_currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)
    rate: Mapped[Decimal] = mapped_column(sa.Numeric(18, 8), nullable=False)
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    source: Mapped[str] = mapped_column(sa.String(50), nullable=False, default="manual")
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="active")
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<ExchangeRate {self.from_currency}->{self.to_currency} {self.rate} {self.status}>"


class CurrencyConversion(Base, TenantMixin):
    """Log of a conversion performed for a referenced entity."""

    __tablename__ = "currency_conversions"
    __table_args__ = (
        sa.Index("ix_currency_conversions_reference", "reference_type", "reference_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    from_currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)
    to_currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)
    from_amount: Mapped[Decimal] = mapped_column(sa.Numeric(16, 4), nullable=False)
    to_amount: Mapped[Decimal] = mapped_column(sa.Numeric(16, 4), nullable=False)
    rate_used: Mapped[Decimal] = mapped_column(sa.Numeric(18, 8), nullable=False)
    exchange_rate_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("exchange_rates.id", ondelete="SET NULL"),
    )
    source: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    rounding_mode: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    decimal_places: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    reference_type: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    reference_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class CurrencyConfig(Base, TenantMixin, AuditMixin):
    """Per-organization conversion defaults. The base currency lives on ``Organization``."""

    __tablename__ = "currency_configs"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", name="uq_currency_configs_org"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    supported_currencies: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    default_rounding_mode: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="half_up")
    default_decimal_places: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=2)
    require_approval_for_rate_changes: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
