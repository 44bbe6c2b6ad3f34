"""Performance review ORM model."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class PerformanceReview(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "performance_reviews"

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
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    review_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    review_period_start: Mapped[date] = mapped_column(sa.Date, nullable=False)
    review_period_end: Mapped[date] = mapped_column(sa.Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="draft", index=True)

    overall_rating: Mapped[Optional[int]] = mapped_column(sa.SmallInteger)
    strengths: Mapped[Optional[str]] = mapped_column(sa.Text)
    areas_for_improvement: Mapped[Optional[str]] = mapped_column(sa.Text)
    goals: Mapped[Optional[list[Any]]] = mapped_column(JSONB)
    reviewer_comments: Mapped[Optional[str]] = mapped_column(sa.Text)
    employee_comments: Mapped[Optional[str]] = mapped_column(sa.Text)

    submitted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    __table_args__ = (
        sa.CheckConstraint(
            "overall_rating IS NULL OR (overall_rating >= 1 AND overall_rating <= 5)",
            name="ck_performance_reviews_rating",
        ),
    )

    def __repr__(self) -> str:
        return f"<PerformanceReview {self.employee_id} {self.review_type} {self.status}>"
