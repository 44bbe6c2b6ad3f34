"""Employee document ORM model."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.audit import AuditMixin
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base


class EmployeeDocument(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "employee_documents"

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
    document_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    document_type: Mapped[str] = mapped_column(sa.String(30), nullable=False, index=True)
    file_url: Mapped[str] = mapped_column(sa.String(1000), nullable=False)
    file_name: Mapped[Optional[str]] = mapped_column(sa.String(255))
    file_size: Mapped[Optional[int]] = mapped_column(sa.BigInteger)
    mime_type: Mapped[Optional[str]] = mapped_column(sa.String(100))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    issue_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    expiry_date: Mapped[Optional[date]] = mapped_column(sa.Date, index=True)
    issuing_authority: Mapped[Optional[str]] = mapped_column(sa.String(255))
    document_number: Mapped[Optional[str]] = mapped_column(sa.String(100))
    is_confidential: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<EmployeeDocument {self.document_type} {self.document_name}>"
