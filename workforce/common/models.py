"""Common ORM mixins: tenant scoping and soft delete."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from workforce.common.dates import utcnow


class TenantMixin:
    """Scope a table to one organization (tenant)."""

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class SoftDeleteMixin:
    """Rows are hidden by ``deleted_at`` instead of being removed."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
    )
    deleted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
    )

    def soft_delete(self, actor_id: Optional[uuid.UUID] = None) -> None:
        self.deleted_at = utcnow()
        self.deleted_by = actor_id
