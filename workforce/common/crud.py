"""Tenant-scoped query helpers shared by every service.

Every read goes through ``scoped_select`` so that rows of another
organization, and soft-deleted rows, are invisible.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional, Sequence

from fastapi.encoders import jsonable_encoder
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.dates import utcnow
from workforce.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)


def scoped_select(
    model: Any,
    organization_id: uuid.UUID,
    *,
    include_deleted: bool = False,
) -> Select:
    """``SELECT model WHERE organization_id = :org [AND deleted_at IS NULL]``."""
    query = select(model).where(model.organization_id == organization_id)
    if not include_deleted and hasattr(model, "deleted_at"):
        query = query.where(model.deleted_at.is_(None))
    return query


async def get_scoped_or_404(
    db: AsyncSession,
    model: Any,
    entity_id: uuid.UUID,
    organization_id: uuid.UUID,
    entity_type: Optional[str] = None,
    *,
    options: Sequence[Any] = (),
) -> Any:
    """Load one live row of *model* in the tenant or raise ``NotFoundException``."""
    query = scoped_select(model, organization_id).where(model.id == entity_id)
    if options:
        query = query.options(*options)
    obj = (await db.execute(query)).scalars().first()
    if obj is None:
        raise NotFoundException(entity_type or model.__name__, str(entity_id))
    return obj


async def ensure_exists(
    db: AsyncSession,
    model: Any,
    entity_id: Optional[uuid.UUID],
    organization_id: uuid.UUID,
    field: str,
    entity_type: Optional[str] = None,
) -> Any:
    """Referential check before a foreign-key write.

    ``None`` passes through (nullable reference); a dangling id raises a
    422 against *field*.
    """
    if entity_id is None:
        return None
    query = scoped_select(model, organization_id).where(model.id == entity_id)
    obj = (await db.execute(query)).scalars().first()
    if obj is None:
        label = entity_type or model.__name__
        raise ValidationException.for_field(
            field, f"{label} '{entity_id}' does not exist in this organization.",
        )
    return obj


async def ensure_unique(
    db: AsyncSession,
    model: Any,
    organization_id: uuid.UUID,
    field: str,
    value: Any,
    *,
    exclude_id: Optional[uuid.UUID] = None,
    case_insensitive: bool = False,
) -> None:
    """Raise ``ConflictError`` if a live row in the tenant already has *value*."""
    if value is None:
        return
    column = getattr(model, field)
    query = scoped_select(model, organization_id)
    if case_insensitive:
        query = query.where(func.lower(column) == str(value).lower())
    else:
        query = query.where(column == value)
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    count_q = query.with_only_columns(func.count(), maintain_column_froms=True)
    if (await db.execute(count_q)).scalar_one() > 0:
        raise ConflictError(field, value)


def apply_changes(
    obj: Any,
    changes: dict[str, Any],
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> dict[str, Any]:
    """Set only the provided columns on *obj*; return JSON-safe old values."""
    old_values: dict[str, Any] = {}
    for field, value in changes.items():
        old_values[field] = getattr(obj, field, None)
        setattr(obj, field, value)
    if hasattr(obj, "updated_by"):
        obj.updated_by = actor_id
    if hasattr(obj, "updated_at"):
        obj.updated_at = utcnow()
    return jsonable_encoder(old_values)


def to_json(values: Any) -> Any:
    """Serialize model_dump output / plain dicts for JSONB audit columns."""
    return jsonable_encoder(values)
