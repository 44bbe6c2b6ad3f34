"""Employee document service."""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import today
from workforce.common.exceptions import ValidationException
from workforce.common.filters import apply_search
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee
from workforce.documents.models import EmployeeDocument
from workforce.documents.schemas import DocumentCreate, DocumentStats, DocumentUpdate

logger = logging.getLogger(__name__)

EXPIRING_SOON_DAYS = 30


class DocumentService:

    @staticmethod
    async def create_document(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: DocumentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeDocument:
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")

        document = EmployeeDocument(
            **data.model_dump(),
            organization_id=organization_id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(document)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="document",
            entity_id=document.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump(exclude={"file_url"})),
        )
        logger.info(
            "Document created org=%s document=%s employee=%s type=%s",
            organization_id, document.id, document.employee_id, document.document_type,
        )
        return document

    @staticmethod
    async def get_document(
        db: AsyncSession,
        organization_id: uuid.UUID,
        document_id: uuid.UUID,
    ) -> EmployeeDocument:
        return await get_scoped_or_404(db, EmployeeDocument, document_id, organization_id, "Document")

    @staticmethod
    async def update_document(
        db: AsyncSession,
        organization_id: uuid.UUID,
        document_id: uuid.UUID,
        data: DocumentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeDocument:
        document = await get_scoped_or_404(db, EmployeeDocument, document_id, organization_id, "Document")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return document
        for required in ("document_name", "document_type", "file_url", "is_confidential"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        issue = changes.get("issue_date", document.issue_date)
        expiry = changes.get("expiry_date", document.expiry_date)
        if issue and expiry and expiry < issue:
            raise ValidationException.for_field("expiry_date", "expiry_date must be on or after issue_date.")

        old_values = apply_changes(document, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="document",
            entity_id=document.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Document updated org=%s document=%s", organization_id, document.id)
        return document

    @staticmethod
    async def delete_document(
        db: AsyncSession,
        organization_id: uuid.UUID,
        document_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        document = await get_scoped_or_404(db, EmployeeDocument, document_id, organization_id, "Document")
        document.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="document",
            entity_id=document.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Document deleted org=%s document=%s", organization_id, document.id)

    # ── Listings ────────────────────────────────────────────────────

    @staticmethod
    async def list_employee_documents(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        document_type: Optional[str] = None,
        include_confidential: bool = True,
    ) -> Sequence[EmployeeDocument]:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        query = scoped_select(EmployeeDocument, organization_id).where(
            EmployeeDocument.employee_id == employee_id,
        )
        if document_type:
            query = query.where(EmployeeDocument.document_type == document_type)
        if not include_confidential:
            query = query.where(EmployeeDocument.is_confidential.is_(False))
        result = await db.execute(query.order_by(EmployeeDocument.created_at.desc()))
        return result.scalars().all()

    @staticmethod
    async def list_by_type(
        db: AsyncSession,
        organization_id: uuid.UUID,
        document_type: str,
        pagination: PaginationParams,
    ) -> PaginatedResponse:
        query = (
            scoped_select(EmployeeDocument, organization_id)
            .where(EmployeeDocument.document_type == document_type)
            .order_by(EmployeeDocument.created_at.desc())
        )
        return await paginate(db, query, pagination, model=EmployeeDocument)

    @staticmethod
    async def get_expiring_documents(
        db: AsyncSession,
        organization_id: uuid.UUID,
        days: int = EXPIRING_SOON_DAYS,
    ) -> Sequence[EmployeeDocument]:
        start = today()
        result = await db.execute(
            scoped_select(EmployeeDocument, organization_id)
            .where(
                EmployeeDocument.expiry_date.is_not(None),
                EmployeeDocument.expiry_date >= start,
                EmployeeDocument.expiry_date <= start + timedelta(days=days),
            )
            .order_by(EmployeeDocument.expiry_date),
        )
        return result.scalars().all()

    @staticmethod
    async def get_expired_documents(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> Sequence[EmployeeDocument]:
        result = await db.execute(
            scoped_select(EmployeeDocument, organization_id)
            .where(
                EmployeeDocument.expiry_date.is_not(None),
                EmployeeDocument.expiry_date < today(),
            )
            .order_by(EmployeeDocument.expiry_date.desc()),
        )
        return result.scalars().all()

    @staticmethod
    async def search_documents(
        db: AsyncSession,
        organization_id: uuid.UUID,
        term: str,
        pagination: PaginationParams,
    ) -> PaginatedResponse:
        query = scoped_select(EmployeeDocument, organization_id)
        query = apply_search(
            query, EmployeeDocument, term,
            ["document_name", "file_name", "description", "document_number"],
        )
        query = query.order_by(EmployeeDocument.created_at.desc())
        return await paginate(db, query, pagination, model=EmployeeDocument)

    # ── Stats ───────────────────────────────────────────────────────

    @staticmethod
    async def _stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: Optional[uuid.UUID] = None,
    ) -> DocumentStats:
        base = [
            EmployeeDocument.organization_id == organization_id,
            EmployeeDocument.deleted_at.is_(None),
        ]
        if employee_id is not None:
            base.append(EmployeeDocument.employee_id == employee_id)

        rows = (await db.execute(
            select(EmployeeDocument.document_type, func.count())
            .where(*base)
            .group_by(EmployeeDocument.document_type),
        )).all()
        by_type = {doc_type: count for doc_type, count in rows}

        async def _count(*conditions) -> int:
            return (await db.execute(
                select(func.count()).select_from(EmployeeDocument).where(*base, *conditions),
            )).scalar_one()

        now = today()
        return DocumentStats(
            total_documents=sum(by_type.values()),
            by_type=by_type,
            confidential=await _count(EmployeeDocument.is_confidential.is_(True)),
            expired=await _count(EmployeeDocument.expiry_date < now),
            expiring_soon=await _count(
                EmployeeDocument.expiry_date >= now,
                EmployeeDocument.expiry_date <= now + timedelta(days=EXPIRING_SOON_DAYS),
            ),
        )

    @staticmethod
    async def get_employee_stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> DocumentStats:
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        return await DocumentService._stats(db, organization_id, employee_id)

    @staticmethod
    async def get_organization_stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> DocumentStats:
        return await DocumentService._stats(db, organization_id)
