"""Documents router.

Routes (mounted under /api/v1/hris/documents):
    ""                                — Create
    /expiring, /expired               — Expiry monitoring
    /search                           — Search by name / number
    /stats                            — Organization stats
    /type/{document_type}             — List by type
    /employee/{employee_id}           — Documents of one employee (VIP-checked)
    /employee/{employee_id}/stats     — Stats for one employee (VIP-checked)
    /{id}                             — Get (VIP-checked), update, delete
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import AccessType, DocumentType
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.documents.schemas import DocumentCreate, DocumentResponse, DocumentUpdate
from workforce.documents.service import DocumentService
from workforce.vip.dependencies import enforce_vip_access, require_vip_access

router = APIRouter(prefix="", tags=["documents"])


def _out(document) -> dict:
    return DocumentResponse.model_validate(document).model_dump(mode="json")


@router.post("", status_code=201)
async def create_document(
    body: DocumentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:write")),
):
    document = await DocumentService.create_document(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(document), "message": "Document created successfully."}


@router.get("/expiring")
async def get_expiring_documents(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:read")),
):
    documents = await DocumentService.get_expiring_documents(db, current_user.organization_id, days)
    return {
        "data": [_out(d) for d in documents],
        "message": f"Found {len(documents)} document(s) expiring within {days} days.",
    }


@router.get("/expired")
async def get_expired_documents(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:read")),
):
    documents = await DocumentService.get_expired_documents(db, current_user.organization_id)
    return {"data": [_out(d) for d in documents], "message": f"Found {len(documents)} expired document(s)."}


@router.get("/search")
async def search_documents(
    q: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:read")),
    pagination: PaginationParams = Depends(),
):
    result = await DocumentService.search_documents(db, current_user.organization_id, q, pagination)
    return {"data": [_out(d) for d in result.data], "meta": result.meta.model_dump()}


@router.get("/stats")
async def get_organization_stats(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:read")),
):
    stats = await DocumentService.get_organization_stats(db, current_user.organization_id)
    return {"data": stats.model_dump(), "message": "Document statistics retrieved successfully."}


@router.get("/type/{document_type}")
async def list_by_type(
    document_type: DocumentType,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:read")),
    pagination: PaginationParams = Depends(),
):
    result = await DocumentService.list_by_type(
        db, current_user.organization_id, document_type.value, pagination,
    )
    return {"data": [_out(d) for d in result.data], "meta": result.meta.model_dump()}


@router.get("/employee/{employee_id}")
async def list_employee_documents(
    employee_id: uuid.UUID,
    document_type: Optional[DocumentType] = Query(None),
    include_confidential: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("documents:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.documents)),
):
    documents = await DocumentService.list_employee_documents(
        db,
        current_user.organization_id,
        employee_id,
        document_type=document_type.value if document_type else None,
        include_confidential=include_confidential,
    )
    return {"data": [_out(d) for d in documents], "message": f"Found {len(documents)} document(s)."}


@router.get("/employee/{employee_id}/stats")
async def get_employee_stats(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _perm: Employee = Depends(require_permission("documents:read")),
    current_user: Employee = Depends(require_vip_access(AccessType.documents)),
):
    stats = await DocumentService.get_employee_stats(db, current_user.organization_id, employee_id)
    return {"data": stats.model_dump(), "message": "Document statistics retrieved successfully."}


@router.get("/{document_id}")
async def get_document(
    document_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:read")),
):
    document = await DocumentService.get_document(db, current_user.organization_id, document_id)
    await enforce_vip_access(db, request, current_user, document.employee_id, AccessType.documents)
    return {"data": _out(document), "message": "Document retrieved successfully."}


@router.patch("/{document_id}")
async def update_document(
    document_id: uuid.UUID,
    body: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:write")),
):
    document = await DocumentService.update_document(
        db, current_user.organization_id, document_id, body, actor_id=current_user.id,
    )
    return {"data": _out(document), "message": "Document updated successfully."}


@router.delete("/{document_id}")
async def delete_document(
    document_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("documents:write")),
):
    await DocumentService.delete_document(
        db, current_user.organization_id, document_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Document deleted successfully."}
