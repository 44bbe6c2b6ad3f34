"""Contracts router.

Routes (mounted under /api/v1/hris/contracts):
    ""                     — List, create
    /expiring              — Active contracts ending within N days
    /{id}                  — Get, update, delete (draft only)
    /{id}/activate         — draft → active
    /{id}/terminate        — active → terminated
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import require_permission
from workforce.common.constants import ContractStatus, ContractType
from workforce.common.pagination import PaginationParams
from workforce.contracts.schemas import (
    ContractCreate,
    ContractResponse,
    ContractTerminate,
    ContractUpdate,
)
from workforce.contracts.service import ContractService
from workforce.core_hr.models import Employee
from workforce.database import get_db

router = APIRouter(prefix="", tags=["contracts"])


def _out(contract) -> dict:
    return ContractResponse.model_validate(contract).model_dump(mode="json")


@router.get("")
async def list_contracts(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:read")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[ContractStatus] = Query(None),
    contract_type: Optional[ContractType] = Query(None),
):
    result = await ContractService.list_contracts(
        db,
        current_user.organization_id,
        pagination,
        employee_id=employee_id,
        status=status.value if status else None,
        contract_type=contract_type.value if contract_type else None,
    )
    return {"data": [_out(c) for c in result.data], "meta": result.meta.model_dump()}


@router.get("/expiring")
async def get_expiring_contracts(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:read")),
):
    contracts = await ContractService.get_expiring_contracts(
        db, current_user.organization_id, days,
    )
    return {
        "data": [_out(c) for c in contracts],
        "message": f"Found {len(contracts)} contract(s) expiring within {days} days.",
    }


@router.get("/{contract_id}")
async def get_contract(
    contract_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:read")),
):
    contract = await ContractService.get_contract(db, current_user.organization_id, contract_id)
    return {"data": _out(contract), "message": "Contract retrieved successfully."}


@router.post("", status_code=201)
async def create_contract(
    body: ContractCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:write")),
):
    contract = await ContractService.create_contract(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": _out(contract), "message": "Contract created successfully."}


@router.patch("/{contract_id}")
async def update_contract(
    contract_id: uuid.UUID,
    body: ContractUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:write")),
):
    contract = await ContractService.update_contract(
        db, current_user.organization_id, contract_id, body, actor_id=current_user.id,
    )
    return {"data": _out(contract), "message": "Contract updated successfully."}


@router.post("/{contract_id}/activate")
async def activate_contract(
    contract_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:write")),
):
    contract = await ContractService.activate_contract(
        db, current_user.organization_id, contract_id, actor_id=current_user.id,
    )
    return {"data": _out(contract), "message": "Contract activated successfully."}


@router.post("/{contract_id}/terminate")
async def terminate_contract(
    contract_id: uuid.UUID,
    body: ContractTerminate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:write")),
):
    contract = await ContractService.terminate_contract(
        db, current_user.organization_id, contract_id, body, actor_id=current_user.id,
    )
    return {"data": _out(contract), "message": "Contract terminated successfully."}


@router.delete("/{contract_id}")
async def delete_contract(
    contract_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("contracts:write")),
):
    await ContractService.delete_contract(
        db, current_user.organization_id, contract_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Contract deleted successfully."}
