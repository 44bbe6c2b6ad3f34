"""Contract service — lifecycle draft → active → expired / terminated."""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import ContractStatus, ContractType
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    ensure_unique,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import today, utcnow
from workforce.common.exceptions import BusinessRuleException, ValidationException
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.contracts.models import Contract
from workforce.contracts.schemas import ContractCreate, ContractTerminate, ContractUpdate
from workforce.core_hr.models import Employee

logger = logging.getLogger(__name__)


class ContractService:

    @staticmethod
    async def list_contracts(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        contract_type: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(Contract, organization_id)
        query = apply_filters(query, Contract, {
            "employee_id": employee_id,
            "status": status,
            "contract_type": contract_type,
        })
        query = query.order_by(Contract.start_date.desc())
        return await paginate(db, query, pagination, model=Contract)

    @staticmethod
    async def get_contract(
        db: AsyncSession,
        organization_id: uuid.UUID,
        contract_id: uuid.UUID,
    ) -> Contract:
        return await get_scoped_or_404(db, Contract, contract_id, organization_id, "Contract")

    @staticmethod
    async def create_contract(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: ContractCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Contract:
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")
        await ensure_unique(db, Contract, organization_id, "contract_number", data.contract_number)

        contract = Contract(
            **data.model_dump(),
            organization_id=organization_id,
            status=ContractStatus.draft.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(contract)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="contract",
            entity_id=contract.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Contract created org=%s contract=%s employee=%s",
            organization_id, contract.id, contract.employee_id,
        )
        return contract

    @staticmethod
    async def update_contract(
        db: AsyncSession,
        organization_id: uuid.UUID,
        contract_id: uuid.UUID,
        data: ContractUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Contract:
        contract = await get_scoped_or_404(db, Contract, contract_id, organization_id, "Contract")
        if contract.status == ContractStatus.terminated.value:
            raise BusinessRuleException("A terminated contract cannot be modified.")

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return contract
        for required in ("contract_type", "start_date"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        start = changes.get("start_date", contract.start_date)
        end = changes.get("end_date", contract.end_date)
        if end is not None and end < start:
            raise ValidationException.for_field("end_date", "end_date must be on or after start_date.")
        if changes.get("contract_type", contract.contract_type) == ContractType.fixed_term.value and end is None:
            raise ValidationException.for_field("end_date", "end_date is required for fixed_term contracts.")

        old_values = apply_changes(contract, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="contract",
            entity_id=contract.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info("Contract updated org=%s contract=%s", organization_id, contract.id)
        return contract

    @staticmethod
    async def activate_contract(
        db: AsyncSession,
        organization_id: uuid.UUID,
        contract_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Contract:
        """Activate a draft; the employee's other active contracts expire."""
        contract = await get_scoped_or_404(db, Contract, contract_id, organization_id, "Contract")
        if contract.status != ContractStatus.draft.value:
            raise BusinessRuleException(
                f"Only draft contracts can be activated (current status: {contract.status}).",
            )

        await db.execute(
            update(Contract)
            .where(
                Contract.organization_id == organization_id,
                Contract.employee_id == contract.employee_id,
                Contract.status == ContractStatus.active.value,
                Contract.id != contract.id,
                Contract.deleted_at.is_(None),
            )
            .values(status=ContractStatus.expired.value, updated_at=utcnow(), updated_by=actor_id)
            .execution_options(synchronize_session="fetch"),
        )
        contract.status = ContractStatus.active.value
        contract.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="activate",
            entity_type="contract",
            entity_id=contract.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values={"status": contract.status},
        )
        logger.info("Contract activated org=%s contract=%s", organization_id, contract.id)
        return contract

    @staticmethod
    async def terminate_contract(
        db: AsyncSession,
        organization_id: uuid.UUID,
        contract_id: uuid.UUID,
        data: ContractTerminate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Contract:
        contract = await get_scoped_or_404(db, Contract, contract_id, organization_id, "Contract")
        if contract.status != ContractStatus.active.value:
            raise BusinessRuleException(
                f"Only active contracts can be terminated (current status: {contract.status}).",
            )
        if data.termination_date < contract.start_date:
            raise ValidationException.for_field(
                "termination_date", "termination_date cannot be before the contract start date.",
            )

        contract.status = ContractStatus.terminated.value
        contract.termination_date = data.termination_date
        contract.termination_reason = data.termination_reason
        contract.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="terminate",
            entity_type="contract",
            entity_id=contract.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info("Contract terminated org=%s contract=%s", organization_id, contract.id)
        return contract

    @staticmethod
    async def delete_contract(
        db: AsyncSession,
        organization_id: uuid.UUID,
        contract_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        contract = await get_scoped_or_404(db, Contract, contract_id, organization_id, "Contract")
        if contract.status != ContractStatus.draft.value:
            raise BusinessRuleException("Only draft contracts can be deleted.")
        contract.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="contract",
            entity_id=contract.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Contract deleted org=%s contract=%s", organization_id, contract.id)

    @staticmethod
    async def get_expiring_contracts(
        db: AsyncSession,
        organization_id: uuid.UUID,
        days: int = 30,
    ) -> Sequence[Contract]:
        """Active contracts whose end date falls within the next *days* days."""
        start = today()
        result = await db.execute(
            scoped_select(Contract, organization_id)
            .where(
                Contract.status == ContractStatus.active.value,
                Contract.end_date.is_not(None),
                Contract.end_date >= start,
                Contract.end_date <= start + timedelta(days=days),
            )
            .order_by(Contract.end_date),
        )
        return result.scalars().all()
