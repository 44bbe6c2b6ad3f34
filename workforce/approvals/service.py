"""Approval workflow service.

Operations that need sign-off (large conversions, exchange-rate jumps,
bulk imports, configuration changes) ask ``create_approval_request``; when
an enabled rule matches, a pending request is opened under the top
priority rule and the operation waits for it.

Modules that own the referenced entity register a handler per
``reference_type``; it is awaited when a request is approved, rejected
or expires so the entity can be activated or discarded.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Optional, Sequence

from sqlalchemy import case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.approvals.models import ApprovalAction, ApprovalRequest, ApprovalRule
from workforce.approvals.schemas import (
    ApprovalActionResponse,
    ApprovalRequestCreate,
    ApprovalRequestDetail,
    ApprovalRequestResponse,
    ApprovalRuleCreate,
    ApprovalRuleUpdate,
    check_conditions,
)
from workforce.auth.dependencies import role_includes
from workforce.common.audit import create_audit_entry
from workforce.common.constants import (
    ApprovalRequestType,
    ApprovalRuleType,
    ApprovalStatus,
)
from workforce.common.crud import (
    apply_changes,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import ensure_utc, utcnow
from workforce.common.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    ValidationException,
)
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.config import settings
from workforce.core_hr.models import Employee

logger = logging.getLogger(__name__)

ApprovalHandler = Callable[[AsyncSession, ApprovalRequest, bool, Optional[uuid.UUID]], Awaitable[None]]

_HANDLERS: dict[str, ApprovalHandler] = {}

# rule_type → the request type it governs
_RULE_REQUEST_TYPES = {
    ApprovalRuleType.conversion_threshold.value: ApprovalRequestType.conversion.value,
    ApprovalRuleType.rate_variance.value: ApprovalRequestType.rate_change.value,
    ApprovalRuleType.bulk_operation.value: ApprovalRequestType.bulk_rate_import.value,
    ApprovalRuleType.configuration_change.value: ApprovalRequestType.configuration_change.value,
}

_PRIORITY_RANK = {"urgent": 3, "high": 2, "normal": 1, "low": 0}


def register_handler(reference_type: str) -> Callable[[ApprovalHandler], ApprovalHandler]:
    """Decorator: call the wrapped coroutine when a request on *reference_type* resolves.

    The handler receives ``(db, request, approved, actor_id)``.
    """

    def decorator(func: ApprovalHandler) -> ApprovalHandler:
        _HANDLERS[reference_type] = func
        return func

    return decorator


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")


def rule_matches(rule: ApprovalRule, request_type: str, data: dict[str, Any]) -> bool:
    """True when *rule* governs a request of *request_type* carrying *data*."""
    if _RULE_REQUEST_TYPES.get(rule.rule_type) != request_type:
        return False
    conditions = rule.conditions or {}

    if rule.rule_type == ApprovalRuleType.conversion_threshold.value:
        threshold = conditions.get("threshold_amount")
        if threshold is None:
            return False
        if _decimal(data.get("amount")) < _decimal(threshold):
            return False
        currencies = [c.upper() for c in conditions.get("currencies") or []]
        return (
            not currencies
            or str(data.get("from_currency", "")).upper() in currencies
            or str(data.get("to_currency", "")).upper() in currencies
        )

    if rule.rule_type == ApprovalRuleType.rate_variance.value:
        old_rate = _decimal(data.get("old_rate"))
        if old_rate == 0:
            return False
        threshold = conditions.get("variance_percentage")
        if threshold is None:
            return False
        variance = abs((_decimal(data.get("new_rate")) - old_rate) / old_rate) * 100
        return variance >= _decimal(threshold)

    return True


# ═════════════════════════════════════════════════════════════════════
# ApprovalService
# ═════════════════════════════════════════════════════════════════════


class ApprovalService:

    # ── Rules ───────────────────────────────────────────────────────

    @staticmethod
    async def list_rules(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        rule_type: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> PaginatedResponse:
        query = scoped_select(ApprovalRule, organization_id)
        query = apply_filters(query, ApprovalRule, {"rule_type": rule_type, "enabled": enabled})
        query = query.order_by(ApprovalRule.priority.desc(), ApprovalRule.created_at)
        return await paginate(db, query, pagination, model=ApprovalRule)

    @staticmethod
    async def get_rule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_id: uuid.UUID,
    ) -> ApprovalRule:
        return await get_scoped_or_404(db, ApprovalRule, rule_id, organization_id, "ApprovalRule")

    @staticmethod
    async def create_rule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: ApprovalRuleCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ApprovalRule:
        values = to_json(data.model_dump())
        rule = ApprovalRule(
            **data.model_dump(exclude={"approver_user_ids"}),
            approver_user_ids=values["approver_user_ids"],
            organization_id=organization_id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(rule)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="approval_rule",
            entity_id=rule.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=values,
        )
        logger.info(
            "Approval rule created org=%s rule=%s type=%s",
            organization_id, rule.id, rule.rule_type,
        )
        return rule

    @staticmethod
    async def update_rule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_id: uuid.UUID,
        data: ApprovalRuleUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ApprovalRule:
        rule = await ApprovalService.get_rule(db, organization_id, rule_id)
        changes = to_json(data.model_dump(exclude_unset=True))
        if not changes:
            return rule
        for required in ("name", "conditions", "required_approvals", "approver_user_ids", "priority", "enabled"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        if "conditions" in changes:
            try:
                check_conditions(rule.rule_type, changes["conditions"])
            except ValueError as exc:
                raise ValidationException.for_field("conditions", str(exc))
        approvers = changes.get("approver_user_ids", rule.approver_user_ids) or []
        role = changes.get("approver_role", rule.approver_role)
        if not approvers and role is None:
            raise ValidationException.for_field(
                "approver_user_ids", "Either approver_user_ids or approver_role is required.",
            )
        required_count = changes.get("required_approvals", rule.required_approvals)
        if approvers and len(approvers) < required_count:
            raise ValidationException.for_field(
                "required_approvals", "required_approvals cannot exceed the number of approvers.",
            )

        old_values = apply_changes(rule, changes, actor_id=actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="approval_rule",
            entity_id=rule.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        logger.info("Approval rule updated org=%s rule=%s", organization_id, rule.id)
        return rule

    @staticmethod
    async def delete_rule(
        db: AsyncSession,
        organization_id: uuid.UUID,
        rule_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        rule = await ApprovalService.get_rule(db, organization_id, rule_id)
        rule.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="approval_rule",
            entity_id=rule.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Approval rule deleted org=%s rule=%s", organization_id, rule.id)

    @staticmethod
    async def get_applicable_rules(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_type: str,
        data: dict[str, Any],
    ) -> list[ApprovalRule]:
        """Enabled rules matching the request, highest priority first."""
        result = await db.execute(
            scoped_select(ApprovalRule, organization_id)
            .where(ApprovalRule.enabled.is_(True))
            .order_by(ApprovalRule.priority.desc(), ApprovalRule.created_at),
        )
        return [r for r in result.scalars().all() if rule_matches(r, request_type, data)]

    # ── Requests ────────────────────────────────────────────────────

    @staticmethod
    async def create_approval_request(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: ApprovalRequestCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Optional[ApprovalRequest]:
        """Open a pending request, or return ``None`` when no rule requires one."""
        request_data = to_json(data.request_data)
        rules = await ApprovalService.get_applicable_rules(
            db, organization_id, data.request_type, request_data,
        )
        if not rules:
            logger.debug(
                "No approval required org=%s type=%s", organization_id, data.request_type,
            )
            return None

        rule = rules[0]
        hours = rule.expiration_hours or settings.APPROVAL_DEFAULT_EXPIRY_HOURS
        expires_at = utcnow() + timedelta(hours=hours)
        request = ApprovalRequest(
            organization_id=organization_id,
            approval_rule_id=rule.id,
            request_type=data.request_type,
            reference_type=data.reference_type,
            reference_id=data.reference_id,
            request_data=request_data,
            reason=data.reason,
            priority=data.priority,
            status=ApprovalStatus.pending.value,
            required_approvals=rule.required_approvals,
            current_approvals=0,
            expires_at=expires_at,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(request)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="approval_request",
            entity_id=request.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values={
                "request_type": request.request_type,
                "rule_id": str(rule.id),
                "reference_type": request.reference_type,
                "reference_id": str(request.reference_id) if request.reference_id else None,
            },
        )
        logger.info(
            "Approval request created org=%s request=%s type=%s rule=%s required=%d",
            organization_id, request.id, request.request_type, rule.id, request.required_approvals,
        )
        return request

    @staticmethod
    async def get_request(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> ApprovalRequest:
        return await get_scoped_or_404(db, ApprovalRequest, request_id, organization_id, "ApprovalRequest")

    @staticmethod
    async def get_actions(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> Sequence[ApprovalAction]:
        result = await db.execute(
            scoped_select(ApprovalAction, organization_id)
            .where(ApprovalAction.approval_request_id == request_id)
            .order_by(ApprovalAction.created_at),
        )
        return result.scalars().all()

    @staticmethod
    async def get_request_detail(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> ApprovalRequestDetail:
        request = await ApprovalService.get_request(db, organization_id, request_id)
        return await ApprovalService._detail(db, organization_id, request)

    @staticmethod
    async def _detail(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request: ApprovalRequest,
    ) -> ApprovalRequestDetail:
        actions = await ApprovalService.get_actions(db, organization_id, request.id)
        return ApprovalRequestDetail(
            **ApprovalRequestResponse.model_validate(request).model_dump(),
            actions=[ApprovalActionResponse.model_validate(a) for a in actions],
        )

    @staticmethod
    async def list_pending(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        request_type: Optional[str] = None,
    ) -> PaginatedResponse:
        """Pending requests, most urgent first, then oldest first."""
        rank = case(_PRIORITY_RANK, value=ApprovalRequest.priority, else_=1)
        query = scoped_select(ApprovalRequest, organization_id).where(
            ApprovalRequest.status == ApprovalStatus.pending.value,
            or_(ApprovalRequest.expires_at.is_(None), ApprovalRequest.expires_at > utcnow()),
        )
        query = apply_filters(query, ApprovalRequest, {"request_type": request_type})
        query = query.order_by(rank.desc(), ApprovalRequest.created_at)
        return await paginate(db, query, pagination, model=ApprovalRequest)

    @staticmethod
    async def get_history(
        db: AsyncSession,
        organization_id: uuid.UUID,
        reference_type: str,
        reference_id: uuid.UUID,
    ) -> list[ApprovalRequestDetail]:
        result = await db.execute(
            scoped_select(ApprovalRequest, organization_id)
            .where(
                ApprovalRequest.reference_type == reference_type,
                ApprovalRequest.reference_id == reference_id,
            )
            .order_by(ApprovalRequest.created_at.desc()),
        )
        return [
            await ApprovalService._detail(db, organization_id, r)
            for r in result.scalars().all()
        ]

    # ── Decisions ───────────────────────────────────────────────────

    @staticmethod
    async def can_user_approve(
        db: AsyncSession,
        request: ApprovalRequest,
        user: Employee,
        role: str,
    ) -> bool:
        if request.created_by == user.id:
            return False
        rule = None
        if request.approval_rule_id is not None:
            rule = await db.get(ApprovalRule, request.approval_rule_id)
        if rule is None:
            return False
        if rule.approver_user_ids:
            return str(user.id) in {str(u) for u in rule.approver_user_ids}
        if rule.approver_role:
            return role_includes(role, rule.approver_role)
        return False

    @staticmethod
    async def _load_pending(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_id: uuid.UUID,
        user: Employee,
        role: str,
    ) -> ApprovalRequest:
        request = await ApprovalService.get_request(db, organization_id, request_id)
        if request.status != ApprovalStatus.pending.value:
            raise BusinessRuleException(f"Approval request is already {request.status}.")
        if request.expires_at is not None and ensure_utc(request.expires_at) <= utcnow():
            await ApprovalService._expire(db, organization_id, request, None)
            # Persist the expiry before raising; get_db rolls back on error
            await db.commit()
            raise BusinessRuleException("Approval request has expired.")
        if request.created_by == user.id:
            raise ForbiddenException(detail="You cannot act on your own approval request.")
        if not await ApprovalService.can_user_approve(db, request, user, role):
            raise ForbiddenException(detail="You are not an approver for this request.")

        voted = await db.execute(
            select(ApprovalAction.id).where(
                ApprovalAction.approval_request_id == request.id,
                ApprovalAction.actor_id == user.id,
            ),
        )
        if voted.first() is not None:
            raise BusinessRuleException("You have already acted on this request.")
        return request

    @staticmethod
    async def _resolve(
        db: AsyncSession,
        request: ApprovalRequest,
        status: str,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        request.status = status
        request.resolved_at = utcnow()
        request.resolved_by = actor_id
        request.updated_by = actor_id
        await db.flush()

        handler = _HANDLERS.get(request.reference_type or "")
        if handler is not None:
            await handler(db, request, status == ApprovalStatus.approved.value, actor_id)

    @staticmethod
    async def _expire(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request: ApprovalRequest,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        await ApprovalService._resolve(db, request, ApprovalStatus.expired.value, actor_id)
        await create_audit_entry(
            db,
            action="expire",
            entity_type="approval_request",
            entity_id=request.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values={"status": ApprovalStatus.expired.value},
        )
        logger.info("Approval request expired org=%s request=%s", organization_id, request.id)

    @staticmethod
    async def approve_request(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_id: uuid.UUID,
        user: Employee,
        role: str,
        comments: Optional[str] = None,
    ) -> ApprovalRequest:
        request = await ApprovalService._load_pending(db, organization_id, request_id, user, role)

        db.add(ApprovalAction(
            organization_id=organization_id,
            approval_request_id=request.id,
            action="approved",
            comments=comments,
            actor_id=user.id,
        ))
        request.current_approvals += 1
        request.updated_by = user.id
        await db.flush()

        if request.current_approvals >= request.required_approvals:
            await ApprovalService._resolve(db, request, ApprovalStatus.approved.value, user.id)

        await create_audit_entry(
            db,
            action="approve",
            entity_type="approval_request",
            entity_id=request.id,
            organization_id=organization_id,
            actor_id=user.id,
            new_values={"status": request.status, "current_approvals": request.current_approvals},
        )
        logger.info(
            "Approval vote org=%s request=%s by=%s approvals=%d/%d status=%s",
            organization_id, request.id, user.id,
            request.current_approvals, request.required_approvals, request.status,
        )
        return request

    @staticmethod
    async def reject_request(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_id: uuid.UUID,
        user: Employee,
        role: str,
        reason: str,
    ) -> ApprovalRequest:
        request = await ApprovalService._load_pending(db, organization_id, request_id, user, role)

        db.add(ApprovalAction(
            organization_id=organization_id,
            approval_request_id=request.id,
            action="rejected",
            comments=reason,
            actor_id=user.id,
        ))
        request.rejection_reason = reason
        await ApprovalService._resolve(db, request, ApprovalStatus.rejected.value, user.id)

        await create_audit_entry(
            db,
            action="reject",
            entity_type="approval_request",
            entity_id=request.id,
            organization_id=organization_id,
            actor_id=user.id,
            new_values={"status": request.status, "reason": reason},
        )
        logger.info("Approval request rejected org=%s request=%s by=%s", organization_id, request.id, user.id)
        return request

    @staticmethod
    async def expire_overdue(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Mark pending requests past ``expires_at`` as expired; return how many."""
        result = await db.execute(
            scoped_select(ApprovalRequest, organization_id).where(
                ApprovalRequest.status == ApprovalStatus.pending.value,
                ApprovalRequest.expires_at.is_not(None),
                ApprovalRequest.expires_at <= utcnow(),
            ),
        )
        overdue = result.scalars().all()
        for request in overdue:
            await ApprovalService._expire(db, organization_id, request, actor_id)
        logger.info("Expired %d approval request(s) org=%s", len(overdue), organization_id)
        return len(overdue)
