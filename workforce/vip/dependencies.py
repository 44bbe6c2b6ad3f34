"""Route dependency enforcing VIP / restricted-employee access."""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import get_current_user
from workforce.common.constants import AccessType
from workforce.common.exceptions import ForbiddenException
from workforce.core_hr.models import Employee
from workforce.database import get_db
from workforce.vip.service import AccessContext, VIPService


async def enforce_vip_access(
    db: AsyncSession,
    request: Request,
    user: Employee,
    employee_id: uuid.UUID,
    access_type: AccessType,
) -> None:
    """Raise 403 unless *user* may access *access_type* data of *employee_id*.

    Used directly by routes that only learn the employee id after loading
    a row (a document, a review, a paycheck).
    """
    decision = await VIPService.check_access(
        db,
        user.organization_id,
        employee_id,
        user,
        request.state.user_role,
        access_type.value,
        AccessContext(
            endpoint=request.url.path,
            method=request.method,
            ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        ),
    )
    if not decision.granted:
        # Persist the denial log row before raising; get_db rolls back on error
        await db.commit()
        raise ForbiddenException(detail=decision.reason)


def require_vip_access(access_type: AccessType = AccessType.general) -> Callable:
    """Return a dependency that checks access to the ``{employee_id}`` path param.

    Denied decisions raise 403 with the decision reason.
    """

    async def _check(
        employee_id: uuid.UUID,
        request: Request,
        db: AsyncSession = Depends(get_db),
        user: Employee = Depends(get_current_user),
    ) -> Employee:
        await enforce_vip_access(db, request, user, employee_id, access_type)
        return user

    return _check
