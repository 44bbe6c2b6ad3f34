"""Auth router — Google OAuth, token refresh, logout, current user profile."""

from __future__ import annotations

import hashlib

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import get_current_user
from workforce.auth.schemas import (
    GoogleAuthRequest,
    MeResponse,
    RefreshRequest,
    RefreshResponse,
    TokenResponse,
    UserInfo,
)
from workforce.auth.service import (
    create_session,
    get_employee_by_email,
    get_highest_role,
    refresh_access_token,
    revoke_session,
    verify_google_token,
)
from workforce.common.audit import create_audit_entry
from workforce.common.constants import PERMISSIONS, EmploymentStatus, UserRole
from workforce.common.rate_limit import AUTH_RATE_LIMIT, limiter
from workforce.core_hr.models import Employee
from workforce.database import get_db

router = APIRouter(prefix="", tags=["auth"])


# ── POST /google — Google OAuth callback ────────────────────────────

@router.post("/google", response_model=TokenResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def google_auth(
    body: GoogleAuthRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    # 1. Exchange code for Google user info
    google_info = await verify_google_token(body.code, body.redirect_uri)

    # 2. Find employee (tenant resolved from the employee row)
    employee = await get_employee_by_email(
        db, google_info["email"], body.organization_slug,
    )

    if not employee.google_id:
        employee.google_id = google_info["google_id"]
    if not employee.profile_photo_url and google_info.get("picture"):
        employee.profile_photo_url = google_info["picture"]
    await db.flush()

    # 3. Highest role + session
    role = await get_highest_role(db, employee.id)
    ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    access_token, refresh_token, expires_in = await create_session(
        db, employee, role, ip, user_agent,
    )

    # 4. Audit trail
    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=employee.id,
        organization_id=employee.organization_id,
        actor_id=employee.id,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
        user=UserInfo(
            id=employee.id,
            organization_id=employee.organization_id,
            employee_number=employee.employee_number,
            display_name=employee.full_name,
            email=employee.email,
            role=role.value,
            profile_picture_url=employee.profile_photo_url,
        ),
    )


# ── POST /refresh — Rotate token pair ──────────────────────────────

@router.post("/refresh", response_model=RefreshResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def refresh_token(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    access, refresh, expires_in = await refresh_access_token(db, body.refresh_token)
    return RefreshResponse(access_token=access, refresh_token=refresh, expires_in=expires_in)


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    token = request.headers.get("Authorization", "").removeprefix("Bearer ")
    await revoke_session(db, hashlib.sha256(token.encode()).hexdigest())

    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=employee.id,
        organization_id=employee.organization_id,
        actor_id=employee.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    return {"message": "Logged out successfully"}


# ── GET /me — Current user profile ─────────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(
    request: Request,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    role: UserRole = request.state.user_role

    result = await db.execute(
        select(func.count()).select_from(Employee).where(
            Employee.organization_id == employee.organization_id,
            Employee.manager_id == employee.id,
            Employee.deleted_at.is_(None),
            Employee.employment_status != EmploymentStatus.terminated.value,
        ),
    )
    direct_reports_count = result.scalar() or 0

    return MeResponse(
        id=employee.id,
        organization_id=employee.organization_id,
        employee_number=employee.employee_number,
        display_name=employee.full_name,
        email=employee.email,
        role=role.value,
        permissions=PERMISSIONS.get(role, []),
        profile_picture_url=employee.profile_photo_url,
        department_id=employee.department_id,
        location_id=employee.location_id,
        is_vip=employee.is_vip,
        direct_reports_count=direct_reports_count,
    )
