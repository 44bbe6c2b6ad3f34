"""Auth service — Google OAuth exchange, JWT management, session lifecycle."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import timedelta
from typing import Any, Optional

import httpx
from jose import JWTError, jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.models import RoleAssignment, UserSession
from workforce.common.constants import EmploymentStatus, UserRole
from workforce.common.dates import utcnow
from workforce.common.exceptions import ForbiddenException, NotFoundException
from workforce.config import settings
from workforce.core_hr.models import Employee, Organization

logger = logging.getLogger(__name__)

# Role priority — higher index = higher privilege
_ROLE_PRIORITY: list[UserRole] = [
    UserRole.employee,
    UserRole.manager,
    UserRole.payroll_admin,
    UserRole.hr_admin,
    UserRole.system_admin,
]


# ── Google OAuth ────────────────────────────────────────────────────

async def verify_google_token(code: str, redirect_uri: str) -> dict[str, Any]:
    """Exchange Google authorization code for user info.

    Returns dict with keys: email, name, picture, google_id.
    """
    async with httpx.AsyncClient(timeout=15) as client:
        # 1. Exchange code → tokens
        token_resp = await client.post(
            "https://oauth2.googleapis.com/token",
            data={
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "code": code,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        token_data = token_resp.json()
        if token_resp.status_code != 200 or "access_token" not in token_data:
            raise ForbiddenException(
                detail=f"Google token exchange failed: {token_data.get('error_description', 'unknown error')}",
            )

        # 2. Fetch user info
        info_resp = await client.get(
            "https://www.googleapis.com/oauth2/v2/userinfo",
            headers={"Authorization": f"Bearer {token_data['access_token']}"},
        )
        if info_resp.status_code != 200:
            raise ForbiddenException(detail="Failed to fetch Google user info.")

        info = info_resp.json()

    return {
        "email": info["email"],
        "name": info.get("name", ""),
        "picture": info.get("picture"),
        "google_id": info["id"],
    }


# ── Employee lookup ─────────────────────────────────────────────────

async def get_employee_by_email(
    db: AsyncSession,
    email: str,
    organization_slug: Optional[str] = None,
) -> Employee:
    """Return the live, non-terminated employee with *email*.

    The same address may exist in several organizations; in that case the
    caller must name the organization by slug.
    """
    query = select(Employee).where(
        func.lower(Employee.email) == email.lower(),
        Employee.deleted_at.is_(None),
        Employee.employment_status != EmploymentStatus.terminated.value,
    )
    if organization_slug:
        query = query.join(
            Organization, Organization.id == Employee.organization_id,
        ).where(Organization.slug == organization_slug, Organization.is_active.is_(True))

    matches = (await db.execute(query)).scalars().all()
    if not matches:
        raise NotFoundException(entity_type="Employee", entity_id=email)
    if len(matches) > 1:
        raise ForbiddenException(
            detail="This account belongs to several organizations; specify organization_slug.",
        )
    return matches[0]


# ── Roles ───────────────────────────────────────────────────────────

async def get_highest_role(db: AsyncSession, employee_id: uuid.UUID) -> UserRole:
    """Return the highest active role for an employee (default: employee)."""
    result = await db.execute(
        select(RoleAssignment.role).where(
            RoleAssignment.employee_id == employee_id,
            RoleAssignment.is_active.is_(True),
        ),
    )
    best = UserRole.employee
    for (role_str,) in result.all():
        try:
            role = UserRole(role_str)
        except ValueError:
            continue
        if _ROLE_PRIORITY.index(role) > _ROLE_PRIORITY.index(best):
            best = role
    return best


# ── JWT helpers ─────────────────────────────────────────────────────

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _create_access_token(employee: Employee, role: UserRole) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(employee.id),
        "org": str(employee.organization_id),
        "role": role.value,
        "type": "access",
        "exp": utcnow() + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


def _create_refresh_token(employee: Employee) -> str:
    payload = {
        "sub": str(employee.id),
        "org": str(employee.organization_id),
        "type": "refresh",
        "jti": uuid.uuid4().hex,
        "exp": utcnow() + timedelta(days=settings.REFRESH_EXPIRY_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    employee: Employee,
    role: UserRole,
    ip: Optional[str],
    user_agent: Optional[str],
) -> tuple[str, str, int]:
    """Create JWT pair and persist session.  Returns (access, refresh, expires_in)."""
    access_token, expires_in = _create_access_token(employee, role)
    refresh_token = _create_refresh_token(employee)

    session = UserSession(
        employee_id=employee.id,
        token_hash=_hash_token(access_token),
        refresh_token_hash=_hash_token(refresh_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=utcnow() + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    )
    db.add(session)
    await db.flush()

    logger.info("Session created org=%s employee=%s role=%s", employee.organization_id, employee.id, role.value)
    return access_token, refresh_token, expires_in


# ── Refresh (with token rotation + reuse detection) ─────────────────

async def refresh_access_token(
    db: AsyncSession,
    refresh_token_str: str,
) -> tuple[str, str, int]:
    """Validate refresh token, rotate it, and issue new token pair.

    Returns (new_access_token, new_refresh_token, expires_in).

    Each refresh token can only be used once. Presenting a consumed
    (revoked) refresh token revokes ALL sessions of that user.
    """
    try:
        payload = jwt.decode(
            refresh_token_str,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise ForbiddenException(detail="Invalid or expired refresh token.")

    if payload.get("type") != "refresh":
        raise ForbiddenException(detail="Invalid token type.")

    result = await db.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == _hash_token(refresh_token_str),
        ),
    )
    session = result.scalars().first()

    if session is None:
        raise ForbiddenException(detail="Invalid refresh token.")

    if session.is_revoked:
        await _revoke_all_user_sessions(db, session.employee_id)
        # Persist revocations before raising; get_db rolls back on error
        await db.commit()
        logger.warning("Refresh token reuse detected employee=%s", session.employee_id)
        raise ForbiddenException(
            detail="Refresh token reuse detected. All sessions revoked for security.",
        )

    session.is_revoked = True
    await db.flush()

    employee = await _get_active_employee(db, uuid.UUID(payload["sub"]))
    role = await get_highest_role(db, employee.id)
    access_token, new_refresh_token, expires_in = await create_session(
        db, employee, role, session.ip_address, session.user_agent,
    )
    return access_token, new_refresh_token, expires_in


# ── Revoke ──────────────────────────────────────────────────────────

async def _revoke_all_user_sessions(
    db: AsyncSession,
    employee_id: uuid.UUID,
) -> None:
    result = await db.execute(
        select(UserSession).where(
            UserSession.employee_id == employee_id,
            UserSession.is_revoked.is_(False),
        ),
    )
    for session in result.scalars().all():
        session.is_revoked = True
    await db.flush()


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


# ── Internal helpers ────────────────────────────────────────────────

async def _get_active_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
    result = await db.execute(
        select(Employee).where(
            Employee.id == employee_id,
            Employee.deleted_at.is_(None),
            Employee.employment_status != EmploymentStatus.terminated.value,
        ),
    )
    employee = result.scalars().first()
    if employee is None:
        raise NotFoundException(entity_type="Employee", entity_id=str(employee_id))
    return employee
