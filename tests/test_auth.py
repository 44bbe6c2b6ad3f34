"""Auth module test suite — OAuth, JWT, sessions, tenant claims, RBAC."""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from fastapi import Depends
from jose import jwt
from sqlalchemy import select

from workforce.auth.dependencies import has_permission, require_role, role_includes
from workforce.auth.models import RoleAssignment, UserSession
from workforce.common.constants import PERMISSIONS, UserRole
from workforce.config import settings
from tests.conftest import (
    TestSessionFactory,
    create_access_token,
    create_employee,
    create_refresh_token,
)

_CALLBACK = "http://localhost:3000/callback"


async def _login(client, **extra):
    return await client.post(
        "/api/v1/auth/google",
        json={"code": "valid-auth-code", "redirect_uri": _CALLBACK, **extra},
    )


# ── Google OAuth ────────────────────────────────────────────────────


async def test_google_oauth_known_employee(client, test_employee, mock_google_oauth):
    """Known employee email → 200 with access + refresh tokens."""
    with mock_google_oauth(email=test_employee["email"]):
        resp = await _login(client)
    assert resp.status_code == 200
    data = resp.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == test_employee["email"]
    assert data["user"]["organization_id"] == str(test_employee["organization_id"])


async def test_google_oauth_unknown_email(client, test_employee, mock_google_oauth):
    """No employee with that address → 404."""
    with mock_google_oauth(email="outsider@gmail.com"):
        resp = await _login(client)
    assert resp.status_code == 404


async def test_google_oauth_invalid_code(client):
    """Google rejects the authorization code → 403."""
    from workforce.common.exceptions import ForbiddenException

    with patch(
        "workforce.auth.router.verify_google_token",
        new_callable=AsyncMock,
        side_effect=ForbiddenException(detail="Google token exchange failed: invalid_grant"),
    ):
        resp = await _login(client)
    assert resp.status_code == 403


async def test_google_oauth_terminated_employee_rejected(
    client, db, test_employee, mock_google_oauth,
):
    await create_employee(
        db,
        organization_id=test_employee["organization_id"],
        email="gone@acme.example",
        employment_status="terminated",
    )
    with mock_google_oauth(email="gone@acme.example"):
        resp = await _login(client)
    assert resp.status_code == 404


async def test_google_oauth_email_in_two_orgs_needs_slug(
    client, db, test_employee, other_organization, mock_google_oauth,
):
    """The same address in two tenants is ambiguous without a slug."""
    await create_employee(
        db, organization_id=other_organization["id"], email=test_employee["email"],
    )
    with mock_google_oauth(email=test_employee["email"]):
        ambiguous = await _login(client)
        resolved = await _login(client, organization_slug="globex")
    assert ambiguous.status_code == 403
    assert resolved.status_code == 200
    assert resolved.json()["user"]["organization_id"] == str(other_organization["id"])


# ── JWT tokens ──────────────────────────────────────────────────────


async def test_jwt_generation_has_correct_claims(client, test_employee, mock_google_oauth):
    """Access token JWT contains sub, org, role, type, exp claims."""
    with mock_google_oauth(email=test_employee["email"]):
        resp = await _login(client)
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert payload["sub"] == str(test_employee["id"])
    assert payload["org"] == str(test_employee["organization_id"])
    assert payload["role"] == UserRole.employee.value
    assert payload["type"] == "access"
    assert "exp" in payload


async def test_jwt_expiry_check(client, test_employee):
    """Expired access token → 401 on /me."""
    expired_token = create_access_token(
        test_employee["id"], test_employee["organization_id"], expired=True,
    )

    # Persist a session row so the only rejection reason is expiry
    async with TestSessionFactory() as session:
        session.add(UserSession(
            id=uuid.uuid4(),
            employee_id=test_employee["id"],
            token_hash=hashlib.sha256(expired_token.encode()).hexdigest(),
            expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
            is_revoked=False,
            created_at=datetime.now(timezone.utc),
        ))
        await session.commit()

    resp = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {expired_token}"},
    )
    assert resp.status_code == 401


async def test_token_without_session_rejected(client, test_employee):
    token = create_access_token(test_employee["id"], test_employee["organization_id"])
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


async def test_missing_authorization_header(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401


async def test_refresh_token_rejected_as_access(client, test_employee):
    token = create_refresh_token(test_employee["id"], test_employee["organization_id"])
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ── Refresh ─────────────────────────────────────────────────────────


async def test_refresh_token_rotates_pair(client, test_employee, mock_google_oauth):
    """Refresh from a real login → new pair; reusing the old one is rejected."""
    with mock_google_oauth(email=test_employee["email"]):
        login = await _login(client)
    refresh = login.json()["refresh_token"]

    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 200
    data = resp.json()
    assert "access_token" in data
    assert data["refresh_token"] != refresh
    assert data["expires_in"] == settings.JWT_EXPIRY_HOURS * 3600

    reuse = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert reuse.status_code == 403
    assert "reuse" in reuse.json()["detail"].lower()

    # Reuse detection revoked every session, including the rotated one
    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"},
    )
    assert me.status_code == 401


async def test_refresh_unknown_token(client, test_employee):
    """A well-formed refresh token with no session → 403."""
    refresh = create_refresh_token(test_employee["id"], test_employee["organization_id"])
    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 403


async def test_refresh_expired_token(client, test_employee):
    """Expired refresh token → 403."""
    expired_refresh = create_refresh_token(
        test_employee["id"], test_employee["organization_id"], expired=True,
    )
    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": expired_refresh})
    assert resp.status_code == 403


# ── Logout ──────────────────────────────────────────────────────────


async def test_logout_revokes_session(client, auth_headers):
    """POST /logout revokes the session; subsequent /me returns 401."""
    resp = await client.post("/api/v1/auth/logout", headers=auth_headers)
    assert resp.status_code == 200

    resp2 = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert resp2.status_code == 401


# ── GET /me ─────────────────────────────────────────────────────────


async def test_get_me_returns_current_user(client, test_employee, auth_headers):
    """Authenticated /me returns user profile + permissions."""
    resp = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["email"] == test_employee["email"]
    assert data["display_name"] == f"{test_employee['first_name']} {test_employee['last_name']}"
    assert data["role"] == UserRole.employee.value
    assert set(data["permissions"]) == set(PERMISSIONS[UserRole.employee])
    assert data["direct_reports_count"] == 0


async def test_get_me_counts_direct_reports(client, other_employee, auth_headers):
    resp = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert resp.json()["direct_reports_count"] == 1


# ── RBAC / Roles ────────────────────────────────────────────────────


def test_permission_matrix():
    assert has_permission(UserRole.payroll_admin, "payroll:approve")
    assert not has_permission(UserRole.hr_admin, "payroll:read")
    assert not has_permission(UserRole.employee, "employees:read")
    assert has_permission(UserRole.system_admin, "payroll:approve")
    assert has_permission(UserRole.system_admin, "vip:manage")
    assert not has_permission("not-a-role", "profile:read_own")


def test_role_hierarchy():
    assert role_includes(UserRole.system_admin, UserRole.payroll_admin)
    assert role_includes(UserRole.hr_admin, UserRole.manager)
    assert not role_includes(UserRole.manager, UserRole.hr_admin)
    assert not role_includes(UserRole.payroll_admin, UserRole.manager)


_depends_hr_admin = Depends(require_role(UserRole.hr_admin))


async def test_role_requirement_blocks_low_role(client, auth_headers, hr_headers):
    """Employee role is refused by an hr_admin-only route; hr_admin passes."""

    @client._transport.app.get("/api/v1/test-hr-only")  # type: ignore[union-attr]
    async def _hr_only(emp=_depends_hr_admin):
        return {"ok": True}

    resp = await client.get("/api/v1/test-hr-only", headers=auth_headers)
    assert resp.status_code == 403
    resp = await client.get("/api/v1/test-hr-only", headers=hr_headers)
    assert resp.status_code == 200


async def test_multiple_roles_highest_used(client, db, test_employee, mock_google_oauth):
    """User with manager + payroll_admin roles → logs in as payroll_admin."""
    for role in (UserRole.manager, UserRole.payroll_admin):
        db.add(RoleAssignment(
            id=uuid.uuid4(),
            organization_id=test_employee["organization_id"],
            employee_id=test_employee["id"],
            role=role.value,
            is_active=True,
            assigned_at=datetime.now(timezone.utc),
        ))
    await db.commit()

    with mock_google_oauth(email=test_employee["email"]):
        resp = await _login(client)
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == UserRole.payroll_admin.value


# ── Session management ──────────────────────────────────────────────


async def test_login_writes_session_and_audit(client, test_employee, mock_google_oauth):
    from workforce.common.audit import AuditTrail

    with mock_google_oauth(email=test_employee["email"]):
        resp = await _login(client)
    assert resp.status_code == 200

    async with TestSessionFactory() as session:
        sessions = (await session.execute(
            select(UserSession).where(UserSession.employee_id == test_employee["id"]),
        )).scalars().all()
        audit = (await session.execute(
            select(AuditTrail).where(AuditTrail.action == "login"),
        )).scalars().all()
    assert len(sessions) == 1
    assert sessions[0].refresh_token_hash is not None
    assert len(audit) == 1
    assert audit[0].organization_id == test_employee["organization_id"]


async def test_concurrent_sessions_allowed(client, test_employee, mock_google_oauth):
    """Same user can have multiple active sessions simultaneously."""
    tokens = []
    for _ in range(2):
        with mock_google_oauth(email=test_employee["email"]):
            resp = await _login(client)
        assert resp.status_code == 200
        tokens.append(resp.json()["access_token"])

    for token in tokens:
        resp = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 200
        assert resp.json()["email"] == test_employee["email"]
