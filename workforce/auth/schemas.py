"""Auth Pydantic schemas for request / response validation."""


import uuid
from typing import Optional

from pydantic import BaseModel


# ── Requests ────────────────────────────────────────────────────────

class GoogleAuthRequest(BaseModel):
    code: str
    redirect_uri: str
    organization_slug: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


# ── Embedded / Shared ──────────────────────────────────────────────

class UserInfo(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    employee_number: str
    display_name: str
    email: str
    role: str
    profile_picture_url: Optional[str] = None


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class RefreshResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    employee_number: str
    display_name: str
    email: str
    role: str
    permissions: list[str]
    profile_picture_url: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    is_vip: bool = False
    direct_reports_count: int
