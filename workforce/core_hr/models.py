"""Core HR ORM models: Organization, Location, Department, Employee.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
Every table except ``organizations`` is tenant-scoped through
``TenantMixin`` and soft-deleted through ``SoftDeleteMixin``.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce.common.audit import AuditMixin
from workforce.common.dates import utcnow
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.database import Base

if TYPE_CHECKING:
    from workforce.auth.models import RoleAssignment, UserSession


# ═════════════════════════════════════════════════════════════════════
# Organization
# ═════════════════════════════════════════════════════════════════════


class Organization(Base):
    """Tenant. Every other business row belongs to exactly one."""

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    slug: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    country: Mapped[str] = mapped_column(sa.String(2), nullable=False, default="US")
    base_currency: Mapped[str] = mapped_column(
        sa.String(3), nullable=False, default="USD",
    )
    timezone: Mapped[str] = mapped_column(sa.String(50), default="UTC")
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Organization {self.slug!r}>"


# ═════════════════════════════════════════════════════════════════════
# Location
# ═════════════════════════════════════════════════════════════════════


class Location(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    """Office location / work-site."""

    __tablename__ = "locations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    location_name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    location_code: Mapped[Optional[str]] = mapped_column(sa.String(30))
    location_type: Mapped[str] = mapped_column(sa.String(30), default="branch")
    address_line1: Mapped[Optional[str]] = mapped_column(sa.String(255))
    address_line2: Mapped[Optional[str]] = mapped_column(sa.String(255))
    city: Mapped[Optional[str]] = mapped_column(sa.String(100))
    state_province: Mapped[Optional[str]] = mapped_column(sa.String(100))
    postal_code: Mapped[Optional[str]] = mapped_column(sa.String(20))
    country: Mapped[Optional[str]] = mapped_column(sa.String(2))
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))
    email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    timezone: Mapped[str] = mapped_column(sa.String(50), default="UTC")
    is_primary: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)

    # ── Relationships ───────────────────────────────────────────────
    employees: Mapped[list[Employee]] = relationship(
        back_populates="location", foreign_keys="Employee.location_id",
    )

    def __repr__(self) -> str:
        return f"<Location {self.location_name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    """Organisational department (supports hierarchy via parent_department_id)."""

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    department_name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    department_code: Mapped[Optional[str]] = mapped_column(sa.String(30))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    parent_department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("locations.id"),
    )
    cost_center: Mapped[Optional[str]] = mapped_column(sa.String(50))
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)

    # ── Relationships ───────────────────────────────────────────────
    parent_department: Mapped[Optional[Department]] = relationship(
        remote_side=[id], foreign_keys=[parent_department_id],
    )
    employees: Mapped[list[Employee]] = relationship(
        back_populates="department", foreign_keys="Employee.department_id",
    )

    def __repr__(self) -> str:
        return f"<Department {self.department_name!r} ({self.department_code})>"


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    """Core employee record — central entity for both HRIS and payroll."""

    __tablename__ = "employees"

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Identifiers ─────────────────────────────────────────────────
    employee_number: Mapped[str] = mapped_column(sa.String(30), nullable=False)

    # ── Name ────────────────────────────────────────────────────────
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(sa.String(100))
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    preferred_name: Mapped[Optional[str]] = mapped_column(sa.String(100))

    # ── Contact ─────────────────────────────────────────────────────
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))

    # ── Demographics ────────────────────────────────────────────────
    gender: Mapped[Optional[str]] = mapped_column(sa.String(20))
    date_of_birth: Mapped[Optional[date]] = mapped_column(sa.Date)
    nationality: Mapped[Optional[str]] = mapped_column(sa.String(50))

    # ── Address / Emergency ─────────────────────────────────────────
    address: Mapped[Optional[dict]] = mapped_column(JSONB)
    emergency_contact: Mapped[Optional[dict]] = mapped_column(JSONB)

    # ── Org hierarchy ───────────────────────────────────────────────
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("locations.id"),
    )
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"),
    )
    job_title: Mapped[Optional[str]] = mapped_column(sa.String(200))

    # ── Employment lifecycle ────────────────────────────────────────
    employment_type: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default="full_time",
    )
    employment_status: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default="active",
    )
    hire_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    termination_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    # ── VIP / restricted access ─────────────────────────────────────
    is_vip: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_restricted: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    restriction_level: Mapped[Optional[str]] = mapped_column(sa.String(20))
    restricted_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    restricted_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
    )
    restriction_reason: Mapped[Optional[str]] = mapped_column(sa.String(500))

    # ── Profile / external ids ──────────────────────────────────────
    profile_photo_url: Mapped[Optional[str]] = mapped_column(sa.Text)
    google_id: Mapped[Optional[str]] = mapped_column(sa.String(255))

    # ── Relationships ───────────────────────────────────────────────
    department: Mapped[Optional[Department]] = relationship(
        back_populates="employees", foreign_keys=[department_id],
    )
    location: Mapped[Optional[Location]] = relationship(
        back_populates="employees", foreign_keys=[location_id],
    )
    manager: Mapped[Optional[Employee]] = relationship(
        remote_side=[id], foreign_keys=[manager_id],
    )

    # Auth
    sessions: Mapped[list["UserSession"]] = relationship(
        back_populates="employee",
    )
    role_assignments: Mapped[list["RoleAssignment"]] = relationship(
        back_populates="employee",
        foreign_keys="RoleAssignment.employee_id",
    )

    __table_args__ = (
        sa.Index(
            "uq_employees_org_email", "organization_id", "email",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
        sa.Index(
            "uq_employees_org_number", "organization_id", "employee_number",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
    )

    # ── Helpers ─────────────────────────────────────────────────────

    @property
    def full_name(self) -> str:
        """Build display name from name parts."""
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None and self.employment_status != "terminated"

    def __repr__(self) -> str:
        return (
            f"<Employee {self.employee_number} "
            f"{self.first_name} {self.last_name}>"
        )
