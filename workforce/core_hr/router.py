"""Core HR router — Employee, Department, Location API endpoints.

Routes (mounted under /api/v1/hris):
    /employees                      — List, create employees
    /employees/search               — Typeahead search
    /employees/by-email/{email}     — Lookup by email
    /employees/by-number/{number}   — Lookup by employee number
    /employees/{id}                 — Get (VIP-checked), update, delete
    /employees/{id}/direct-reports  — Manager's direct reports
    /departments                    — List, create departments
    /departments/{id}               — Get, update, delete
    /locations                      — List, create locations
    /locations/primary              — Primary location
    /locations/stats                — Headcount per location
    /locations/by-code/{code}       — Lookup by code
    /locations/{id}                 — Get, update, delete
    /locations/{id}/primary         — Make primary
    /locations/{id}/stats           — Headcount for one location
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.auth.dependencies import has_permission, require_permission
from workforce.common.constants import AccessType, EmploymentStatus, EmploymentType
from workforce.common.exceptions import ForbiddenException
from workforce.common.pagination import PaginationParams
from workforce.core_hr.models import Employee
from workforce.core_hr.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeSummary,
    EmployeeUpdate,
    LocationCreate,
    LocationResponse,
    LocationUpdate,
)
from workforce.core_hr.service import DepartmentService, EmployeeService, LocationService
from workforce.database import get_db
from workforce.vip.dependencies import require_vip_access


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])
locations_router = APIRouter(prefix="", tags=["locations"])


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /employees — List employees ─────────────────────────────────

@employees_router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:read")),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee number"),
    department_id: Optional[uuid.UUID] = Query(None),
    location_id: Optional[uuid.UUID] = Query(None),
    manager_id: Optional[uuid.UUID] = Query(None),
    employment_status: Optional[EmploymentStatus] = Query(None),
    employment_type: Optional[EmploymentType] = Query(None),
    hire_date_from: Optional[date] = Query(None),
    hire_date_to: Optional[date] = Query(None),
):
    """List employees with pagination, search, and filtering."""
    result = await EmployeeService.list_employees(
        db,
        current_user.organization_id,
        pagination,
        search=search,
        department_id=department_id,
        location_id=location_id,
        manager_id=manager_id,
        employment_status=employment_status.value if employment_status else None,
        employment_type=employment_type.value if employment_type else None,
        hire_date_from=hire_date_from,
        hire_date_to=hire_date_to,
    )
    return {
        "data": [EmployeeSummary.model_validate(e).model_dump(mode="json") for e in result.data],
        "meta": result.meta.model_dump(),
    }


# ── Lookups (defined before /{employee_id}) ─────────────────────────

@employees_router.get("/search")
async def search_employees(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:read")),
):
    employees = await EmployeeService.search_employees(
        db, current_user.organization_id, q, limit=limit,
    )
    return {
        "data": [EmployeeSummary.model_validate(e).model_dump(mode="json") for e in employees],
        "message": f"Found {len(employees)} employee(s).",
    }


@employees_router.get("/by-email/{email}")
async def get_employee_by_email(
    email: str,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:read")),
):
    employee = await EmployeeService.get_employee_by_email(db, current_user.organization_id, email)
    return {
        "data": EmployeeSummary.model_validate(employee).model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


@employees_router.get("/by-number/{employee_number}")
async def get_employee_by_number(
    employee_number: str,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:read")),
):
    employee = await EmployeeService.get_employee_by_number(
        db, current_user.organization_id, employee_number,
    )
    return {
        "data": EmployeeSummary.model_validate(employee).model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


# ── GET /employees/{id} — Employee detail ───────────────────────────

@employees_router.get("/{employee_id}")
async def get_employee(
    employee_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_vip_access(AccessType.general)),
):
    """Retrieve the full employee record.

    Employees may read their own record; everyone else needs
    ``employees:read`` and must pass the VIP check.
    """
    if current_user.id != employee_id and not has_permission(
        request.state.user_role, "employees:read",
    ):
        raise ForbiddenException(detail="You can only view your own profile.")

    detail = await EmployeeService.get_employee(db, current_user.organization_id, employee_id)
    return {
        "data": detail.model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


# ── POST /employees — Create employee ──────────────────────────────

@employees_router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:write")),
):
    """Create an employee and their initial employment-history record."""
    employee = await EmployeeService.create_employee(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {
        "data": EmployeeResponse.model_validate(employee).model_dump(mode="json"),
        "message": "Employee created successfully.",
    }


# ── PATCH /employees/{id} — Partial update ─────────────────────────

@employees_router.patch("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:write")),
):
    employee = await EmployeeService.update_employee(
        db, current_user.organization_id, employee_id, body, actor_id=current_user.id,
    )
    return {
        "data": EmployeeResponse.model_validate(employee).model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }


# ── DELETE /employees/{id} — Soft delete ───────────────────────────

@employees_router.delete("/{employee_id}")
async def delete_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("employees:delete")),
):
    await EmployeeService.delete_employee(
        db, current_user.organization_id, employee_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Employee deleted successfully."}


# ── GET /employees/{id}/direct-reports ─────────────────────────────

@employees_router.get("/{employee_id}/direct-reports")
async def get_direct_reports(
    employee_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("profile:read_own")),
):
    """Managers see their own reports; ``employees:read`` sees anyone's."""
    if current_user.id != employee_id and not has_permission(
        request.state.user_role, "employees:read",
    ):
        raise ForbiddenException(detail="You can only view your own direct reports.")

    reports = await EmployeeService.get_direct_reports(
        db, current_user.organization_id, employee_id,
    )
    return {
        "data": [EmployeeSummary.model_validate(e).model_dump(mode="json") for e in reports],
        "message": f"Found {len(reports)} direct report(s).",
    }


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("")
async def list_departments(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("departments:read")),
    search: Optional[str] = Query(None),
    location_id: Optional[uuid.UUID] = Query(None),
    parent_department_id: Optional[uuid.UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    """List departments with employee counts."""
    departments = await DepartmentService.list_departments(
        db,
        current_user.organization_id,
        search=search,
        location_id=location_id,
        parent_department_id=parent_department_id,
        is_active=is_active,
    )
    return {
        "data": [d.model_dump(mode="json") for d in departments],
        "message": f"Found {len(departments)} department(s).",
    }


@departments_router.get("/{department_id}")
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("departments:read")),
):
    dept = await DepartmentService.get_department(db, current_user.organization_id, department_id)
    return {"data": dept.model_dump(mode="json"), "message": "Department retrieved successfully."}


@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("departments:write")),
):
    dept = await DepartmentService.create_department(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {"data": dept.model_dump(mode="json"), "message": "Department created successfully."}


@departments_router.patch("/{department_id}")
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("departments:write")),
):
    dept = await DepartmentService.update_department(
        db, current_user.organization_id, department_id, body, actor_id=current_user.id,
    )
    return {"data": dept.model_dump(mode="json"), "message": "Department updated successfully."}


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("departments:write")),
):
    await DepartmentService.delete_department(
        db, current_user.organization_id, department_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Department deleted successfully."}


# ═════════════════════════════════════════════════════════════════════
# Location Endpoints
# ═════════════════════════════════════════════════════════════════════


@locations_router.get("")
async def list_locations(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:read")),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    location_type: Optional[str] = Query(None),
    country: Optional[str] = Query(None, min_length=2, max_length=2),
    is_active: Optional[bool] = Query(None),
):
    result = await LocationService.list_locations(
        db,
        current_user.organization_id,
        pagination,
        search=search,
        location_type=location_type,
        country=country,
        is_active=is_active,
    )
    return {
        "data": [LocationResponse.model_validate(loc).model_dump(mode="json") for loc in result.data],
        "meta": result.meta.model_dump(),
    }


@locations_router.get("/primary")
async def get_primary_location(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:read")),
):
    location = await LocationService.get_primary_location(db, current_user.organization_id)
    return {
        "data": LocationResponse.model_validate(location).model_dump(mode="json") if location else None,
        "message": "Primary location retrieved successfully." if location else "No primary location set.",
    }


@locations_router.get("/stats")
async def get_all_location_stats(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:read")),
):
    stats = await LocationService.get_all_location_stats(db, current_user.organization_id)
    return {"data": [s.model_dump(mode="json") for s in stats], "message": f"Found {len(stats)} location(s)."}


@locations_router.get("/by-code/{code}")
async def get_location_by_code(
    code: str,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:read")),
):
    location = await LocationService.get_location_by_code(db, current_user.organization_id, code)
    return {
        "data": LocationResponse.model_validate(location).model_dump(mode="json"),
        "message": "Location retrieved successfully.",
    }


@locations_router.get("/{location_id}")
async def get_location(
    location_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:read")),
):
    location = await LocationService.get_location(db, current_user.organization_id, location_id)
    return {
        "data": LocationResponse.model_validate(location).model_dump(mode="json"),
        "message": "Location retrieved successfully.",
    }


@locations_router.get("/{location_id}/stats")
async def get_location_stats(
    location_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:read")),
):
    stats = await LocationService.get_location_stats(db, current_user.organization_id, location_id)
    return {"data": stats.model_dump(mode="json"), "message": "Location stats retrieved successfully."}


@locations_router.post("", status_code=201)
async def create_location(
    body: LocationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:write")),
):
    location = await LocationService.create_location(
        db, current_user.organization_id, body, actor_id=current_user.id,
    )
    return {
        "data": LocationResponse.model_validate(location).model_dump(mode="json"),
        "message": "Location created successfully.",
    }


@locations_router.patch("/{location_id}")
async def update_location(
    location_id: uuid.UUID,
    body: LocationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:write")),
):
    location = await LocationService.update_location(
        db, current_user.organization_id, location_id, body, actor_id=current_user.id,
    )
    return {
        "data": LocationResponse.model_validate(location).model_dump(mode="json"),
        "message": "Location updated successfully.",
    }


@locations_router.put("/{location_id}/primary")
async def set_primary_location(
    location_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:write")),
):
    location = await LocationService.set_primary_location(
        db, current_user.organization_id, location_id, actor_id=current_user.id,
    )
    return {
        "data": LocationResponse.model_validate(location).model_dump(mode="json"),
        "message": "Primary location updated successfully.",
    }


@locations_router.delete("/{location_id}")
async def delete_location(
    location_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_permission("locations:write")),
):
    await LocationService.delete_location(
        db, current_user.organization_id, location_id, actor_id=current_user.id,
    )
    return {"data": None, "message": "Location deleted successfully."}
