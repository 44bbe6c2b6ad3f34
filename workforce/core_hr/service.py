"""Core HR service layer — async CRUD + business logic.

Uses:
  - ``paginate()`` from workforce.common.pagination
  - ``apply_filters / apply_search`` from workforce.common.filters
  - ``scoped_select / ensure_exists / ensure_unique`` from workforce.common.crud
  - ``create_audit_entry`` from workforce.common.audit
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from workforce.common.audit import create_audit_entry
from workforce.common.constants import EmploymentStatus
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    ensure_unique,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.exceptions import (
    BusinessRuleException,
    ConflictError,
    NotFoundException,
    ValidationException,
)
from workforce.common.filters import apply_filters, apply_search
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Department, Employee, Location
from workforce.core_hr.schemas import (
    DepartmentBrief,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeDetail,
    EmployeeSummary,
    EmployeeUpdate,
    LocationBrief,
    LocationCreate,
    LocationStats,
    LocationUpdate,
)
from workforce.employment.service import EmploymentHistoryService

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        location_id: Optional[uuid.UUID] = None,
        manager_id: Optional[uuid.UUID] = None,
        employment_status: Optional[str] = None,
        employment_type: Optional[str] = None,
        hire_date_from: Optional[Any] = None,
        hire_date_to: Optional[Any] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered, searchable employee list."""

        query = scoped_select(Employee, organization_id).order_by(
            Employee.last_name, Employee.first_name,
        )

        filters: dict[str, Any] = {
            "department_id": department_id,
            "location_id": location_id,
            "manager_id": manager_id,
            "employment_status": employment_status,
            "employment_type": employment_type,
            "hire_date__from": hire_date_from,
            "hire_date__to": hire_date_to,
        }
        query = apply_filters(query, Employee, filters)
        query = apply_search(
            query,
            Employee,
            search,
            ["first_name", "last_name", "email", "employee_number", "preferred_name"],
        )

        return await paginate(db, query, pagination, model=Employee)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> EmployeeDetail:
        """Load full employee detail including relationships."""

        employee = await get_scoped_or_404(
            db,
            Employee,
            employee_id,
            organization_id,
            "Employee",
            options=[
                selectinload(Employee.department),
                selectinload(Employee.location),
                selectinload(Employee.manager),
            ],
        )

        count_result = await db.execute(
            scoped_select(Employee, organization_id)
            .where(Employee.manager_id == employee.id)
            .with_only_columns(func.count(), maintain_column_froms=True),
        )
        direct_reports_count = count_result.scalar() or 0

        detail = EmployeeDetail.model_validate(employee)
        detail.direct_reports_count = direct_reports_count

        if employee.department and employee.department.deleted_at is None:
            detail.department = DepartmentBrief.model_validate(employee.department)
        if employee.location and employee.location.deleted_at is None:
            detail.location = LocationBrief.model_validate(employee.location)
        if employee.manager and employee.manager.deleted_at is None:
            detail.manager = EmployeeSummary.model_validate(employee.manager)

        return detail

    @staticmethod
    async def get_employee_by_email(
        db: AsyncSession,
        organization_id: uuid.UUID,
        email: str,
    ) -> Employee:
        result = await db.execute(
            scoped_select(Employee, organization_id).where(
                func.lower(Employee.email) == email.lower(),
            ),
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", email)
        return employee

    @staticmethod
    async def get_employee_by_number(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_number: str,
    ) -> Employee:
        result = await db.execute(
            scoped_select(Employee, organization_id).where(
                Employee.employee_number == employee_number,
            ),
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", employee_number)
        return employee

    @staticmethod
    async def search_employees(
        db: AsyncSession,
        organization_id: uuid.UUID,
        term: str,
        *,
        limit: int = 20,
    ) -> Sequence[Employee]:
        """Quick search (typeahead) across names, email and number."""
        query = apply_search(
            scoped_select(Employee, organization_id),
            Employee,
            term,
            ["first_name", "last_name", "email", "employee_number", "preferred_name"],
        )
        result = await db.execute(
            query.order_by(Employee.last_name, Employee.first_name).limit(limit),
        )
        return result.scalars().all()

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Create an employee and open their first employment period."""

        await ensure_unique(
            db, Employee, organization_id, "email", data.email, case_insensitive=True,
        )
        await ensure_unique(
            db, Employee, organization_id, "employee_number", data.employee_number,
        )
        await ensure_exists(db, Department, data.department_id, organization_id, "department_id", "Department")
        await ensure_exists(db, Location, data.location_id, organization_id, "location_id", "Location")
        await ensure_exists(db, Employee, data.manager_id, organization_id, "manager_id", "Employee")

        employee = Employee(
            **data.model_dump(),
            organization_id=organization_id,
            employment_status=EmploymentStatus.active.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        employee.email = employee.email.lower()

        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            err = str(exc.orig)
            if "employee_number" in err:
                raise ConflictError("employee_number", data.employee_number)
            if "email" in err:
                raise ConflictError("email", data.email)
            raise

        await EmploymentHistoryService.create_initial_employment(
            db, employee, actor_id=actor_id,
        )

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info(
            "Employee created org=%s employee=%s number=%s",
            organization_id, employee.id, employee.employee_number,
        )
        return employee

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Partial-update an existing employee."""

        employee = await get_scoped_or_404(
            db, Employee, employee_id, organization_id, "Employee",
        )

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return employee

        for required in ("employee_number", "first_name", "last_name", "email"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        if "email" in changes:
            changes["email"] = changes["email"].lower()
            await ensure_unique(
                db, Employee, organization_id, "email", changes["email"],
                exclude_id=employee.id, case_insensitive=True,
            )
        if "employee_number" in changes:
            await ensure_unique(
                db, Employee, organization_id, "employee_number",
                changes["employee_number"], exclude_id=employee.id,
            )
        if changes.get("manager_id") == employee.id:
            raise ValidationException.for_field(
                "manager_id", "An employee cannot be their own manager.",
            )
        await ensure_exists(db, Department, changes.get("department_id"), organization_id, "department_id", "Department")
        await ensure_exists(db, Location, changes.get("location_id"), organization_id, "location_id", "Location")
        await ensure_exists(db, Employee, changes.get("manager_id"), organization_id, "manager_id", "Employee")

        old_values = apply_changes(employee, changes, actor_id=actor_id)

        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            err = str(exc.orig)
            if "email" in err:
                raise ConflictError("email", changes.get("email", ""))
            raise

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        logger.info(
            "Employee updated org=%s employee=%s fields=%s",
            organization_id, employee.id, sorted(changes),
        )
        return employee

    # ── Delete (soft) ───────────────────────────────────────────────

    @staticmethod
    async def delete_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        employee = await get_scoped_or_404(
            db, Employee, employee_id, organization_id, "Employee",
        )
        employee.soft_delete(actor_id)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="employee",
            entity_id=employee.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Employee deleted org=%s employee=%s", organization_id, employee.id)

    # ── Direct reports ──────────────────────────────────────────────

    @staticmethod
    async def get_direct_reports(
        db: AsyncSession,
        organization_id: uuid.UUID,
        manager_id: uuid.UUID,
    ) -> Sequence[Employee]:
        """Live employees reporting to *manager_id*."""
        await get_scoped_or_404(db, Employee, manager_id, organization_id, "Employee")
        result = await db.execute(
            scoped_select(Employee, organization_id)
            .where(
                Employee.manager_id == manager_id,
                Employee.employment_status != EmploymentStatus.terminated.value,
            )
            .order_by(Employee.last_name, Employee.first_name),
        )
        return result.scalars().all()


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """CRUD for departments with per-department employee counts."""

    @staticmethod
    async def _employee_counts(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> dict[uuid.UUID, int]:
        result = await db.execute(
            select(Employee.department_id, func.count())
            .where(
                Employee.organization_id == organization_id,
                Employee.deleted_at.is_(None),
                Employee.department_id.is_not(None),
            )
            .group_by(Employee.department_id),
        )
        return {row[0]: row[1] for row in result.all()}

    @staticmethod
    def _to_response(dept: Department, counts: dict[uuid.UUID, int]) -> DepartmentResponse:
        resp = DepartmentResponse.model_validate(dept)
        resp.employee_count = counts.get(dept.id, 0)
        return resp

    @staticmethod
    async def list_departments(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        search: Optional[str] = None,
        location_id: Optional[uuid.UUID] = None,
        parent_department_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
    ) -> list[DepartmentResponse]:
        query = scoped_select(Department, organization_id).order_by(Department.department_name)
        query = apply_filters(
            query,
            Department,
            {
                "location_id": location_id,
                "parent_department_id": parent_department_id,
                "is_active": is_active,
            },
        )
        query = apply_search(query, Department, search, ["department_name", "department_code"])
        departments = (await db.execute(query)).scalars().all()
        counts = await DepartmentService._employee_counts(db, organization_id)
        return [DepartmentService._to_response(d, counts) for d in departments]

    @staticmethod
    async def get_department(
        db: AsyncSession,
        organization_id: uuid.UUID,
        department_id: uuid.UUID,
    ) -> DepartmentResponse:
        dept = await get_scoped_or_404(
            db, Department, department_id, organization_id, "Department",
        )
        counts = await DepartmentService._employee_counts(db, organization_id)
        return DepartmentService._to_response(dept, counts)

    @staticmethod
    async def create_department(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: DepartmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentResponse:
        await ensure_unique(
            db, Department, organization_id, "department_name", data.department_name,
            case_insensitive=True,
        )
        await ensure_unique(
            db, Department, organization_id, "department_code", data.department_code,
        )
        await ensure_exists(db, Department, data.parent_department_id, organization_id, "parent_department_id", "Department")
        await ensure_exists(db, Location, data.location_id, organization_id, "location_id", "Location")

        dept = Department(
            **data.model_dump(),
            organization_id=organization_id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(dept)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="department",
            entity_id=dept.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info("Department created org=%s department=%s", organization_id, dept.id)
        return DepartmentService._to_response(dept, {})

    @staticmethod
    async def update_department(
        db: AsyncSession,
        organization_id: uuid.UUID,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentResponse:
        dept = await get_scoped_or_404(
            db, Department, department_id, organization_id, "Department",
        )
        changes = data.model_dump(exclude_unset=True)
        if "department_name" in changes:
            await ensure_unique(
                db, Department, organization_id, "department_name",
                changes["department_name"], exclude_id=dept.id, case_insensitive=True,
            )
        if "department_code" in changes:
            await ensure_unique(
                db, Department, organization_id, "department_code",
                changes["department_code"], exclude_id=dept.id,
            )
        if changes.get("parent_department_id") == dept.id:
            raise ValidationException.for_field(
                "parent_department_id", "A department cannot be its own parent.",
            )
        await ensure_exists(db, Department, changes.get("parent_department_id"), organization_id, "parent_department_id", "Department")
        await ensure_exists(db, Location, changes.get("location_id"), organization_id, "location_id", "Location")

        if changes:
            old_values = apply_changes(dept, changes, actor_id=actor_id)
            await db.flush()
            await create_audit_entry(
                db,
                action="update",
                entity_type="department",
                entity_id=dept.id,
                organization_id=organization_id,
                actor_id=actor_id,
                old_values=old_values,
                new_values=to_json(changes),
            )
        counts = await DepartmentService._employee_counts(db, organization_id)
        return DepartmentService._to_response(dept, counts)

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        organization_id: uuid.UUID,
        department_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        dept = await get_scoped_or_404(
            db, Department, department_id, organization_id, "Department",
        )
        counts = await DepartmentService._employee_counts(db, organization_id)
        if counts.get(dept.id, 0) > 0:
            raise BusinessRuleException(
                "Cannot delete department with employees. Please reassign employees first.",
            )
        children = await db.execute(
            scoped_select(Department, organization_id)
            .where(Department.parent_department_id == dept.id)
            .with_only_columns(func.count(), maintain_column_froms=True),
        )
        if children.scalar_one() > 0:
            raise BusinessRuleException("Cannot delete department with sub-departments.")

        dept.soft_delete(actor_id)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="department",
            entity_id=dept.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Department deleted org=%s department=%s", organization_id, dept.id)


# ═════════════════════════════════════════════════════════════════════
# LocationService
# ═════════════════════════════════════════════════════════════════════


class LocationService:
    """CRUD for locations, primary location and headcount stats."""

    @staticmethod
    async def list_locations(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        location_type: Optional[str] = None,
        country: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        query = scoped_select(Location, organization_id).order_by(Location.location_name)
        query = apply_filters(
            query,
            Location,
            {"location_type": location_type, "country": country, "is_active": is_active},
        )
        query = apply_search(query, Location, search, ["location_name", "location_code", "city"])
        return await paginate(db, query, pagination, model=Location)

    @staticmethod
    async def get_location(
        db: AsyncSession,
        organization_id: uuid.UUID,
        location_id: uuid.UUID,
    ) -> Location:
        return await get_scoped_or_404(db, Location, location_id, organization_id, "Location")

    @staticmethod
    async def get_location_by_code(
        db: AsyncSession,
        organization_id: uuid.UUID,
        code: str,
    ) -> Location:
        result = await db.execute(
            scoped_select(Location, organization_id).where(Location.location_code == code),
        )
        location = result.scalars().first()
        if location is None:
            raise NotFoundException("Location", code)
        return location

    @staticmethod
    async def create_location(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: LocationCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Location:
        await ensure_unique(
            db, Location, organization_id, "location_name", data.location_name,
            case_insensitive=True,
        )
        await ensure_unique(db, Location, organization_id, "location_code", data.location_code)

        location = Location(
            **data.model_dump(),
            organization_id=organization_id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(location)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="location",
            entity_id=location.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values=to_json(data.model_dump()),
        )
        logger.info("Location created org=%s location=%s", organization_id, location.id)
        return location

    @staticmethod
    async def update_location(
        db: AsyncSession,
        organization_id: uuid.UUID,
        location_id: uuid.UUID,
        data: LocationUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Location:
        location = await get_scoped_or_404(db, Location, location_id, organization_id, "Location")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return location
        if "location_name" in changes:
            await ensure_unique(
                db, Location, organization_id, "location_name", changes["location_name"],
                exclude_id=location.id, case_insensitive=True,
            )
        if "location_code" in changes:
            await ensure_unique(
                db, Location, organization_id, "location_code", changes["location_code"],
                exclude_id=location.id,
            )

        old_values = apply_changes(location, changes, actor_id=actor_id)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="location",
            entity_id=location.id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=to_json(changes),
        )
        return location

    @staticmethod
    async def delete_location(
        db: AsyncSession,
        organization_id: uuid.UUID,
        location_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        location = await get_scoped_or_404(db, Location, location_id, organization_id, "Location")
        employees = await db.execute(
            scoped_select(Employee, organization_id)
            .where(Employee.location_id == location.id)
            .with_only_columns(func.count(), maintain_column_froms=True),
        )
        if employees.scalar_one() > 0:
            raise BusinessRuleException(
                "Cannot delete location with active employees. Please reassign employees first.",
            )
        location.soft_delete(actor_id)
        location.is_primary = False
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="location",
            entity_id=location.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        logger.info("Location deleted org=%s location=%s", organization_id, location.id)

    # ── Primary location ────────────────────────────────────────────

    @staticmethod
    async def get_primary_location(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> Optional[Location]:
        result = await db.execute(
            scoped_select(Location, organization_id).where(Location.is_primary.is_(True)),
        )
        return result.scalars().first()

    @staticmethod
    async def set_primary_location(
        db: AsyncSession,
        organization_id: uuid.UUID,
        location_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Location:
        """Make *location_id* the only primary location of the organization."""
        location = await get_scoped_or_404(db, Location, location_id, organization_id, "Location")
        result = await db.execute(
            scoped_select(Location, organization_id).where(
                Location.is_primary.is_(True), Location.id != location.id,
            ),
        )
        for other in result.scalars().all():
            other.is_primary = False
            other.updated_by = actor_id
        location.is_primary = True
        location.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="set_primary",
            entity_type="location",
            entity_id=location.id,
            organization_id=organization_id,
            actor_id=actor_id,
        )
        return location

    # ── Stats ───────────────────────────────────────────────────────

    @staticmethod
    async def get_location_stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
        location_id: uuid.UUID,
    ) -> LocationStats:
        location = await get_scoped_or_404(db, Location, location_id, organization_id, "Location")
        stats = await LocationService.get_all_location_stats(db, organization_id)
        for item in stats:
            if item.location_id == location.id:
                return item
        return LocationStats(location_id=location.id, location_name=location.location_name)

    @staticmethod
    async def get_all_location_stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> list[LocationStats]:
        locations = (
            await db.execute(
                scoped_select(Location, organization_id).order_by(Location.location_name),
            )
        ).scalars().all()

        emp_rows = await db.execute(
            select(Employee.location_id, Employee.employment_status, func.count())
            .where(
                Employee.organization_id == organization_id,
                Employee.deleted_at.is_(None),
                Employee.location_id.is_not(None),
            )
            .group_by(Employee.location_id, Employee.employment_status),
        )
        totals: dict[uuid.UUID, int] = {}
        active: dict[uuid.UUID, int] = {}
        for loc_id, status, count in emp_rows.all():
            totals[loc_id] = totals.get(loc_id, 0) + count
            if status == EmploymentStatus.active.value:
                active[loc_id] = active.get(loc_id, 0) + count

        dept_rows = await db.execute(
            select(Department.location_id, func.count())
            .where(
                Department.organization_id == organization_id,
                Department.deleted_at.is_(None),
                Department.location_id.is_not(None),
            )
            .group_by(Department.location_id),
        )
        depts = {row[0]: row[1] for row in dept_rows.all()}

        return [
            LocationStats(
                location_id=loc.id,
                location_name=loc.location_name,
                total_employees=totals.get(loc.id, 0),
                active_employees=active.get(loc.id, 0),
                departments=depts.get(loc.id, 0),
            )
            for loc in locations
        ]
