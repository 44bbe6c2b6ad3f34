"""Common module — shared utilities for the Workforce back-office."""

from workforce.common.audit import AuditMixin, AuditTrail, create_audit_entry
from workforce.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    AccessType,
    EmploymentStatus,
    UserRole,
)
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    ensure_unique,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.exceptions import (
    AppException,
    BusinessRuleException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from workforce.common.filters import apply_filters, apply_search, apply_sorting
from workforce.common.models import SoftDeleteMixin, TenantMixin
from workforce.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditMixin",
    "AuditTrail",
    "create_audit_entry",
    # Model mixins
    "SoftDeleteMixin",
    "TenantMixin",
    # Constants / Enums
    "AccessType",
    "EmploymentStatus",
    "UserRole",
    "PERMISSIONS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Tenant-scoped CRUD helpers
    "apply_changes",
    "ensure_exists",
    "ensure_unique",
    "get_scoped_or_404",
    "scoped_select",
    "to_json",
    # Exceptions
    "AppException",
    "BusinessRuleException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
