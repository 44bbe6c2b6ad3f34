"""Enums and constants for the Workforce back-office — HRIS + payroll."""

from __future__ import annotations

import enum


# ── Employee / HRIS ─────────────────────────────────────────────────

class EmploymentStatus(str, enum.Enum):
    active = "active"
    on_leave = "on_leave"
    suspended = "suspended"
    terminated = "terminated"


class EmploymentType(str, enum.Enum):
    full_time = "full_time"
    part_time = "part_time"
    contract = "contract"
    temporary = "temporary"
    intern = "intern"


class GenderType(str, enum.Enum):
    male = "male"
    female = "female"
    other = "other"
    undisclosed = "undisclosed"


class TerminationReason(str, enum.Enum):
    resignation = "resignation"
    termination = "termination"
    layoff = "layoff"
    retirement = "retirement"
    contract_end = "contract_end"
    mutual_agreement = "mutual_agreement"
    other = "other"


class RestrictionLevel(str, enum.Enum):
    none = "none"
    financial = "financial"
    full = "full"
    executive = "executive"


class AccessType(str, enum.Enum):
    general = "general"
    compensation = "compensation"
    personal_info = "personal_info"
    performance = "performance"
    documents = "documents"
    time_off = "time_off"
    benefits = "benefits"
    attendance = "attendance"


class ContractType(str, enum.Enum):
    permanent = "permanent"
    fixed_term = "fixed_term"
    probation = "probation"
    freelance = "freelance"
    internship = "internship"


class ContractStatus(str, enum.Enum):
    draft = "draft"
    active = "active"
    expired = "expired"
    terminated = "terminated"


class DocumentType(str, enum.Enum):
    contract = "contract"
    identification = "identification"
    passport = "passport"
    visa = "visa"
    work_permit = "work_permit"
    certification = "certification"
    tax = "tax"
    medical = "medical"
    other = "other"


class ReviewType(str, enum.Enum):
    annual = "annual"
    mid_year = "mid_year"
    quarterly = "quarterly"
    probation = "probation"
    project = "project"


class ReviewStatus(str, enum.Enum):
    draft = "draft"
    in_progress = "in_progress"
    submitted = "submitted"
    completed = "completed"
    cancelled = "cancelled"


class BenefitPlanType(str, enum.Enum):
    health = "health"
    dental = "dental"
    vision = "vision"
    life = "life"
    retirement = "retirement"
    disability = "disability"
    wellness = "wellness"
    other = "other"


class CoverageLevel(str, enum.Enum):
    employee = "employee"
    employee_spouse = "employee_spouse"
    employee_children = "employee_children"
    family = "family"


class EnrollmentStatus(str, enum.Enum):
    active = "active"
    pending = "pending"
    terminated = "terminated"


class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    half_day = "half_day"
    on_leave = "on_leave"


# ── Payroll ─────────────────────────────────────────────────────────

class PayFrequency(str, enum.Enum):
    weekly = "weekly"
    bi_weekly = "bi-weekly"
    semi_monthly = "semi-monthly"
    monthly = "monthly"


# Pay periods per year, used to turn an annual salary into one paycheck
PERIODS_PER_YEAR: dict[str, int] = {
    PayFrequency.weekly.value: 52,
    PayFrequency.bi_weekly.value: 26,
    PayFrequency.semi_monthly.value: 24,
    PayFrequency.monthly.value: 12,
}


class PaymentMethod(str, enum.Enum):
    ach = "ach"
    check = "check"
    wire = "wire"
    cash = "cash"


class CompensationType(str, enum.Enum):
    hourly = "hourly"
    salary = "salary"


class ComponentType(str, enum.Enum):
    earning = "earning"
    deduction = "deduction"
    benefit = "benefit"
    tax = "tax"


EARNING_CATEGORIES = ("regular", "overtime", "bonus", "commission", "allowance", "other")
DEDUCTION_CATEGORIES = ("tax", "benefit", "garnishment", "loan", "other")


class CalculationType(str, enum.Enum):
    fixed_amount = "fixed_amount"
    percentage = "percentage"
    hourly_rate = "hourly_rate"


class DeductionType(str, enum.Enum):
    benefit = "benefit"
    insurance = "insurance"
    pension = "pension"
    garnishment = "garnishment"
    loan = "loan"
    union_dues = "union_dues"
    other = "other"


class DeductionCalculation(str, enum.Enum):
    fixed_amount = "fixed_amount"
    percentage = "percentage"


class TaxType(str, enum.Enum):
    income = "income"
    wage = "wage"
    social_security = "social_security"
    medicare = "medicare"
    state = "state"
    local = "local"


class TaxCalculationMethod(str, enum.Enum):
    bracket = "bracket"
    flat_rate = "flat_rate"
    graduated = "graduated"


class RateStatus(str, enum.Enum):
    active = "active"
    pending_approval = "pending_approval"
    inactive = "inactive"


class RoundingMode(str, enum.Enum):
    half_up = "half_up"
    up = "up"
    down = "down"
    half_down = "half_down"
    half_even = "half_even"


class ApprovalRuleType(str, enum.Enum):
    conversion_threshold = "conversion_threshold"
    rate_variance = "rate_variance"
    bulk_operation = "bulk_operation"
    configuration_change = "configuration_change"


class ApprovalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    expired = "expired"


class ApprovalRequestType(str, enum.Enum):
    conversion = "conversion"
    rate_change = "rate_change"
    bulk_rate_import = "bulk_rate_import"
    configuration_change = "configuration_change"


class ApprovalPriority(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class ScheduleStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ShiftStatus(str, enum.Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class TimeEntryType(str, enum.Enum):
    regular = "regular"
    overtime = "overtime"
    pto = "pto"
    sick = "sick"
    holiday = "holiday"


class ApprovalState(str, enum.Enum):
    """Workflow state shared by time entries and timesheets."""

    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"


class PayrollRunType(str, enum.Enum):
    regular = "regular"
    off_cycle = "off_cycle"
    bonus = "bonus"
    correction = "correction"


class PayrollRunStatus(str, enum.Enum):
    draft = "draft"
    calculating = "calculating"
    calculated = "calculated"
    review = "review"
    approved = "approved"
    finalized = "finalized"
    cancelled = "cancelled"


class PaycheckStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    issued = "issued"
    voided = "voided"


class PatternType(str, enum.Enum):
    day_of_week = "day_of_week"
    shift_type = "shift_type"
    station = "station"
    role = "role"
    hours_threshold = "hours_threshold"
    combined = "combined"


class ComparisonOperator(str, enum.Enum):
    greater_than = "greater_than"
    less_than = "less_than"
    equals = "equals"
    greater_or_equal = "greater_or_equal"
    less_or_equal = "less_or_equal"


class LogicalOperator(str, enum.Enum):
    AND = "AND"
    OR = "OR"


class DayOfWeek(str, enum.Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    hr_admin = "hr_admin"
    payroll_admin = "payroll_admin"
    system_admin = "system_admin"


# Permissions that bypass VIP / restricted-employee checks
VIP_OVERRIDE_PERMISSIONS = ("vip:manage", "employees:admin", "admin:full")


# ── Role-based permissions ──────────────────────────────────────────

_EMPLOYEE_PERMISSIONS = [
    "profile:read_own",
    "attendance:clock",
    "timesheets:submit",
    "benefits:read",
]

_MANAGER_PERMISSIONS = _EMPLOYEE_PERMISSIONS + [
    "employees:read",
    "departments:read",
    "locations:read",
    "attendance:read",
    "performance:read",
    "performance:write",
    "schedules:read",
    "timesheets:read",
    "timesheets:approve",
]

_HR_PERMISSIONS = _MANAGER_PERMISSIONS + [
    "employees:write",
    "employees:delete",
    "employees:admin",
    "departments:write",
    "locations:write",
    "contracts:read",
    "contracts:write",
    "documents:read",
    "documents:write",
    "benefits:write",
    "attendance:write",
    "employment:write",
    "vip:read",
    "vip:manage",
    "schedules:write",
    "audit:read",
]

_PAYROLL_PERMISSIONS = _EMPLOYEE_PERMISSIONS + [
    "employees:read",
    "departments:read",
    "locations:read",
    "payroll:read",
    "payroll:write",
    "payroll:approve",
    "compensation:read",
    "compensation:write",
    "deductions:read",
    "deductions:write",
    "tax:read",
    "tax:write",
    "currency:read",
    "currency:write",
    "approvals:read",
    "approvals:write",
    "worker_types:read",
    "worker_types:write",
    "pay_components:read",
    "pay_components:write",
    "schedules:read",
    "timesheets:read",
    "timesheets:write",
    "timesheets:approve",
]

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.employee: _EMPLOYEE_PERMISSIONS,
    UserRole.manager: _MANAGER_PERMISSIONS,
    UserRole.hr_admin: _HR_PERMISSIONS,
    UserRole.payroll_admin: _PAYROLL_PERMISSIONS,
    UserRole.system_admin: sorted(
        set(_HR_PERMISSIONS) | set(_PAYROLL_PERMISSIONS) | {
            "admin:full",
            "system:manage_users",
        }
    ),
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
