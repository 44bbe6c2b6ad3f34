"""Every ORM model, imported once so ``Base.metadata`` knows all tables."""

from workforce.approvals.models import ApprovalAction, ApprovalRequest, ApprovalRule
from workforce.attendance.models import AttendanceRecord
from workforce.auth.models import RoleAssignment, UserSession
from workforce.benefits.models import BenefitEnrollment, BenefitPlan
from workforce.common.audit import AuditTrail
from workforce.compensation.models import EmployeeCompensation
from workforce.contracts.models import Contract
from workforce.core_hr.models import Department, Employee, Location, Organization
from workforce.currency.models import CurrencyConfig, CurrencyConversion, ExchangeRate
from workforce.deductions.models import EmployeeDeduction
from workforce.documents.models import EmployeeDocument
from workforce.employment.models import EmploymentHistory
from workforce.pay_components.models import EmployeePayComponent, PayComponent
from workforce.payroll.models import Paycheck, PayrollRun
from workforce.performance.models import PerformanceReview
from workforce.schedules.models import Shift, WorkSchedule
from workforce.tax.models import TaxBracket, TaxRuleSet
from workforce.timesheets.models import TimeEntry, Timesheet
from workforce.vip.models import EmployeeAccessControl, RestrictedAccessLog
from workforce.worker_types.models import WorkerType, WorkerTypeAssignment

__all__ = [
    "ApprovalAction",
    "ApprovalRequest",
    "ApprovalRule",
    "AttendanceRecord",
    "AuditTrail",
    "BenefitEnrollment",
    "BenefitPlan",
    "Contract",
    "CurrencyConfig",
    "CurrencyConversion",
    "Department",
    "Employee",
    "EmployeeAccessControl",
    "EmployeeCompensation",
    "EmployeeDeduction",
    "EmployeeDocument",
    "EmployeePayComponent",
    "EmploymentHistory",
    "ExchangeRate",
    "Location",
    "Organization",
    "PayComponent",
    "Paycheck",
    "PayrollRun",
    "PerformanceReview",
    "RestrictedAccessLog",
    "RoleAssignment",
    "Shift",
    "TaxBracket",
    "TaxRuleSet",
    "TimeEntry",
    "Timesheet",
    "UserSession",
    "WorkSchedule",
    "WorkerType",
    "WorkerTypeAssignment",
]
