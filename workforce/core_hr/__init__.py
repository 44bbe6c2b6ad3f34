"""Core HR module — Organization, Employee, Department, Location."""

from workforce.core_hr.models import Department, Employee, Location, Organization

__all__ = ["Organization", "Employee", "Department", "Location"]
