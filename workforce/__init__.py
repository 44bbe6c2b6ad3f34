"""Workforce — multi-tenant HR (HRIS) and payroll back-office."""
