"""Payroll runs, calculation and paychecks."""
