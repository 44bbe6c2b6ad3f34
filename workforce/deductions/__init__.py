"""Employee payroll deductions."""
