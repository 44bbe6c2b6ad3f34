"""Employee compensation (pay rates and salaries)."""
