"""Time entries and period timesheets."""
