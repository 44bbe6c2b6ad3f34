"""Attendance tracking: clock in/out and daily records."""
