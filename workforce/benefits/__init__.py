"""Benefit plans and enrollments."""
