"""Temporal pattern conditions for pay components."""
