"""Work schedules and shifts."""
