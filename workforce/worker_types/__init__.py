"""Worker type templates and assignments."""
