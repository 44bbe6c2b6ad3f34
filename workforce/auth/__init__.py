"""Authentication: Google OAuth login, JWT sessions, roles and permissions."""
