"""Administration: role assignment and audit-trail browsing."""
