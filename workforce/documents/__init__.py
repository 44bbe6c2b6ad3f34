"""Employee documents and expiry tracking."""
