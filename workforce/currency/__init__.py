"""Exchange rates, conversions and organization currency settings."""
