"""VIP / restricted-employee access control."""
