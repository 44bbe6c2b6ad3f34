"""Tax rule sets, brackets and tax calculation."""
