"""Election tracker services."""
