"""Pipeline-local services for creative generation."""
