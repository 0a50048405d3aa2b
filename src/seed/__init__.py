"""Demo data loading (development only)."""
