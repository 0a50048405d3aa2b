"""Course and lesson catalog."""
