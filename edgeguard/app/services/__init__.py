"""Services backing the non-admission routes."""
