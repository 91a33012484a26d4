"""Read-only dashboard resources."""
