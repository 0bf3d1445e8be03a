"""Storage services for workrag."""
