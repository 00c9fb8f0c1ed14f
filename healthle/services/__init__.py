"""External service clients and domain workflows."""
