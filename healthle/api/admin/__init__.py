"""Admin portal routers. Every route requires an Admin grant."""
