"""Healthle platform API: admin, user and vendor portals."""
