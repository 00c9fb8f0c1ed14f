"""HTTP routers of the admin, user and vendor portals."""
