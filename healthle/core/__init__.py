"""Configuration, database, security, logging and error handling shared by the portals."""
