"""User portal routers."""
