"""Pydantic request schemas of the portal APIs."""
