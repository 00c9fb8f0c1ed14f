"""HTTP middleware shared by the portal apps."""
