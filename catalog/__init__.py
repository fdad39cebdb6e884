"""Catalog API: autenticación, sesiones y autorización por roles."""
