# catalog/crosscutting/exceptions.py
"""
===============================================================================
MÓDULO: Excepciones tipadas de infraestructura
===============================================================================

Objetivo
--------
Tener excepciones internas coherentes, con:
- error_code estable
- error_id para correlación con logs
- message “humana” (sin filtrar secretos)

Colaboradores:
  - api/exception_handlers.py (mapea a AppHTTPException)
  - infrastructure/repositories/postgres/user.py (DatabaseError)
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class CatalogError(Exception):
    """Base para errores internos del sistema (error_code + error_id + message)."""

    error_code: str = "CATALOG_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class DatabaseError(CatalogError):
    """Errores de DB (conexión, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"
