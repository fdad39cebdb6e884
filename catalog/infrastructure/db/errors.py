"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Errores tipados del pool: semántica clara en vez de RuntimeError genéricos.
===============================================================================
"""


class DatabasePoolError(Exception):
    """Base de errores de pool de base de datos."""


class PoolAlreadyInitializedError(DatabasePoolError):
    """Se intentó inicializar el pool más de una vez."""


class PoolNotInitializedError(DatabasePoolError):
    """Se intentó usar el pool sin init_pool()."""
