"""
============================================================
TARJETA CRC
============================================================
Class: catalog.infrastructure.repositories (Package exports)

Responsibilities:
- Exponer las implementaciones del Credential Store (Postgres e InMemory)
  en un único punto de importación.

Collaborators:
- Repositorio Postgres (SQL crudo, psycopg 3)
- Repositorio InMemory (testing / dev sin DATABASE_URL)
============================================================
"""

# ---------------------------
# In-memory implementation
# No persiste datos tras reiniciar la app.
# ---------------------------
from .in_memory.user import InMemoryUserRepository

# ---------------------------
# Postgres implementation
# ---------------------------
from .postgres.user import PostgresUserRepository

__all__ = [
    "PostgresUserRepository",
    "InMemoryUserRepository",
]
