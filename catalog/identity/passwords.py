"""
===============================================================================
TARJETA CRC — identity/passwords.py
===============================================================================

Responsabilidades:
    - Hashear/verificar passwords con Argon2 (hash lento, con salt).
    - Proveer un verify "dummy" para igualar tiempos cuando el usuario no existe.

Colaboradores:
    - argon2.PasswordHasher
    - identity/credentials.py, application/auth_sessions.py, dev_seed_admin.py

Notas:
    - Argon2 es CPU-bound: los endpoints que lo usan son `def` (threadpool),
      nunca `async def`, para no bloquear el event loop.
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hashea un password usando Argon2."""
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verifica password vs hash almacenado."""
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return _password_hasher.hash("catalog-dummy-password")


def burn_verify(password: str) -> None:
    """Gasta el mismo costo que un verify real (usuario inexistente)."""
    verify_password(password, _dummy_hash())
