"""
===============================================================================
TARJETA CRC — identity/credentials.py
===============================================================================

Módulo:
    Credential Validator (phone + password)

Responsabilidades:
    - Autenticar phone + password contra el Credential Store.
    - Igualar (best-effort) el costo cuando el usuario no existe.
    - Rechazar usuarios inactivos: nunca se emite token para ellos.

Colaboradores:
    - domain.repositories.UserRepository
    - identity.passwords: verify_password / burn_verify (Argon2)
    - crosscutting.logger

Seguridad:
    - Error único hacia afuera (InvalidCredentialsError). El motivo real
      (phone / password / inactive) solo va al log, para no habilitar
      enumeración de cuentas.
===============================================================================
"""

from __future__ import annotations

from ..crosscutting.logger import logger
from ..domain.repositories import UserRepository
from .errors import InvalidCredentialsError
from .passwords import burn_verify, verify_password
from .users import User


class CredentialValidator:
    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def authenticate(self, phone: str, password: str) -> User:
        """
        Valida credenciales y retorna el usuario activo.

        Raises:
            InvalidCredentialsError: usuario inexistente, password incorrecto
                o usuario inactivo (indistinguibles para el cliente).
        """
        normalized_phone = (phone or "").strip()
        user = self._users.get_user_by_phone(normalized_phone) if normalized_phone else None

        if user is None:
            burn_verify(password or "")
            raise InvalidCredentialsError(reason="bad credentials (phone)")

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError(reason="bad credentials (password)")

        if not user.is_active:
            logger.warning(
                "Auth falló: usuario inactivo", extra={"target_user_id": str(user.id)}
            )
            raise InvalidCredentialsError(reason="user is inactive")

        return user
