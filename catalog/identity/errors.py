"""
===============================================================================
TARJETA CRC — identity/errors.py
===============================================================================

Módulo:
    Errores del núcleo de autenticación

Responsabilidades:
    - Nombrar cada forma de falla del auth core sin acoplarla a HTTP.
    - Separar el motivo interno (`reason`, solo para logs) del mensaje
      público (terso, sin enumeración de cuentas).

Colaboradores:
    - identity/tokens.py: TokenInvalidError / TokenExpiredError.
    - identity/credentials.py, identity/guards.py, application/auth_sessions.py.
    - api/exception_handlers.py: traduce cada error a RFC7807.
===============================================================================
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    """Base de errores del auth core."""

    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None, *, reason: str | None = None):
        self.message = message or self.default_message
        # R: motivo interno, se loguea pero nunca se devuelve al cliente.
        self.reason = reason or self.message
        super().__init__(self.message)


class TokenError(AuthError):
    """Falla del Token Codec."""


class TokenInvalidError(TokenError):
    default_message = "Invalid token"


class TokenExpiredError(TokenError):
    default_message = "Token expired"


class ValidationError(AuthError):
    """Input mal formado; transporta errores por campo."""

    default_message = "Invalid input"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(message)
        self.errors = errors or []


class UserAlreadyExistsError(AuthError):
    default_message = "Phone already registered"


class UserNotFoundError(AuthError):
    default_message = "User not found"


class UnauthenticatedError(AuthError):
    default_message = "Authentication required"


class InvalidCredentialsError(UnauthenticatedError):
    default_message = "Invalid credentials"


class ForbiddenError(AuthError):
    default_message = "Access denied"


class IdentityMissingError(AuthError):
    """El autorizador corrió sin identidad: error de composición de la ruta."""

    default_message = "User not found (request)"
