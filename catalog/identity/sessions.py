"""
===============================================================================
TARJETA CRC — identity/sessions.py
===============================================================================

Módulo:
    Session Issuer + transporte por cookies

Responsabilidades:
    - Emitir el par (access, refresh) para un usuario válido.
    - Setear ambas cookies httpOnly / SameSite=strict / Secure (prod).
    - Borrar ambas cookies (logout), de forma idempotente.

Colaboradores:
    - identity.tokens.TokenCodec
    - crosscutting.config.Settings: TTLs, nombres de cookie, Secure.
    - api/auth_routes.py

Notas:
    - max_age de cada cookie == TTL del token que transporta.
    - httpOnly: el cliente nunca lee el token; solo viaja en el header Cookie.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Response

from .errors import UnauthenticatedError
from .tokens import TokenCodec, TokenPayload, TokenType
from .users import User

COOKIE_PATH = "/"
COOKIE_SAMESITE = "strict"


@dataclass(frozen=True, slots=True)
class CookieSettings:
    access_cookie: str = "access_token"
    refresh_cookie: str = "refresh_token"
    secure: bool = False

    @classmethod
    def from_settings(cls, settings) -> "CookieSettings":
        return cls(
            access_cookie=settings.access_token_cookie or "access_token",
            refresh_cookie=settings.refresh_token_cookie or "refresh_token",
            secure=settings.jwt_cookie_secure or settings.is_production(),
        )


@dataclass(frozen=True, slots=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    access_max_age: int
    refresh_max_age: int


class SessionIssuer:
    def __init__(
        self,
        codec: TokenCodec,
        *,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._codec = codec
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    def issue(self, user: User) -> SessionTokens:
        """Firma access + refresh con el mismo payload y TTLs distintos."""
        if not user.is_active:
            raise UnauthenticatedError("Invalid user", reason="session for inactive user")

        payload = TokenPayload.for_user(user)
        return SessionTokens(
            access_token=self._codec.sign(payload, TokenType.ACCESS, self._access_ttl),
            refresh_token=self._codec.sign(
                payload, TokenType.REFRESH, self._refresh_ttl
            ),
            access_max_age=int(self._access_ttl.total_seconds()),
            refresh_max_age=int(self._refresh_ttl.total_seconds()),
        )


def set_session_cookies(
    response: Response, tokens: SessionTokens, cookies: CookieSettings
) -> None:
    response.set_cookie(
        key=cookies.access_cookie,
        value=tokens.access_token,
        max_age=tokens.access_max_age,
        httponly=True,
        secure=cookies.secure,
        samesite=COOKIE_SAMESITE,
        path=COOKIE_PATH,
    )
    response.set_cookie(
        key=cookies.refresh_cookie,
        value=tokens.refresh_token,
        max_age=tokens.refresh_max_age,
        httponly=True,
        secure=cookies.secure,
        samesite=COOKIE_SAMESITE,
        path=COOKIE_PATH,
    )


def clear_session_cookies(response: Response, cookies: CookieSettings) -> None:
    """Elimina ambas cookies; borrar una cookie ausente no es error."""
    for name in (cookies.access_cookie, cookies.refresh_cookie):
        response.delete_cookie(
            key=name,
            path=COOKIE_PATH,
            secure=cookies.secure,
            httponly=True,
            samesite=COOKIE_SAMESITE,
        )
