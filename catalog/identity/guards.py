"""
===============================================================================
TARJETA CRC — identity/guards.py
===============================================================================

Módulo:
    Request Authenticator + Role Authorizer

Responsabilidades:
    - Extraer el access token (cookie primero, luego Authorization: Bearer).
    - Verificarlo como token de tipo ACCESS.
    - Cargar el usuario EN VIVO (roles / is_active) desde el Credential Store.
    - Autorizar por ruta según una RoutePolicy explícita.
    - Exponer dependencias FastAPI: require_user(), require_policy(policy).

Colaboradores:
    - identity.tokens.TokenCodec
    - domain.repositories.UserRepository
    - container: factories inyectables (get_token_codec, get_user_repository...)
    - context.set_user_context: correlación de logs por usuario.

Decisiones de diseño:
    - Sin estado compartido entre requests: solo el secreto (read-only) y el store.
    - Todas las fallas post-extracción devuelven el mismo mensaje al cliente;
      el motivo real viaja en `reason` y se loguea en el exception handler.
    - Las dependencias son `async def`: solo `authenticate` (lectura del store)
      va al threadpool, y user_id se fija en el contexto del request (un
      ContextVar seteado dentro del threadpool se pierde al volver).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from ..container import get_cookie_settings, get_token_codec, get_user_repository
from ..context import set_user_context
from ..domain.repositories import UserRepository
from .errors import ForbiddenError, IdentityMissingError, TokenError, UnauthenticatedError
from .sessions import CookieSettings
from .tokens import TokenClaims, TokenCodec, TokenType
from .users import User, UserRole, sorted_role_values

MSG_TOKEN_NOT_FOUND = "Access token not found"
MSG_INVALID_TOKEN = "Invalid or expired token"


@dataclass(frozen=True, slots=True)
class AuthenticatedIdentity:
    """Identidad por request: claims verificados + usuario recién cargado."""

    user: User
    claims: TokenClaims

    @property
    def roles(self) -> frozenset[UserRole]:
        # R: roles vivos del store, nunca los del token.
        return self.user.roles


@dataclass(frozen=True, slots=True)
class RoutePolicy:
    """Requisitos de una ruta. Sin roles => solo requiere autenticación."""

    required_roles: frozenset[UserRole] = frozenset()

    @classmethod
    def of(cls, *roles: UserRole | str) -> "RoutePolicy":
        return cls(required_roles=frozenset(UserRole(r) for r in roles))


# ---------------------------------------------------------------------------
# Extracción de token (cookie / header)
# ---------------------------------------------------------------------------


def _extract_bearer_token(authorization: str | None) -> str | None:
    """Extrae token desde `Authorization: Bearer <token>`."""
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def extract_access_token(
    request: Request, authorization: str | None, cookie_name: str
) -> str | None:
    """Cookie primero (navegador); header Bearer como fallback (otros clientes)."""
    token = (request.cookies.get(cookie_name) or "").strip()
    if token:
        return token
    return _extract_bearer_token(authorization)


# ---------------------------------------------------------------------------
# Request Authenticator / Role Authorizer (lógica pura)
# ---------------------------------------------------------------------------


class RequestAuthenticator:
    def __init__(self, codec: TokenCodec, users: UserRepository) -> None:
        self._codec = codec
        self._users = users

    def authenticate(self, token: str | None) -> AuthenticatedIdentity:
        """
        NoToken -> Verify -> LoadUser -> Success.

        Raises:
            UnauthenticatedError: en cualquier estado de falla.
        """
        if not token:
            raise UnauthenticatedError(MSG_TOKEN_NOT_FOUND, reason="no token")

        try:
            claims = self._codec.verify(token, TokenType.ACCESS)
        except TokenError as exc:
            raise UnauthenticatedError(
                MSG_INVALID_TOKEN, reason=f"{type(exc).__name__}: {exc.reason}"
            ) from exc

        user = self._users.get_user_by_id(claims.user_id)
        if user is None:
            raise UnauthenticatedError(MSG_INVALID_TOKEN, reason="user not found")
        if not user.is_active:
            raise UnauthenticatedError(MSG_INVALID_TOKEN, reason="user is inactive")

        return AuthenticatedIdentity(user=user, claims=claims)


def authorize(identity: AuthenticatedIdentity | None, policy: RoutePolicy) -> None:
    """
    Permite si la ruta no pide roles o si hay intersección de roles.

    Raises:
        IdentityMissingError: se llamó sin identidad (orden de guards roto).
        ForbiddenError: autenticado pero sin ninguno de los roles pedidos.
    """
    if not policy.required_roles:
        return

    if identity is None:
        raise IdentityMissingError(reason="role check ran before authentication")

    if identity.user.has_any_role(policy.required_roles):
        return

    accepted = ", ".join(sorted_role_values(policy.required_roles))
    raise ForbiddenError(
        f"User needs a valid role: [{accepted}]",
        reason=f"user roles {sorted_role_values(identity.roles)}",
    )


# ---------------------------------------------------------------------------
# Dependencias FastAPI
# ---------------------------------------------------------------------------


def require_user() -> Callable:
    """Dependency FastAPI: requiere access token válido y usuario activo."""

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
        codec: TokenCodec = Depends(get_token_codec),
        users: UserRepository = Depends(get_user_repository),
        cookies: CookieSettings = Depends(get_cookie_settings),
    ) -> AuthenticatedIdentity:
        token = extract_access_token(request, authorization, cookies.access_cookie)
        identity = await run_in_threadpool(
            RequestAuthenticator(codec, users).authenticate, token
        )
        request.state.identity = identity
        set_user_context(str(identity.user.id))
        return identity

    return dependency


def require_policy(policy: RoutePolicy) -> Callable:
    """Dependency FastAPI: autenticación y luego autorización por RoutePolicy."""

    async def dependency(
        identity: AuthenticatedIdentity = Depends(require_user()),
    ) -> AuthenticatedIdentity:
        authorize(identity, policy)
        return identity

    dependency.route_policy = policy
    return dependency
