"""
===============================================================================
TARJETA CRC — catalog/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer el Credential Store, el Token Codec, el Session Issuer y la
    política de credenciales a partir de Settings.
  - Exponer factories para FastAPI (Depends).
  - Mantener singletons con caching (lru_cache).

Colaboradores:
  - catalog.crosscutting.config.get_settings
  - catalog.domain.repositories.* (puertos)
  - catalog.infrastructure.* (implementaciones)

Notas:
  - Este archivo NO contiene lógica de negocio.
  - No importa identity.guards (guards depende de este módulo).
  - Tests: reemplazar vía app.dependency_overrides o cache_clear().
===============================================================================
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from .crosscutting.config import get_settings
from .domain.repositories import AuthEventNotifier, UserRepository
from .identity.sessions import CookieSettings, SessionIssuer
from .identity.tokens import TokenCodec
from .identity.validation import CredentialPolicy
from .infrastructure.notifications import LoggingAuthEventNotifier
from .infrastructure.repositories import (
    InMemoryUserRepository,
    PostgresUserRepository,
)


# =============================================================================
# Credential Store
# =============================================================================
@lru_cache
def get_user_repository() -> UserRepository:
    """Postgres si hay DATABASE_URL; si no, store en memoria (dev/tests)."""
    if get_settings().uses_database():
        return PostgresUserRepository()
    return InMemoryUserRepository()


# =============================================================================
# Tokens / sesiones
# =============================================================================
@lru_cache
def get_token_codec() -> TokenCodec:
    settings = get_settings()
    return TokenCodec(
        settings.jwt_secret, leeway_seconds=settings.jwt_leeway_seconds
    )


@lru_cache
def get_session_issuer() -> SessionIssuer:
    settings = get_settings()
    return SessionIssuer(
        get_token_codec(),
        access_ttl=timedelta(minutes=settings.jwt_access_ttl_minutes),
        refresh_ttl=timedelta(days=settings.jwt_refresh_ttl_days),
    )


@lru_cache
def get_cookie_settings() -> CookieSettings:
    return CookieSettings.from_settings(get_settings())


@lru_cache
def get_credential_policy() -> CredentialPolicy:
    return CredentialPolicy.from_settings(get_settings())


# =============================================================================
# Notificaciones
# =============================================================================
@lru_cache
def get_auth_event_notifier() -> AuthEventNotifier:
    return LoggingAuthEventNotifier()

