"""
===============================================================================
TARJETA CRC — identity/tokens.py
===============================================================================

Módulo:
    Token Codec (JWT HS256)

Responsabilidades:
    - Firmar tokens compactos con expiración (access / refresh).
    - Verificar firma, expiración, claims mínimos y tipo de token.
    - Traducir errores de PyJWT a TokenInvalidError / TokenExpiredError.

Colaboradores:
    - PyJWT
    - identity/users.py: User / UserRole.
    - identity/sessions.py (firma), identity/guards.py y
      application/auth_sessions.py (verificación).

Decisiones de diseño:
    - Claims: sub, phone, roles, typ, iat, exp.
    - `typ` es obligatorio: un refresh token nunca pasa como access token
      (ni al revés).
    - El codec NO decide autorización: solo dice si el token es auténtico
      y vigente. Roles/estado del usuario se leen en vivo en los guards.
    - El secreto se fija al construir el codec y no cambia.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable
from uuid import UUID

import jwt

from .errors import TokenExpiredError, TokenInvalidError
from .users import User, UserRole, parse_roles, sorted_role_values

JWT_ALGORITHM: str = "HS256"

CLAIM_SUB: str = "sub"
CLAIM_PHONE: str = "phone"
CLAIM_ROLES: str = "roles"
CLAIM_TYP: str = "typ"
CLAIM_IAT: str = "iat"
CLAIM_EXP: str = "exp"

_REQUIRED_CLAIMS = [CLAIM_SUB, CLAIM_PHONE, CLAIM_ROLES, CLAIM_TYP, CLAIM_IAT, CLAIM_EXP]

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class TokenPayload:
    """Lo que se firma: identidad mínima del usuario."""

    user_id: UUID
    phone: str
    roles: frozenset[UserRole]

    @classmethod
    def for_user(cls, user: User) -> "TokenPayload":
        return cls(user_id=user.id, phone=user.phone, roles=user.roles)


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Claims verificados de un token."""

    user_id: UUID
    phone: str
    roles: frozenset[UserRole]
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    """Firma y verifica JWT con un secreto de proceso (read-only)."""

    def __init__(
        self,
        secret: str,
        *,
        leeway_seconds: int = 0,
        clock: Clock | None = None,
    ) -> None:
        if not secret:
            raise ValueError("TokenCodec requires a non-empty secret")
        self._secret = secret
        self._leeway = leeway_seconds
        self._clock = clock or utc_now

    def sign(self, payload: TokenPayload, token_type: TokenType, ttl: timedelta) -> str:
        now = self._clock()
        claims: dict[str, object] = {
            CLAIM_SUB: str(payload.user_id),
            CLAIM_PHONE: payload.phone,
            CLAIM_ROLES: sorted_role_values(payload.roles),
            CLAIM_TYP: token_type.value,
            CLAIM_IAT: int(now.timestamp()),
            CLAIM_EXP: int((now + ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str, expected_type: TokenType) -> TokenClaims:
        """
        Decodifica y valida un token.

        Errores:
            - TokenExpiredError si la firma es válida pero expiró.
            - TokenInvalidError ante firma inválida, token malformado,
              claims faltantes/incorrectos o tipo distinto al esperado.
        """
        try:
            raw = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                # R: exp/iat se validan contra el reloj del codec, no el de PyJWT.
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError(reason=str(exc)) from exc

        issued_at, expires_at = self._check_lifetime(raw)

        if raw.get(CLAIM_TYP) != expected_type.value:
            raise TokenInvalidError(
                reason=f"token type mismatch: expected {expected_type.value}"
            )

        roles_value = raw.get(CLAIM_ROLES)
        if not isinstance(roles_value, list) or not roles_value:
            raise TokenInvalidError(reason="roles claim must be a non-empty list")

        try:
            user_id = UUID(str(raw[CLAIM_SUB]))
            roles = parse_roles(roles_value)
        except ValueError as exc:
            raise TokenInvalidError(reason=str(exc)) from exc

        return TokenClaims(
            user_id=user_id,
            phone=str(raw[CLAIM_PHONE]),
            roles=roles,
            token_type=expected_type,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def _check_lifetime(self, raw: dict) -> tuple[datetime, datetime]:
        """Vigente mientras now <= exp + leeway; iat no puede estar en el futuro."""
        iat, exp = raw[CLAIM_IAT], raw[CLAIM_EXP]
        if not all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in (iat, exp)
        ):
            raise TokenInvalidError(reason="iat/exp must be numeric timestamps")

        now = self._clock().timestamp()
        if now > exp + self._leeway:
            raise TokenExpiredError(reason=f"expired {int(now - exp)}s ago")
        if iat > now + self._leeway:
            raise TokenInvalidError(reason="token issued in the future")

        return (
            datetime.fromtimestamp(int(iat), tz=timezone.utc),
            datetime.fromtimestamp(int(exp), tz=timezone.utc),
        )
