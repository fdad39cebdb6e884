"""
===============================================================================
TARJETA CRC — application/auth_sessions.py
===============================================================================

Caso de uso:
    Ciclo de vida de sesión (register / login / refresh)

Responsabilidades:
    - Register: validar, chequear unicidad, hashear, crear con {USER},
      emitir sesión y notificar.
    - Login: validar forma, autenticar credenciales, emitir sesión y notificar.
    - Refresh: verificar el refresh token (tipo REFRESH), recargar el usuario
      en vivo y rotar ambos tokens.

Colaboradores:
    - domain.repositories.UserRepository / AuthEventNotifier
    - identity.credentials.CredentialValidator
    - identity.sessions.SessionIssuer
    - identity.tokens.TokenCodec
    - identity.validation

Notas:
    - Sin HTTP: las cookies las setea api/auth_routes.py con SessionTokens.
    - La notificación es best-effort: una falla se loguea y no rompe el flujo.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

from ..crosscutting.logger import logger
from ..domain.repositories import AuthEventNotifier, UserRepository
from ..identity.credentials import CredentialValidator
from ..identity.errors import TokenError, UnauthenticatedError, UserAlreadyExistsError
from ..identity.passwords import hash_password
from ..identity.sessions import SessionIssuer, SessionTokens
from ..identity.tokens import TokenCodec, TokenType
from ..identity.users import DEFAULT_ROLES, User
from ..identity.validation import CredentialPolicy, validate_credentials, validate_login

OPERATION_REGISTER = "register"
OPERATION_LOGIN = "login"

MSG_REFRESH_NOT_FOUND = "Refresh token not found"
MSG_REFRESH_INVALID = "Invalid or expired refresh token"
MSG_INVALID_USER = "Invalid user"


@dataclass(frozen=True, slots=True)
class SessionResult:
    user: User
    tokens: SessionTokens


class AuthSessionService:
    def __init__(
        self,
        *,
        users: UserRepository,
        codec: TokenCodec,
        issuer: SessionIssuer,
        policy: CredentialPolicy,
        notifier: AuthEventNotifier | None = None,
    ) -> None:
        self._users = users
        self._codec = codec
        self._issuer = issuer
        self._policy = policy
        self._notifier = notifier
        self._credentials = CredentialValidator(users)

    def register(self, phone: str, password: str) -> SessionResult:
        """
        Raises:
            ValidationError: teléfono o password inválidos.
            UserAlreadyExistsError: teléfono ya registrado.
        """
        validate_credentials(phone, password, self._policy)

        if self._users.get_user_by_phone(phone) is not None:
            raise UserAlreadyExistsError(reason="phone taken (pre-check)")

        # R: el constraint único del store cubre la carrera entre pre-check e insert.
        user = self._users.create_user(
            phone=phone,
            password_hash=hash_password(password),
            roles=DEFAULT_ROLES,
            is_active=True,
        )
        logger.info("Usuario registrado", extra={"target_user_id": str(user.id)})

        result = SessionResult(user=user, tokens=self._issuer.issue(user))
        self._notify(user.phone, OPERATION_REGISTER)
        return result

    def login(self, phone: str, password: str) -> SessionResult:
        """
        Raises:
            ValidationError: forma inválida (nunca por fuerza del password).
            InvalidCredentialsError: credenciales incorrectas o usuario inactivo.
        """
        validate_login(phone, password, self._policy)
        user = self._credentials.authenticate(phone, password)

        result = SessionResult(user=user, tokens=self._issuer.issue(user))
        self._notify(user.phone, OPERATION_LOGIN)
        return result

    def refresh(self, refresh_token: str | None) -> SessionResult:
        """
        Rota access + refresh a partir de un refresh token vigente.

        El refresh viejo no se revoca: sigue siendo válido hasta su exp.

        Raises:
            UnauthenticatedError: token ausente, inválido/expirado o usuario
                inexistente/inactivo.
        """
        token = (refresh_token or "").strip()
        if not token:
            raise UnauthenticatedError(MSG_REFRESH_NOT_FOUND, reason="no refresh token")

        try:
            claims = self._codec.verify(token, TokenType.REFRESH)
        except TokenError as exc:
            raise UnauthenticatedError(
                MSG_REFRESH_INVALID, reason=f"{type(exc).__name__}: {exc.reason}"
            ) from exc

        user = self._users.get_user_by_id(claims.user_id)
        if user is None or not user.is_active:
            raise UnauthenticatedError(
                MSG_INVALID_USER,
                reason="user not found" if user is None else "user is inactive",
            )

        return SessionResult(user=user, tokens=self._issuer.issue(user))

    def _notify(self, phone: str, operation: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify(phone, operation)
        except Exception:
            logger.warning(
                "Auth notification failed",
                exc_info=True,
                extra={"auth_operation": operation},
            )
