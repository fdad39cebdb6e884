"""
===============================================================================
TARJETA CRC — catalog/api/auth_routes.py (Sesiones y Administración de Usuarios)
===============================================================================

Responsabilidades:
  - Exponer register / login / logout / refresh / verify.
  - Transportar el par de tokens en cookies httpOnly (access + refresh).
  - Exponer endpoints administrativos protegidos por RoutePolicy
    (listar, activar/desactivar, reemplazar roles).

Patrones aplicados:
  - Adapter / Presentation Layer: traduce HTTP <-> casos de uso.
  - Fail-safe security: sin identidad válida no hay acceso.

Colaboradores:
  - application.auth_sessions.AuthSessionService
  - application.user_admin.UserAdminService
  - identity.guards: require_user, require_policy, RoutePolicy
  - identity.sessions: set_session_cookies / clear_session_cookies
  - container: factories inyectables

Notas:
  - Handlers `def`: Argon2 y el store bloquean; FastAPI los corre en threadpool.
  - password_hash nunca sale en una respuesta (UserResponse no lo expone).
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field

from ..application.auth_sessions import AuthSessionService
from ..application.user_admin import UserAdminService
from ..container import (
    get_auth_event_notifier,
    get_cookie_settings,
    get_credential_policy,
    get_session_issuer,
    get_token_codec,
    get_user_repository,
)
from ..crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ..domain.repositories import AuthEventNotifier, UserRepository
from ..identity.guards import AuthenticatedIdentity, RoutePolicy, require_policy, require_user
from ..identity.sessions import (
    CookieSettings,
    SessionIssuer,
    clear_session_cookies,
    set_session_cookies,
)
from ..identity.tokens import TokenCodec
from ..identity.users import User, UserRole, sorted_role_values
from ..identity.validation import CredentialPolicy

router = APIRouter(prefix="/auth", tags=["auth"], responses=OPENAPI_ERROR_RESPONSES)

ADMIN_POLICY = RoutePolicy.of(UserRole.ADMIN, UserRole.SUPERUSER)
SUPERUSER_POLICY = RoutePolicy.of(UserRole.SUPERUSER)

MSG_REGISTER_OK = "Successful register!"
MSG_LOGIN_OK = "Successful login!"
MSG_LOGOUT_OK = "Logout successful"
MSG_REFRESH_OK = "Tokens refreshed successfully"


# -----------------------------------------------------------------------------
# Modelos HTTP (DTOs)
# -----------------------------------------------------------------------------


# R: topes de transporte; formato y fuerza configurables van en identity.validation.
PHONE_MAX_LENGTH = 32
PASSWORD_MAX_LENGTH = 512


class CredentialsRequest(BaseModel):
    phone: str = Field(..., max_length=PHONE_MAX_LENGTH)
    password: str = Field(..., max_length=PASSWORD_MAX_LENGTH)


class UserResponse(BaseModel):
    id: UUID
    phone: str
    roles: list[str]
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionResponse(UserResponse):
    message: str


class MessageResponse(BaseModel):
    message: str


class VerifyResponse(BaseModel):
    user: UserResponse


class UpdateRolesRequest(BaseModel):
    roles: list[str] = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Helpers / dependencias
# -----------------------------------------------------------------------------


def _to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        phone=user.phone,
        roles=sorted_role_values(user.roles),
        is_active=user.is_active,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _to_session_response(user: User, message: str) -> SessionResponse:
    return SessionResponse(message=message, **_to_user_response(user).model_dump())


def get_auth_session_service(
    users: UserRepository = Depends(get_user_repository),
    codec: TokenCodec = Depends(get_token_codec),
    issuer: SessionIssuer = Depends(get_session_issuer),
    policy: CredentialPolicy = Depends(get_credential_policy),
    notifier: AuthEventNotifier = Depends(get_auth_event_notifier),
) -> AuthSessionService:
    return AuthSessionService(
        users=users, codec=codec, issuer=issuer, policy=policy, notifier=notifier
    )


def get_user_admin_service(
    users: UserRepository = Depends(get_user_repository),
) -> UserAdminService:
    return UserAdminService(users)


# -----------------------------------------------------------------------------
# Ciclo de sesión
# -----------------------------------------------------------------------------


@router.post("/register", response_model=SessionResponse)
def register(
    req: CredentialsRequest,
    response: Response,
    service: AuthSessionService = Depends(get_auth_session_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """Crea el usuario con rol USER y abre sesión (cookies)."""
    result = service.register(req.phone, req.password)
    set_session_cookies(response, result.tokens, cookies)
    return _to_session_response(result.user, MSG_REGISTER_OK)


@router.post("/login", response_model=SessionResponse)
def login(
    req: CredentialsRequest,
    response: Response,
    service: AuthSessionService = Depends(get_auth_session_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """Autentica phone + password y setea access/refresh en cookies."""
    result = service.login(req.phone, req.password)
    set_session_cookies(response, result.tokens, cookies)
    return _to_session_response(result.user, MSG_LOGIN_OK)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response, cookies: CookieSettings = Depends(get_cookie_settings)
):
    """
    Cierra sesión.

    - No requiere autenticación: idempotente.
    - Los tokens emitidos siguen siendo válidos hasta su exp (sin revocación).
    """
    clear_session_cookies(response, cookies)
    return MessageResponse(message=MSG_LOGOUT_OK)


@router.post("/refresh", response_model=MessageResponse)
def refresh(
    request: Request,
    response: Response,
    service: AuthSessionService = Depends(get_auth_session_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """Rota ambos tokens a partir de la cookie de refresh."""
    result = service.refresh(request.cookies.get(cookies.refresh_cookie))
    set_session_cookies(response, result.tokens, cookies)
    return MessageResponse(message=MSG_REFRESH_OK)


@router.get("/verify", response_model=VerifyResponse)
def verify(identity: AuthenticatedIdentity = Depends(require_user())):
    return VerifyResponse(user=_to_user_response(identity.user))


# -----------------------------------------------------------------------------
# Administración de usuarios
# -----------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse])
def list_users_admin(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _identity: AuthenticatedIdentity = Depends(require_policy(ADMIN_POLICY)),
    admin: UserAdminService = Depends(get_user_admin_service),
):
    return [_to_user_response(u) for u in admin.list_users(limit=limit, offset=offset)]


@router.post("/users/{user_id}/disable", response_model=UserResponse)
def disable_user_admin(
    user_id: UUID,
    identity: AuthenticatedIdentity = Depends(require_policy(ADMIN_POLICY)),
    admin: UserAdminService = Depends(get_user_admin_service),
):
    """Desactiva un usuario; sus tokens dejan de servir en el próximo request."""
    return _to_user_response(admin.set_active(user_id, False, actor=identity.user))


@router.post("/users/{user_id}/enable", response_model=UserResponse)
def enable_user_admin(
    user_id: UUID,
    identity: AuthenticatedIdentity = Depends(require_policy(ADMIN_POLICY)),
    admin: UserAdminService = Depends(get_user_admin_service),
):
    return _to_user_response(admin.set_active(user_id, True, actor=identity.user))


@router.put("/users/{user_id}/roles", response_model=UserResponse)
def update_roles_admin(
    user_id: UUID,
    req: UpdateRolesRequest,
    _identity: AuthenticatedIdentity = Depends(require_policy(SUPERUSER_POLICY)),
    admin: UserAdminService = Depends(get_user_admin_service),
):
    return _to_user_response(admin.set_roles(user_id, req.roles))


__all__ = ["router"]
