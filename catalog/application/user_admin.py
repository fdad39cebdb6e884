"""
===============================================================================
TARJETA CRC — application/user_admin.py
===============================================================================

Caso de uso:
    Administración de usuarios (listar, activar/desactivar, roles)

Responsabilidades:
    - Listar usuarios con paginación.
    - Cambiar is_active (efecto inmediato: los guards recargan el usuario).
      Una cuenta SUPERUSER solo la activa/desactiva otro SUPERUSER.
    - Reemplazar el set de roles (nunca vacío).

Colaboradores:
    - domain.repositories.UserRepository
    - api/auth_routes.py (endpoints admin protegidos por RoutePolicy)
===============================================================================
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from ..crosscutting.logger import logger
from ..domain.repositories import UserRepository
from ..identity.errors import ForbiddenError, UserNotFoundError, ValidationError
from ..identity.users import User, UserRole, parse_roles

MAX_PAGE_SIZE = 200

MSG_SUPERUSER_PROTECTED = "Only a SUPERUSER can manage a SUPERUSER account"


def _ensure_can_manage(actor: User, target: User) -> None:
    protected = frozenset({UserRole.SUPERUSER})
    if target.has_any_role(protected) and not actor.has_any_role(protected):
        raise ForbiddenError(
            MSG_SUPERUSER_PROTECTED,
            reason=f"actor {actor.id} tried to change superuser {target.id}",
        )


class UserAdminService:
    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def list_users(self, *, limit: int = 50, offset: int = 0) -> list[User]:
        limit = min(max(limit, 0), MAX_PAGE_SIZE)
        return self._users.list_users(limit=limit, offset=max(offset, 0))

    def set_active(
        self, user_id: UUID, is_active: bool, *, actor: User | None = None
    ) -> User:
        """
        Raises:
            UserNotFoundError: el usuario no existe.
            ForbiddenError: un no-SUPERUSER intenta tocar una cuenta SUPERUSER.
        """
        target = self._users.get_user_by_id(user_id)
        if target is None:
            raise UserNotFoundError(reason=f"user {user_id} not found")
        if actor is not None:
            _ensure_can_manage(actor, target)

        user = self._users.update_user(user_id, is_active=is_active)
        if user is None:
            raise UserNotFoundError(reason=f"user {user_id} not found")
        logger.info(
            "Usuario actualizado",
            extra={"target_user_id": str(user_id), "is_active": is_active},
        )
        return user

    def set_roles(self, user_id: UUID, roles: Iterable[str | UserRole]) -> User:
        """
        Raises:
            ValidationError: set vacío o rol desconocido.
            UserNotFoundError: el usuario no existe.
        """
        try:
            parsed = parse_roles(roles)
        except ValueError as exc:
            raise ValidationError(
                "Invalid input", errors=[{"field": "roles", "msg": str(exc)}]
            ) from exc
        if not parsed:
            raise ValidationError(
                "Invalid input",
                errors=[{"field": "roles", "msg": "roles must not be empty"}],
            )

        user = self._users.update_user(user_id, roles=parsed)
        if user is None:
            raise UserNotFoundError(reason=f"user {user_id} not found")
        logger.info(
            "Roles actualizados",
            extra={"target_user_id": str(user_id), "roles": sorted(r.value for r in parsed)},
        )
        return user
