"""
===============================================================================
TARJETA CRC — identity/users.py
===============================================================================

Módulo:
    Modelos de Usuario (JWT)

Responsabilidades:
    - Definir el enum de roles de usuario para autorización por ruta.
    - Definir el dataclass User utilizado por los flujos de auth.
    - Normalizar conjuntos de roles (nunca vacíos, default {USER}).

Colaboradores:
    - identity/tokens.py: serializa roles en los claims.
    - identity/guards.py: compara roles vivos contra RoutePolicy.
    - infrastructure/repositories/*: mapean filas -> User.

Notas:
    - Este módulo NO contiene lógica de negocio: solo “shapes” de datos.
    - password_hash vive acá pero nunca se serializa hacia afuera
      (ver api/auth_routes.UserResponse).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable
from uuid import UUID


class UserRole(str, Enum):
    """Roles soportados (valores en mayúsculas, igual que en la base)."""

    USER = "USER"
    ADMIN = "ADMIN"
    SUPERUSER = "SUPERUSER"


DEFAULT_ROLES: frozenset[UserRole] = frozenset({UserRole.USER})


def parse_roles(values: Iterable[str | UserRole]) -> frozenset[UserRole]:
    """
    Convierte valores crudos a un set de UserRole.

    Raises:
        ValueError: si algún valor no es un rol conocido.
    """
    return frozenset(UserRole(str(v).strip().upper()) for v in values)


def normalize_roles(values: Iterable[str | UserRole] | None) -> frozenset[UserRole]:
    """Igual que parse_roles, pero un input vacío cae en DEFAULT_ROLES."""
    roles = parse_roles(values or ())
    return roles or DEFAULT_ROLES


def sorted_role_values(roles: Iterable[UserRole]) -> list[str]:
    """Orden estable para claims, respuestas y mensajes."""
    return sorted(r.value for r in roles)


@dataclass(frozen=True, slots=True)
class User:
    """Registro de usuario del Credential Store."""

    id: UUID
    phone: str
    password_hash: str
    roles: frozenset[UserRole]
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def has_any_role(self, required: Iterable[UserRole]) -> bool:
        return not self.roles.isdisjoint(required)
