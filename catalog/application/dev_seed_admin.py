"""
===============================================================================
TASK: Dev Seed Admin (local-only + E2E override)
===============================================================================

Qué es:
    Asegura que exista una cuenta SUPERUSER/ADMIN para desarrollo, así los
    endpoints de administración se pueden ejercitar sin tocar la base.

Seguridad:
    - Si NO es E2E => solo corre con app_env == "local".
    - Si es E2E (E2E_SEED_ADMIN=true) => se permite otro app_env (CI).

CRC:
    Component: ensure_dev_admin
    Responsibilities:
      - Validar guard de ambiente
      - Resolver phone/password/roles (settings vs env E2E)
      - Crear el usuario, o resetearlo si force_reset
    Collaborators:
      - user_repo (puerto mínimo, ver SeedUserPort)
      - password_hasher
      - Settings + env mapping
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Final, Mapping, Protocol
from uuid import UUID

from ..crosscutting.config import Settings
from ..crosscutting.logger import logger
from ..identity.users import UserRole, normalize_roles, sorted_role_values


class SeedUserRecord(Protocol):
    id: UUID


class SeedUserPort(Protocol):
    def get_user_by_phone(self, phone: str) -> SeedUserRecord | None: ...

    def create_user(
        self,
        *,
        phone: str,
        password_hash: str,
        roles: frozenset[UserRole],
        is_active: bool = True,
    ) -> SeedUserRecord: ...

    def update_user(
        self,
        user_id: UUID,
        *,
        password_hash: str | None = None,
        roles: frozenset[UserRole] | None = None,
        is_active: bool | None = None,
    ) -> SeedUserRecord | None: ...


_ENV_FLAG_E2E_SEED_ADMIN: Final[str] = "E2E_SEED_ADMIN"
_ENV_E2E_ADMIN_PHONE: Final[str] = "E2E_ADMIN_PHONE"
_ENV_E2E_ADMIN_PASSWORD: Final[str] = "E2E_ADMIN_PASSWORD"

_DEFAULT_E2E_PHONE: Final[str] = "+5359999999"
_DEFAULT_E2E_PASSWORD: Final[str] = "E2e!Adm1n"

_SEED_FALLBACK_ROLES: Final[frozenset[UserRole]] = frozenset(
    {UserRole.SUPERUSER, UserRole.ADMIN}
)


@dataclass(frozen=True, slots=True)
class _AdminSeedPlan:
    enabled: bool
    is_e2e: bool
    phone: str
    password: str
    roles: frozenset[UserRole]
    force_reset: bool


def _parse_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _resolve_roles(raw: str) -> frozenset[UserRole]:
    """CSV de roles; inválido => SUPERUSER+ADMIN (con warning)."""
    try:
        return normalize_roles(p for p in (raw or "").split(",") if p.strip())
    except ValueError:
        logger.warning(
            "Dev seed admin: invalid roles; falling back to SUPERUSER,ADMIN",
            extra={"roles": raw},
        )
        return _SEED_FALLBACK_ROLES


def _resolve_plan(settings: Settings, env: Mapping[str, str]) -> _AdminSeedPlan:
    is_e2e = _parse_bool(env.get(_ENV_FLAG_E2E_SEED_ADMIN))

    if not (settings.dev_seed_admin or is_e2e):
        return _AdminSeedPlan(False, is_e2e, "", "", _SEED_FALLBACK_ROLES, False)

    if is_e2e:
        return _AdminSeedPlan(
            enabled=True,
            is_e2e=True,
            phone=env.get(_ENV_E2E_ADMIN_PHONE, _DEFAULT_E2E_PHONE),
            password=env.get(_ENV_E2E_ADMIN_PASSWORD, _DEFAULT_E2E_PASSWORD),
            roles=_SEED_FALLBACK_ROLES,
            force_reset=False,
        )

    return _AdminSeedPlan(
        enabled=True,
        is_e2e=False,
        phone=(settings.dev_seed_admin_phone or "").strip(),
        password=settings.dev_seed_admin_password or "",
        roles=_resolve_roles(settings.dev_seed_admin_roles),
        force_reset=bool(settings.dev_seed_admin_force_reset),
    )


def _assert_allowed_environment(settings: Settings, *, is_e2e: bool) -> None:
    if is_e2e:
        return
    env = (settings.app_env or "").strip().lower()
    if env != "local":
        raise RuntimeError(
            f"FATAL: DEV_SEED_ADMIN is enabled but APP_ENV is '{env}' (must be 'local')."
        )


def ensure_dev_admin(
    settings: Settings,
    *,
    user_repo: SeedUserPort,
    password_hasher: Callable[[str], str],
    env: Mapping[str, str],
) -> None:
    """
    Crea el admin de desarrollo si está configurado.

    - Deshabilitado: no-op.
    - Usuario inexistente: se crea activo con los roles configurados.
    - Existente + force_reset: password/roles/is_active reseteados.
    - Existente sin force_reset: no se toca.
    """
    plan = _resolve_plan(settings, env)
    if not plan.enabled:
        return

    _assert_allowed_environment(settings, is_e2e=plan.is_e2e)

    if not plan.phone or not plan.password:
        raise ValueError("Dev seed admin is enabled but phone/password are empty")

    roles = sorted_role_values(plan.roles)
    existing = user_repo.get_user_by_phone(plan.phone)

    if existing is None:
        user_repo.create_user(
            phone=plan.phone,
            password_hash=password_hasher(plan.password),
            roles=plan.roles,
            is_active=True,
        )
        logger.info("Dev seed admin: user created", extra={"roles": roles})
        return

    if plan.force_reset:
        user_repo.update_user(
            existing.id,
            password_hash=password_hasher(plan.password),
            roles=plan.roles,
            is_active=True,
        )
        logger.info("Dev seed admin: user reset applied", extra={"roles": roles})
        return

    logger.info("Dev seed admin: user exists; skipping")
