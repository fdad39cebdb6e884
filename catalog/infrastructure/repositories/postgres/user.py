"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/user.py
============================================================
Class: PostgresUserRepository

Responsibilities:
  - Cargar usuarios para autenticación (por teléfono / por id).
  - Crear usuarios y actualizar campos administrables (password, roles, is_active).
  - Ejecutar SQL parametrizado contra la tabla `users` (contrato con migraciones).
  - Mapear filas crudas -> entidad `User` y validar `UserRole`.
  - Traducir la violación de unicidad de `phone` a UserAlreadyExistsError.

Collaborators:
  - psycopg_pool.ConnectionPool (pool global vía infrastructure.db.pool)
  - identity.users.User / UserRole
  - crosscutting.exceptions.DatabaseError
  - crosscutting.logger.logger

Constraints / Notes:
  - Repositorio puro: NO define reglas de negocio.
  - Retorna None cuando no existe el recurso.
  - Roles persistidos que no matchean UserRole -> DatabaseError.
  - SQL parametrizado siempre.
  - Orden estable en listados: created_at DESC, id DESC.
============================================================
"""

from __future__ import annotations

from typing import Iterable, Optional
from uuid import UUID, uuid4

from psycopg.errors import UniqueViolation
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....identity.errors import UserAlreadyExistsError
from ....identity.users import User, UserRole, parse_roles, sorted_role_values

_USER_COLUMNS = "id, phone, password_hash, roles, is_active, created_at, updated_at"

_USER_ORDER_BY = "created_at DESC, id DESC"


def _row_to_user(row: tuple) -> User:
    try:
        roles = parse_roles(row[3] or [])
    except ValueError as exc:
        raise DatabaseError(f"Invalid user role in database: {row[3]}") from exc
    if not roles:
        raise DatabaseError(f"User {row[0]} has an empty role set")

    return User(
        id=row[0],
        phone=row[1],
        password_hash=row[2],
        roles=roles,
        is_active=row[4],
        created_at=row[5],
        updated_at=row[6],
    )


class PostgresUserRepository:
    """
    Credential Store sobre Postgres.

    El pool es inyectable (tests); si es None se usa el global de
    infrastructure.db.pool.
    """

    def __init__(self, pool: ConnectionPool | None = None) -> None:
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool
        from ...db.pool import get_pool

        return get_pool()

    def _fetchone(
        self,
        *,
        query: str,
        params: Iterable[object],
        log_msg: str,
        log_extra: dict[str, object],
    ) -> tuple | None:
        """SELECT/INSERT/UPDATE ... fetchone() con manejo consistente de errores."""
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchone()
        except UniqueViolation as exc:
            raise UserAlreadyExistsError(reason=str(exc)) from exc
        except Exception as exc:
            logger.exception(log_msg, extra={**log_extra, "error": str(exc)})
            raise DatabaseError(f"{log_msg}: {exc}") from exc

    def _fetchall(
        self,
        *,
        query: str,
        params: Iterable[object] = (),
        log_msg: str,
        log_extra: dict[str, object],
    ) -> list[tuple]:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(log_msg, extra={**log_extra, "error": str(exc)})
            raise DatabaseError(f"{log_msg}: {exc}") from exc

    # --- Lectura ---
    def get_user_by_phone(self, phone: str) -> Optional[User]:
        row = self._fetchone(
            query=f"SELECT {_USER_COLUMNS} FROM users WHERE phone = %s",
            params=(phone,),
            log_msg="PostgresUserRepository: get_user_by_phone failed",
            log_extra={},
        )
        return _row_to_user(row) if row else None

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        row = self._fetchone(
            query=f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            params=(user_id,),
            log_msg="PostgresUserRepository: get_user_by_id failed",
            log_extra={"target_user_id": str(user_id)},
        )
        return _row_to_user(row) if row else None

    def list_users(self, *, limit: int = 50, offset: int = 0) -> list[User]:
        """
        Guard rails:
        - limit <= 0 => []
        - offset < 0 => 0
        """
        if limit <= 0:
            return []
        offset = max(offset, 0)

        rows = self._fetchall(
            query=f"""
                SELECT {_USER_COLUMNS}
                FROM users
                ORDER BY {_USER_ORDER_BY}
                LIMIT %s OFFSET %s
            """,
            params=(limit, offset),
            log_msg="PostgresUserRepository: list_users failed",
            log_extra={"limit": limit, "offset": offset},
        )
        return [_row_to_user(r) for r in rows]

    # --- Escritura ---
    def create_user(
        self,
        *,
        phone: str,
        password_hash: str,
        roles: frozenset[UserRole],
        is_active: bool = True,
    ) -> User:
        user_id = uuid4()
        row = self._fetchone(
            query=f"""
                INSERT INTO users (id, phone, password_hash, roles, is_active)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {_USER_COLUMNS}
            """,
            params=(user_id, phone, password_hash, sorted_role_values(roles), is_active),
            log_msg="PostgresUserRepository: create_user failed",
            log_extra={"target_user_id": str(user_id)},
        )
        if not row:
            raise DatabaseError(
                "PostgresUserRepository: create_user failed (no row returned)"
            )
        return _row_to_user(row)

    def update_user(
        self,
        user_id: UUID,
        *,
        password_hash: str | None = None,
        roles: frozenset[UserRole] | None = None,
        is_active: bool | None = None,
    ) -> Optional[User]:
        """
        Update dinámico.

        - Construye SET con los campos presentes.
        - Sin cambios => retorna el usuario actual (si existe).
        """
        updates: list[str] = []
        params: list[object] = []

        if password_hash is not None:
            updates.append("password_hash = %s")
            params.append(password_hash)
        if roles is not None:
            updates.append("roles = %s")
            params.append(sorted_role_values(roles))
        if is_active is not None:
            updates.append("is_active = %s")
            params.append(is_active)

        if not updates:
            return self.get_user_by_id(user_id)

        updates.append("updated_at = now()")
        params.append(user_id)

        # updates es controlado por código (no input usuario).
        row = self._fetchone(
            query=f"""
                UPDATE users
                SET {", ".join(updates)}
                WHERE id = %s
                RETURNING {_USER_COLUMNS}
            """,
            params=params,
            log_msg="PostgresUserRepository: update_user failed",
            log_extra={"target_user_id": str(user_id)},
        )
        return _row_to_user(row) if row else None

    def ping(self) -> bool:
        row = self._fetchone(
            query="SELECT 1",
            params=(),
            log_msg="PostgresUserRepository: ping failed",
            log_extra={},
        )
        return bool(row)
