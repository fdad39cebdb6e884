"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/user.py
============================================================
Class: InMemoryUserRepository

Responsibilities:
  - Credential Store en memoria (tests / local dev sin DATABASE_URL).
  - Replicar el contrato del repo Postgres: unicidad de phone,
    None cuando no existe, orden created_at DESC, id DESC.

Collaborators:
  - identity.users.User / UserRole
  - identity.errors.UserAlreadyExistsError

Constraints / Notes:
  - Thread-safe: acceso protegido por Lock (FastAPI corre los handlers
    `def` en un threadpool).
  - User es inmutable: cada update reemplaza la entrada con dataclasses.replace.
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Optional
from uuid import UUID, uuid4

from ....identity.errors import UserAlreadyExistsError
from ....identity.users import User, UserRole


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: Dict[UUID, User] = {}

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def get_user_by_phone(self, phone: str) -> Optional[User]:
        with self._lock:
            return next((u for u in self._users.values() if u.phone == phone), None)

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def list_users(self, *, limit: int = 50, offset: int = 0) -> list[User]:
        if limit <= 0:
            return []
        offset = max(offset, 0)
        with self._lock:
            ordered = sorted(
                self._users.values(),
                key=lambda u: (u.created_at or datetime.min.replace(tzinfo=timezone.utc), str(u.id)),
                reverse=True,
            )
        return ordered[offset : offset + limit]

    def create_user(
        self,
        *,
        phone: str,
        password_hash: str,
        roles: frozenset[UserRole],
        is_active: bool = True,
    ) -> User:
        now = self._now()
        with self._lock:
            if any(u.phone == phone for u in self._users.values()):
                raise UserAlreadyExistsError(reason="duplicate phone (in-memory)")
            user = User(
                id=uuid4(),
                phone=phone,
                password_hash=password_hash,
                roles=frozenset(roles),
                is_active=is_active,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            return user

    def update_user(
        self,
        user_id: UUID,
        *,
        password_hash: str | None = None,
        roles: frozenset[UserRole] | None = None,
        is_active: bool | None = None,
    ) -> Optional[User]:
        changes: dict[str, object] = {}
        if password_hash is not None:
            changes["password_hash"] = password_hash
        if roles is not None:
            changes["roles"] = frozenset(roles)
        if is_active is not None:
            changes["is_active"] = is_active

        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            if not changes:
                return current
            updated = replace(current, updated_at=self._now(), **changes)
            self._users[user_id] = updated
            return updated

    def ping(self) -> bool:
        return True
