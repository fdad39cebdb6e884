"""
Name: PostgresUserRepository Tests (mocked pool)

Responsibilities:
  - Row -> User mapping (roles text[])
  - SQL shape for create / update / list
  - Error translation (unique violation, generic failures, bad roles)
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from psycopg.errors import UniqueViolation

from catalog.crosscutting.exceptions import DatabaseError
from catalog.identity.errors import UserAlreadyExistsError
from catalog.identity.users import UserRole
from catalog.infrastructure.repositories import PostgresUserRepository

pytestmark = pytest.mark.unit

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _row(**overrides):
    data = {
        "id": uuid4(),
        "phone": "+5351525354",
        "password_hash": "hash",
        "roles": ["USER"],
        "is_active": True,
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return tuple(data.values())


def _repo(*, fetchone=None, fetchall=None, side_effect=None):
    conn = MagicMock()
    cursor = conn.execute.return_value
    cursor.fetchone.return_value = fetchone
    cursor.fetchall.return_value = fetchall or []
    if side_effect is not None:
        conn.execute.side_effect = side_effect

    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    return PostgresUserRepository(pool=pool), conn


def test_get_user_by_phone_maps_row():
    row = _row(roles=["ADMIN", "USER"])
    repo, conn = _repo(fetchone=row)

    user = repo.get_user_by_phone("+5351525354")

    assert user.id == row[0]
    assert user.roles == frozenset({UserRole.ADMIN, UserRole.USER})
    query, params = conn.execute.call_args.args
    assert "WHERE phone = %s" in query
    assert params == ("+5351525354",)


def test_get_user_by_id_none_when_missing():
    repo, _ = _repo(fetchone=None)

    assert repo.get_user_by_id(uuid4()) is None


def test_unknown_role_in_db_is_database_error():
    repo, _ = _repo(fetchone=_row(roles=["ROOT"]))

    with pytest.raises(DatabaseError):
        repo.get_user_by_id(uuid4())


def test_empty_roles_in_db_is_database_error():
    repo, _ = _repo(fetchone=_row(roles=[]))

    with pytest.raises(DatabaseError):
        repo.get_user_by_id(uuid4())


def test_create_user_sends_sorted_roles():
    repo, conn = _repo(fetchone=_row(roles=["ADMIN", "USER"]))

    repo.create_user(
        phone="+5351525354",
        password_hash="hash",
        roles=frozenset({UserRole.USER, UserRole.ADMIN}),
    )

    query, params = conn.execute.call_args.args
    assert "INSERT INTO users" in query
    assert params[1:] == ("+5351525354", "hash", ["ADMIN", "USER"], True)


def test_create_user_unique_violation():
    repo, _ = _repo(side_effect=UniqueViolation("duplicate key"))

    with pytest.raises(UserAlreadyExistsError):
        repo.create_user(
            phone="+5351525354", password_hash="h", roles=frozenset({UserRole.USER})
        )


def test_generic_failure_is_database_error():
    repo, _ = _repo(side_effect=RuntimeError("connection reset"))

    with pytest.raises(DatabaseError):
        repo.get_user_by_phone("+5351525354")


def test_update_user_builds_dynamic_set():
    user_id = uuid4()
    repo, conn = _repo(fetchone=_row(id=user_id, is_active=False))

    user = repo.update_user(user_id, is_active=False)

    assert user.is_active is False
    query, params = conn.execute.call_args.args
    assert "is_active = %s" in query
    assert "updated_at = now()" in query
    assert "roles" not in query.split("SET")[1].split("WHERE")[0]
    assert params == (False, user_id)


def test_update_user_without_changes_reads_current():
    user_id = uuid4()
    repo, conn = _repo(fetchone=_row(id=user_id))

    repo.update_user(user_id)

    query, _ = conn.execute.call_args.args
    assert query.strip().startswith("SELECT")


def test_list_users_guard_rails():
    repo, conn = _repo(fetchall=[_row(), _row(phone="+5351525355")])

    assert repo.list_users(limit=0) == []
    conn.execute.assert_not_called()

    users = repo.list_users(limit=10, offset=-5)

    assert len(users) == 2
    _, params = conn.execute.call_args.args
    assert params == (10, 0)


def test_ping():
    repo, _ = _repo(fetchone=(1,))

    assert repo.ping() is True
