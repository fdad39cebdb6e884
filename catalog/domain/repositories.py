"""
CRC — domain/repositories.py

Name
- Credential Store and notification ports (Protocols)

Responsibilities
- Define the persistence contract the auth core consults (never owns).
- Define the notification port used after register/login.

Collaborators
- identity.users: User, UserRole
- infrastructure.repositories: postgres / in_memory implementations
- infrastructure.notifications: LoggingAuthEventNotifier

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Repositories return None when the user does not exist (no exception).
- create_user raises identity.errors.UserAlreadyExistsError on duplicate phone.
- Only password hashes cross this boundary, never plaintext.
"""

from typing import Optional, Protocol
from uuid import UUID

from ..identity.users import User, UserRole


class UserRepository(Protocol):
    """
    R: Credential Store contract.

    Implementations must provide:
      - Lookup by phone (login) and by id (token validation)
      - Creation with unique phone
      - Role / active-flag mutations (admin)
    """

    def get_user_by_phone(self, phone: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        ...

    def list_users(self, *, limit: int = 50, offset: int = 0) -> list[User]:
        ...

    def create_user(
        self,
        *,
        phone: str,
        password_hash: str,
        roles: frozenset[UserRole],
        is_active: bool = True,
    ) -> User:
        ...

    def update_user(
        self,
        user_id: UUID,
        *,
        password_hash: str | None = None,
        roles: frozenset[UserRole] | None = None,
        is_active: bool | None = None,
    ) -> Optional[User]:
        """R: Returns the updated user, or None if it does not exist."""
        ...

    def ping(self) -> bool:
        ...


class AuthEventNotifier(Protocol):
    """
    R: Fan-out of auth events (WebSocket gateway in the full platform).

    Must be best-effort: a notification failure never fails the request.
    """

    def notify(self, phone: str, operation: str) -> None:
        ...
