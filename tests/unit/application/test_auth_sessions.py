"""
Name: AuthSessionService Tests

Responsibilities:
  - Register: validation, uniqueness, default role, notification
  - Login: credentials, notification, wrong password is never a 400
  - Refresh: missing / invalid / expired token, dead user, rotation
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from catalog.application.auth_sessions import AuthSessionService
from catalog.identity.errors import (
    InvalidCredentialsError,
    UnauthenticatedError,
    UserAlreadyExistsError,
    ValidationError,
)
from catalog.identity.tokens import TokenType
from catalog.identity.users import UserRole
from catalog.identity.validation import CredentialPolicy

pytestmark = pytest.mark.unit

PHONE = "+5351525354"
PASSWORD = "Str0ng!Pass"


@pytest.fixture
def service(user_repo, token_codec, session_issuer, notifier) -> AuthSessionService:
    return AuthSessionService(
        users=user_repo,
        codec=token_codec,
        issuer=session_issuer,
        policy=CredentialPolicy(),
        notifier=notifier,
    )


class TestRegister:
    def test_creates_user_with_default_role(self, service, user_repo, token_codec):
        result = service.register(PHONE, PASSWORD)

        stored = user_repo.get_user_by_phone(PHONE)
        assert stored is not None
        assert stored.roles == frozenset({UserRole.USER})
        assert stored.password_hash != PASSWORD
        assert result.user.id == stored.id
        claims = token_codec.verify(result.tokens.access_token, TokenType.ACCESS)
        assert claims.user_id == stored.id

    def test_notifies_register(self, service, notifier):
        service.register(PHONE, PASSWORD)

        notifier.notify.assert_called_once_with(PHONE, "register")

    def test_duplicate_phone(self, service):
        service.register(PHONE, PASSWORD)

        with pytest.raises(UserAlreadyExistsError):
            service.register(PHONE, "0ther!Pass")

    def test_store_constraint_covers_race(self, service, user_repo, make_user):
        make_user(phone=PHONE)
        # R: el pre-check no ve al usuario, el store sí.
        user_repo.get_user_by_phone = Mock(return_value=None)

        with pytest.raises(UserAlreadyExistsError):
            service.register(PHONE, PASSWORD)

    def test_invalid_input_never_touches_store(self, service, user_repo):
        user_repo.create_user = Mock()

        with pytest.raises(ValidationError):
            service.register("12345", "weak")

        user_repo.create_user.assert_not_called()

    def test_notifier_failure_does_not_fail_register(self, service, notifier):
        notifier.notify.side_effect = RuntimeError("socket closed")

        result = service.register(PHONE, PASSWORD)

        assert result.user.phone == PHONE


class TestLogin:
    def test_login_round_trip(self, service, make_user, token_codec, notifier):
        user = make_user(phone=PHONE, password=PASSWORD)

        result = service.login(PHONE, PASSWORD)

        assert token_codec.verify(result.tokens.access_token, TokenType.ACCESS).user_id == user.id
        notifier.notify.assert_called_once_with(PHONE, "login")

    def test_weak_wrong_password_is_invalid_credentials(self, service, make_user):
        make_user(phone=PHONE, password=PASSWORD)

        with pytest.raises(InvalidCredentialsError):
            service.login(PHONE, "abc")

    def test_bad_phone_shape(self, service):
        with pytest.raises(ValidationError):
            service.login("not-a-phone", PASSWORD)

    def test_no_notification_on_failure(self, service, notifier):
        with pytest.raises(InvalidCredentialsError):
            service.login(PHONE, PASSWORD)

        notifier.notify.assert_not_called()


class TestRefresh:
    def test_missing_token(self, service):
        with pytest.raises(UnauthenticatedError) as excinfo:
            service.refresh(None)
        assert excinfo.value.message == "Refresh token not found"

    def test_access_token_rejected(self, service, make_user):
        make_user(phone=PHONE, password=PASSWORD)
        tokens = service.login(PHONE, PASSWORD).tokens

        with pytest.raises(UnauthenticatedError) as excinfo:
            service.refresh(tokens.access_token)
        assert excinfo.value.message == "Invalid or expired refresh token"

    def test_expired_refresh_token(self, service, make_user, clock):
        make_user(phone=PHONE, password=PASSWORD)
        clock.offset = -timedelta(days=8)
        tokens = service.login(PHONE, PASSWORD).tokens
        clock.offset = timedelta(0)

        with pytest.raises(UnauthenticatedError) as excinfo:
            service.refresh(tokens.refresh_token)
        assert excinfo.value.message == "Invalid or expired refresh token"

    def test_inactive_user(self, service, make_user, user_repo):
        user = make_user(phone=PHONE, password=PASSWORD)
        tokens = service.login(PHONE, PASSWORD).tokens
        user_repo.update_user(user.id, is_active=False)

        with pytest.raises(UnauthenticatedError) as excinfo:
            service.refresh(tokens.refresh_token)
        assert excinfo.value.message == "Invalid user"

    def test_rotates_with_live_roles(self, service, make_user, user_repo, token_codec):
        user = make_user(phone=PHONE, password=PASSWORD)
        tokens = service.login(PHONE, PASSWORD).tokens
        user_repo.update_user(user.id, roles=frozenset({UserRole.ADMIN}))

        result = service.refresh(tokens.refresh_token)

        claims = token_codec.verify(result.tokens.access_token, TokenType.ACCESS)
        assert claims.roles == frozenset({UserRole.ADMIN})
        assert token_codec.verify(result.tokens.refresh_token, TokenType.REFRESH)
