"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Isolate Settings from any local .env
  - Provide an in-memory Credential Store and a controllable clock
  - Build a ready-made app with dependency overrides (no DB, no lifespan)
  - Offer user factories with real Argon2 hashes

Collaborators:
  - pytest
  - fastapi.testclient.TestClient
  - catalog.container factories (overridden per test)

Notes:
  - Tokens are signed with a shifted clock and verified by PyJWT against real
    time, so moving the clock into the past produces expired tokens.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Callable
from unittest.mock import Mock

import pytest

from catalog.crosscutting import config as app_config

app_config.Settings.model_config["env_file"] = None

os.environ.setdefault("APP_ENV", "test")

from catalog import container  # noqa: E402
from catalog.api.main import create_app  # noqa: E402
from catalog.identity.passwords import hash_password  # noqa: E402
from catalog.identity.sessions import CookieSettings, SessionIssuer  # noqa: E402
from catalog.identity.tokens import TokenCodec  # noqa: E402
from catalog.identity.users import User, UserRole  # noqa: E402
from catalog.identity.validation import CredentialPolicy  # noqa: E402
from catalog.infrastructure.repositories import InMemoryUserRepository  # noqa: E402

TEST_SECRET = "test-secret-with-enough-length-for-hs256"
STRONG_PASSWORD = "Str0ng!Pass"


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


class ShiftedClock:
    """UTC clock with an adjustable offset (negative => past)."""

    def __init__(self) -> None:
        self.offset = timedelta(0)

    def __call__(self) -> datetime:
        return datetime.now(timezone.utc) + self.offset


@pytest.fixture(autouse=True)
def _reset_cached_factories():
    yield
    for factory in (
        app_config.get_settings,
        container.get_user_repository,
        container.get_token_codec,
        container.get_session_issuer,
        container.get_cookie_settings,
        container.get_credential_policy,
        container.get_auth_event_notifier,
    ):
        factory.cache_clear()


@pytest.fixture
def clock() -> ShiftedClock:
    return ShiftedClock()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def token_codec(clock: ShiftedClock) -> TokenCodec:
    return TokenCodec(TEST_SECRET, clock=clock)


@pytest.fixture
def session_issuer(token_codec: TokenCodec) -> SessionIssuer:
    return SessionIssuer(token_codec)


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def make_user(user_repo: InMemoryUserRepository) -> Callable[..., User]:
    """R: Factory that persists a user with a real Argon2 hash."""

    def _make(
        phone: str = "+5351525354",
        password: str = STRONG_PASSWORD,
        roles: frozenset[UserRole] = frozenset({UserRole.USER}),
        is_active: bool = True,
    ) -> User:
        return user_repo.create_user(
            phone=phone,
            password_hash=hash_password(password),
            roles=roles,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def app(user_repo, token_codec, session_issuer, notifier):
    application = create_app()
    application.dependency_overrides[container.get_user_repository] = lambda: user_repo
    application.dependency_overrides[container.get_token_codec] = lambda: token_codec
    application.dependency_overrides[container.get_session_issuer] = (
        lambda: session_issuer
    )
    application.dependency_overrides[container.get_cookie_settings] = (
        lambda: CookieSettings()
    )
    application.dependency_overrides[container.get_credential_policy] = (
        lambda: CredentialPolicy()
    )
    application.dependency_overrides[container.get_auth_event_notifier] = (
        lambda: notifier
    )
    return application


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)
