"""
Name: Session Lifecycle Endpoint Tests

Responsibilities:
  - register / login / logout / refresh / verify over HTTP
  - Cookie transport and Bearer fallback
  - Live deactivation and token-type separation
  - End-to-end: register -> login -> verify -> expire -> refresh -> verify
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.unit

PHONE = "+5351525354"
PASSWORD = "Str0ng!Pass"


def _register(client, phone=PHONE, password=PASSWORD):
    return client.post("/auth/register", json={"phone": phone, "password": password})


def _login(client, phone=PHONE, password=PASSWORD):
    return client.post("/auth/login", json={"phone": phone, "password": password})


class TestRegister:
    def test_register_ok_sets_cookies(self, client, notifier):
        response = _register(client)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Successful register!"
        assert body["phone"] == PHONE
        assert body["roles"] == ["USER"]
        assert body["is_active"] is True
        assert "password_hash" not in body
        assert response.cookies.get("access_token")
        assert response.cookies.get("refresh_token")
        notifier.notify.assert_called_once_with(PHONE, "register")

    def test_register_cookie_attributes(self, client):
        response = _register(client)

        set_cookies = response.headers.get_list("set-cookie")
        assert len(set_cookies) == 2
        for cookie in set_cookies:
            assert "HttpOnly" in cookie
            assert "SameSite=strict" in cookie

    def test_duplicate_register_is_conflict(self, client, user_repo):
        first = _register(client)
        assert first.status_code == 200

        response = _register(client, password="0ther!Pass")

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "CONFLICT"
        assert body["detail"] == "Phone already registered"
        stored = user_repo.get_user_by_phone(PHONE)
        assert str(stored.id) == first.json()["id"]
        assert len(user_repo.list_users(limit=10)) == 1

    def test_invalid_phone(self, client):
        response = _register(client, phone="5351525354")

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any(e.get("field") == "phone" for e in body["errors"])
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_weak_password(self, client):
        response = _register(client, password="password")

        assert response.status_code == 400
        assert any(e.get("field") == "password" for e in response.json()["errors"])

    def test_missing_field_is_400(self, client):
        response = client.post("/auth/register", json={"phone": PHONE})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_oversized_password_rejected_before_hashing(self, client, user_repo):
        response = _register(client, password="Aa1!" * 200)

        assert response.status_code == 400
        assert any(e.get("field") == "password" for e in response.json()["errors"])
        assert user_repo.get_user_by_phone(PHONE) is None

    def test_oversized_phone_rejected(self, client):
        response = _login(client, phone="+53" + "1" * 40)

        assert response.status_code == 400
        assert any(e.get("field") == "phone" for e in response.json()["errors"])


class TestLogin:
    def test_login_ok(self, client, make_user, notifier):
        user = make_user()

        response = _login(client)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Successful login!"
        assert body["id"] == str(user.id)
        notifier.notify.assert_called_once_with(PHONE, "login")

    def test_wrong_password_is_401(self, client, make_user):
        make_user()

        response = _login(client, password="abc")

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "UNAUTHORIZED"
        assert body["detail"] == "Invalid credentials"

    def test_unknown_phone_same_message(self, client):
        response = _login(client, phone="+5359999999")

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_inactive_user_cannot_login(self, client, make_user):
        make_user(is_active=False)

        response = _login(client)

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_malformed_phone_is_400(self, client):
        assert _login(client, phone="hello").status_code == 400


class TestVerify:
    def test_verify_with_cookie(self, client, make_user):
        user = make_user()
        _login(client)

        response = client.get("/auth/verify")

        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(user.id)
        assert response.json()["user"]["roles"] == ["USER"]

    def test_verify_with_bearer(self, app, make_user):
        make_user()
        token = _login(TestClient(app)).cookies["access_token"]

        response = TestClient(app).get(
            "/auth/verify", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200

    def test_verify_without_token(self, client):
        response = client.get("/auth/verify")

        assert response.status_code == 401
        assert response.json()["detail"] == "Access token not found"

    def test_refresh_token_rejected_as_access(self, app, make_user):
        make_user()
        refresh_token = _login(TestClient(app)).cookies["refresh_token"]

        response = TestClient(app).get(
            "/auth/verify", headers={"Authorization": f"Bearer {refresh_token}"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_deactivated_user_loses_access(self, client, make_user, user_repo):
        user = make_user()
        _login(client)
        assert client.get("/auth/verify").status_code == 200

        user_repo.update_user(user.id, is_active=False)

        assert client.get("/auth/verify").status_code == 401


class TestLogout:
    def test_logout_clears_cookies(self, client, make_user):
        make_user()
        _login(client)

        response = client.post("/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logout successful"}
        assert client.get("/auth/verify").status_code == 401

    def test_logout_is_idempotent(self, client):
        first = client.post("/auth/logout")
        second = client.post("/auth/logout")

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()


class TestRefresh:
    def test_refresh_without_cookie(self, client):
        response = client.post("/auth/refresh")

        assert response.status_code == 401
        assert response.json()["detail"] == "Refresh token not found"

    def test_refresh_with_garbage(self, client):
        client.cookies.set("refresh_token", "garbage")

        response = client.post("/auth/refresh")

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired refresh token"

    def test_refresh_for_deactivated_user(self, client, make_user, user_repo):
        user = make_user()
        _login(client)
        user_repo.update_user(user.id, is_active=False)

        response = client.post("/auth/refresh")

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid user"


def test_register_login_verify_expire_refresh(client, clock):
    phone = "+5351234567"

    registered = _register(client, phone=phone)
    assert registered.status_code == 200
    assert registered.json()["roles"] == ["USER"]

    assert _login(client, phone=phone).status_code == 200

    verified = client.get("/auth/verify")
    assert verified.status_code == 200
    assert verified.json()["user"]["phone"] == phone

    # El access token vive 15 minutos; el refresh, 7 días.
    clock.offset = timedelta(minutes=16)

    expired = client.get("/auth/verify")
    assert expired.status_code == 401
    assert expired.json()["detail"] == "Invalid or expired token"

    refreshed = client.post("/auth/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json() == {"message": "Tokens refreshed successfully"}
    assert refreshed.cookies.get("access_token")
    assert refreshed.cookies.get("refresh_token")

    again = client.get("/auth/verify")
    assert again.status_code == 200
    assert again.json()["user"]["phone"] == phone
