"""
Name: RFC7807 / Health / Request Context Tests

Responsibilities:
  - Health check shape
  - X-Request-Id propagation into responses and error bodies
  - Infrastructure errors mapped to 503 / 500 without leaking internals
  - Authenticated user id carried into request logs
"""

import json
import logging
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from catalog import container
from catalog.crosscutting.exceptions import DatabaseError
from catalog.crosscutting.logger import JSONFormatter

pytestmark = pytest.mark.unit


def test_healthz_ok(client):
    response = client.get("/healthz", headers={"X-Request-Id": "req-123"})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "db": "connected", "request_id": "req-123"}
    assert response.headers["X-Request-Id"] == "req-123"


def test_healthz_db_down(app):
    broken = Mock()
    broken.ping.side_effect = DatabaseError("down")
    app.dependency_overrides[container.get_user_repository] = lambda: broken

    body = TestClient(app).get("/healthz").json()

    assert body["ok"] is False
    assert body["db"] == "disconnected"


def test_request_id_generated_when_missing(client):
    response = client.get("/healthz")

    assert response.headers.get("X-Request-Id")


def test_error_body_carries_request_id(client):
    response = client.get("/auth/verify", headers={"X-Request-Id": "req-401"})

    assert response.status_code == 401
    assert {"request_id": "req-401"} in response.json()["errors"]


def test_database_error_is_503(app):
    broken = Mock()
    broken.get_user_by_phone.side_effect = DatabaseError("connection refused on 10.0.0.5")
    app.dependency_overrides[container.get_user_repository] = lambda: broken

    response = TestClient(app).post(
        "/auth/login", json={"phone": "+5351525354", "password": "Str0ng!Pass"}
    )

    assert response.status_code == 503
    body = response.json()
    assert body["code"] == "DATABASE_ERROR"
    assert "10.0.0.5" not in body["detail"]


def test_unhandled_error_is_500(app):
    broken = Mock()
    broken.get_user_by_phone.side_effect = RuntimeError("boom")
    app.dependency_overrides[container.get_user_repository] = lambda: broken

    response = TestClient(app, raise_server_exceptions=False).post(
        "/auth/login", json={"phone": "+5351525354", "password": "Str0ng!Pass"}
    )

    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
    assert response.json()["detail"] == "Unexpected error"
    assert "boom" not in str(response.json())


class _JSONLines(logging.Handler):
    """Formatea al emitir, en el contexto de quien loguea."""

    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(JSONFormatter())
        self.lines: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(json.loads(self.format(record)))


@pytest.fixture
def json_log():
    handler = _JSONLines()
    log = logging.getLogger("catalog-api")
    log.addHandler(handler)
    try:
        yield handler.lines
    finally:
        log.removeHandler(handler)


def test_user_id_reaches_request_logs(client, make_user, json_log):
    user = make_user()
    client.post("/auth/login", json={"phone": user.phone, "password": "Str0ng!Pass"})

    response = client.get("/auth/users")

    assert response.status_code == 403
    rejected = [line for line in json_log if line["message"] == "Auth rechazado"]
    completed = [
        line
        for line in json_log
        if line["message"] == "request completado" and line.get("path") == "/auth/users"
    ]
    assert rejected and completed
    assert rejected[-1]["user_id"] == str(user.id)
    assert completed[-1]["user_id"] == str(user.id)


def test_user_id_absent_for_anonymous_request(client, json_log):
    client.get("/auth/verify")

    completed = [line for line in json_log if line["message"] == "request completado"]
    assert completed
    assert "user_id" not in completed[-1]
