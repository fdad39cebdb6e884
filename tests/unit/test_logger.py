import json
import logging

import pytest

from catalog.context import clear_context, set_request_context, set_user_context
from catalog.crosscutting.logger import REDACTED, JSONFormatter

pytestmark = pytest.mark.unit


def _record(msg: str = "hola", **extra) -> logging.LogRecord:
    record = logging.LogRecord("catalog-api", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_secrets_are_redacted():
    payload = json.loads(
        JSONFormatter().format(
            _record(
                password="Str0ng!Pass",
                refresh_token="abc.def.ghi",
                nested={"Authorization": "Bearer x", "phone": "+5351525354"},
            )
        )
    )

    assert payload["password"] == REDACTED
    assert payload["refresh_token"] == REDACTED
    assert payload["nested"]["Authorization"] == REDACTED
    assert payload["nested"]["phone"] == "+5351525354"


def test_request_context_is_included():
    set_request_context(request_id="req-1", method="GET", path="/auth/verify")
    set_user_context("user-1")
    try:
        payload = json.loads(JSONFormatter().format(_record()))
    finally:
        clear_context()

    assert payload["request_id"] == "req-1"
    assert payload["method"] == "GET"
    assert payload["path"] == "/auth/verify"
    assert payload["user_id"] == "user-1"
    assert payload["message"] == "hola"


def test_cleared_context_is_omitted():
    clear_context()

    payload = json.loads(JSONFormatter().format(_record()))

    assert "request_id" not in payload
    assert "user_id" not in payload
