# catalog/crosscutting/logger.py
"""
===============================================================================
MÓDULO: Logger estructurado (JSON) del Catalog API
===============================================================================

CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  JSONFormatter + setup_logger()

Responsabilidades:
  - Emitir una línea JSON por evento (parseable por el colector de logs)
  - Adjuntar el contexto del request actual (request_id, method, path, user_id)
  - Redactar material de sesión: passwords, hashes, JWT, cookies

Colaboradores:
  - catalog/context.py (ContextVars)
  - crosscutting/config.py (log_level / log_json)

Notas:
  - La redacción es por fragmento de clave: "refresh_token", "Set-Cookie" o
    "jwt_secret" caen en la regla aunque no estén listados uno por uno.
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

# Atributos estándar de un LogRecord; todo lo demás vino por `extra`.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

REDACTED = "***REDACTADO***"

_SENSITIVE_FRAGMENTS = ("password", "passwd", "secret", "token", "cookie", "authorization")
_MAX_STR = 4_000
_MAX_DEPTH = 4


def _is_sensitive(key: str | None) -> bool:
    if not key:
        return False
    lowered = key.lower()
    return any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)


def sanitize(value: Any, key: str | None = None, depth: int = 0) -> Any:
    """Redacta claves sensibles y acota strings/estructuras anidadas."""
    if _is_sensitive(key):
        return REDACTED
    if depth >= _MAX_DEPTH:
        return "<max depth>"

    if isinstance(value, dict):
        return {str(k): sanitize(v, str(k), depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [sanitize(v, key, depth + 1) for v in value]
    if isinstance(value, str) and len(value) > _MAX_STR:
        return value[:_MAX_STR] + "...(truncado)"
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    return value


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        from ..context import get_context_dict

        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "pid": os.getpid(),
            **get_context_dict(),
        }

        payload.update(
            (k, sanitize(v, k))
            for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS
        )

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(name: str = "catalog-api") -> logging.Logger:
    """
    Logger global de la app.

    Lee nivel y formato de Settings; si la config aún no es válida (ej: falta
    JWT_SECRET en prod) usa INFO + JSON y el error real aparece en startup.
    """
    log = logging.getLogger(name)

    try:
        from .config import get_settings

        settings = get_settings()
        level, use_json = (settings.log_level or "INFO").upper(), settings.log_json
    except ValueError:
        level, use_json = "INFO", True

    log.setLevel(getattr(logging, level, logging.INFO))

    # Reimports (tests, reload de uvicorn) no deben duplicar handlers.
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            JSONFormatter() if use_json else logging.Formatter("%(levelname)s %(message)s")
        )
        log.addHandler(handler)
        log.propagate = False

    return log


logger = setup_logger()
