# catalog/crosscutting/middleware.py
"""
===============================================================================
MÓDULO: Middleware HTTP de contexto
===============================================================================

RequestContextMiddleware:
   - Generar/propagar request_id (X-Request-Id)
   - Setear contextvars (method/path/user_id) para los logs
   - Log de finalización por request
   - Garantizar clear_context() para evitar leaks entre requests

Colaboradores:
  - catalog/context.py
  - crosscutting/logger.py
===============================================================================
"""

from __future__ import annotations

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..context import clear_context, set_request_context, set_user_context
from .logger import logger

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    _QUIET_PATHS = {"/healthz"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        request_id = (
            incoming if self._is_valid_request_id(incoming) else str(uuid.uuid4())
        )

        set_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )
        request.state.request_id = request_id

        start = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            self._bind_user(request)
            latency = time.perf_counter() - start
            logger.exception(
                "request falló",
                extra={"status_code": 500, "latency_ms": round(latency * 1000, 2)},
            )
            raise
        finally:
            self._bind_user(request)
            latency = time.perf_counter() - start
            if request.url.path not in self._QUIET_PATHS:
                logger.info(
                    "request completado",
                    extra={
                        "status_code": status_code,
                        "latency_ms": round(latency * 1000, 2),
                    },
                )
            clear_context()

    @staticmethod
    def _bind_user(request: Request) -> None:
        # R: la app corre en otra task; la identidad vuelve por request.state.
        identity = getattr(request.state, "identity", None)
        if identity is not None:
            set_user_context(str(identity.user.id))

    @staticmethod
    def _is_valid_request_id(value: str) -> bool:
        # Aceptamos UUIDs y también ids cortos razonables.
        return bool(value) and len(value) <= 128
