# catalog/crosscutting/error_responses.py
"""
===============================================================================
MÓDULO: Problem Details (RFC 7807) del Catalog API
===============================================================================

CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  AppHTTPException + app_exception_handler

Responsabilidades:
  - Catálogo estable de códigos (ErrorCode) para el frontend
  - Payload problem+json (ErrorDetail) con instance y request_id
  - Factories por status usadas por api/exception_handlers.py

Colaboradores:
  - crosscutting/middleware.py (request.state.request_id)
  - api/exception_handlers.py (traduce AuthError / DatabaseError)

Notas:
  - Teléfono duplicado en /auth/register es 400 con code=CONFLICT: el
    contrato público del registro no usa 409.
  - El detail de 401 es siempre terso; el motivo real va solo al log.
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


class ErrorDetail(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    # ej: [{"field": "phone", "msg": "..."}, {"request_id": "..."}]
    errors: list[dict[str, Any]] | None = None


class AppHTTPException(HTTPException):
    """HTTPException con ErrorCode estable y errores de campo opcionales."""

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code
        self.errors = errors


def validation_error(
    detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return AppHTTPException(400, ErrorCode.VALIDATION_ERROR, detail, errors)


def conflict(detail: str) -> AppHTTPException:
    return AppHTTPException(400, ErrorCode.CONFLICT, detail)


def unauthorized(detail: str = "Authentication required") -> AppHTTPException:
    return AppHTTPException(401, ErrorCode.UNAUTHORIZED, detail)


def forbidden(detail: str = "Access denied") -> AppHTTPException:
    return AppHTTPException(403, ErrorCode.FORBIDDEN, detail)


def not_found(detail: str = "Resource not found") -> AppHTTPException:
    return AppHTTPException(404, ErrorCode.NOT_FOUND, detail)


def internal_error(detail: str = "Unexpected error") -> AppHTTPException:
    return AppHTTPException(500, ErrorCode.INTERNAL_ERROR, detail)


def database_error(detail: str = "Database operation failed") -> AppHTTPException:
    return AppHTTPException(503, ErrorCode.DATABASE_ERROR, detail)


def _problem(status: HTTPStatus) -> dict[str, Any]:
    return {
        "description": f"{status.phrase} (RFC7807)",
        "model": ErrorDetail,
        "content": {
            PROBLEM_JSON_MEDIA_TYPE: {
                "schema": {"$ref": "#/components/schemas/ErrorDetail"}
            }
        },
    }


# R: se adjunta al router /auth para documentar problem+json en OpenAPI.
OPENAPI_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.value: _problem(status)
    for status in (
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.UNAUTHORIZED,
        HTTPStatus.FORBIDDEN,
        HTTPStatus.NOT_FOUND,
    )
}
OPENAPI_ERROR_RESPONSES["default"] = _problem(HTTPStatus.INTERNAL_SERVER_ERROR)


async def app_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)

    errors = list(exc.errors or [])
    if request_id:
        errors.append({"request_id": request_id})

    body = ErrorDetail(
        type=f"about:blank/{exc.code.value.lower()}",
        title=HTTPStatus(exc.status_code).phrase,
        status=exc.status_code,
        detail=str(exc.detail),
        code=exc.code,
        instance=str(request.url),
        errors=errors or None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=exc.headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )
