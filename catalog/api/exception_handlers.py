"""
===============================================================================
TARJETA CRC — catalog/api/exception_handlers.py (Manejo Centralizado de Excepciones)
===============================================================================

Responsabilidades:
  - Traducir errores del auth core e infraestructura a respuestas RFC7807.
  - Loguear el motivo interno (`reason`) de cada 401/403 con request_id,
    devolviendo al cliente solo el mensaje terso.
  - Evitar filtrar detalles internos en errores no controlados.

Colaboradores:
  - crosscutting.error_responses: AppHTTPException y factories por status
  - crosscutting.exceptions: CatalogError / DatabaseError
  - identity.errors: AuthError y derivadas
===============================================================================
"""

from __future__ import annotations

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..crosscutting.error_responses import (
    AppHTTPException,
    app_exception_handler,
    conflict,
    database_error,
    forbidden,
    internal_error,
    not_found,
    unauthorized,
    validation_error,
)
from ..crosscutting.exceptions import CatalogError, DatabaseError
from ..crosscutting.logger import logger
from ..identity.errors import (
    AuthError,
    ForbiddenError,
    IdentityMissingError,
    TokenError,
    UnauthenticatedError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)

MSG_INVALID_TOKEN = "Invalid or expired token"


def _request_id_from(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def _auth_error_to_http(exc: AuthError) -> AppHTTPException:
    if isinstance(exc, ValidationError):
        return validation_error(exc.message, exc.errors or None)
    if isinstance(exc, UserAlreadyExistsError):
        return conflict(exc.message)
    if isinstance(exc, UnauthenticatedError):
        return unauthorized(exc.message)
    if isinstance(exc, TokenError):
        return unauthorized(MSG_INVALID_TOKEN)
    if isinstance(exc, ForbiddenError):
        return forbidden(exc.message)
    if isinstance(exc, UserNotFoundError):
        return not_found(exc.message)
    if isinstance(exc, IdentityMissingError):
        return internal_error(exc.message)
    return internal_error("Unexpected error")


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    app_exc = _auth_error_to_http(exc)
    extra = {
        "code": app_exc.code.value,
        "reason": exc.reason,
        "request_id": _request_id_from(request),
    }
    if app_exc.status_code >= 500:
        logger.error("Auth core error", extra=extra)
    elif app_exc.status_code in (401, 403):
        logger.warning("Auth rechazado", extra=extra)
    return await app_exception_handler(request, app_exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Errores de pydantic/FastAPI -> 400 con errores por campo."""
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "body", "msg": err.get("msg", "")})
    return await app_exception_handler(request, validation_error("Invalid input", errors))


async def _handle_service_error(
    request: Request, exc: CatalogError, app_exc: AppHTTPException
) -> JSONResponse:
    logger.error(
        "Error de servicio",
        extra={
            "code": app_exc.code.value,
            "error_id": exc.error_id,
            "error": exc.message,
            "request_id": _request_id_from(request),
        },
    )
    # R: el cliente recibe solo el error_id para correlacionar con el log.
    app_exc.errors = [{"error_id": exc.error_id}]
    return await app_exception_handler(request, app_exc)


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    return await _handle_service_error(request, exc, database_error())


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    return await _handle_service_error(request, exc, internal_error())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Fallback para excepciones no tipadas.

    - Log completo (stacktrace) con el mensaje real.
    - El cliente recibe siempre el texto genérico, en cualquier entorno.
    """
    logger.error(
        "Excepción no controlada",
        exc_info=exc,
        extra={"request_id": _request_id_from(request), "error": str(exc)},
    )
    return await app_exception_handler(request, internal_error())


def register_exception_handlers(app) -> None:
    """
    Registra handlers en la app FastAPI.

    Exception genérica se registra al final como fallback.
    """
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(AppHTTPException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["register_exception_handlers"]
