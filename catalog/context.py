"""
===============================================================================
TARJETA CRC — catalog/context.py (Contexto por request)
===============================================================================

Responsabilidades:
  - Guardar request_id / method / path / user_id del request en curso
    (ContextVars: sirve igual en el event loop y en el threadpool).
  - Exponerlos como dict para el logger JSON.

Colaboradores:
  - crosscutting.middleware: abre y cierra el contexto de cada request.
  - identity.guards: agrega user_id cuando la identidad queda resuelta.
  - crosscutting.logger: get_context_dict().

Restricciones:
  - Solo strings; "" significa "no disponible" y se omite del log.
  - Nunca guardar el teléfono ni tokens acá.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar

_request_id: ContextVar[str] = ContextVar("request_id", default="")
_method: ContextVar[str] = ContextVar("http_method", default="")
_path: ContextVar[str] = ContextVar("http_path", default="")
_user_id: ContextVar[str] = ContextVar("user_id", default="")

# Clave en el log -> variable
_FIELDS: dict[str, ContextVar[str]] = {
    "request_id": _request_id,
    "method": _method,
    "path": _path,
    "user_id": _user_id,
}


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = ""
) -> None:
    _request_id.set(request_id or "")
    _method.set(method or "")
    _path.set(path or "")


def set_user_context(user_id: str) -> None:
    _user_id.set(user_id or "")


def get_context_dict() -> dict[str, str]:
    return {key: value for key, var in _FIELDS.items() if (value := var.get())}


def clear_context() -> None:
    """Se llama al cerrar cada request para que el contexto no se filtre al siguiente."""
    for var in _FIELDS.values():
        var.set("")
