"""
===============================================================================
TARJETA CRC — identity/validation.py
===============================================================================

Responsabilidades:
    - Validar formato de teléfono (patrón regional configurable).
    - Validar política de password "fuerte" (largo + mayúscula, minúscula,
      dígito y símbolo).
    - Devolver errores por campo ({"field", "msg"}) listos para RFC7807.

Colaboradores:
    - crosscutting.config.Settings: phone_pattern, password_min/max_length.
    - application/auth_sessions.py: corre los validadores antes de tocar el store.
===============================================================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .errors import ValidationError

FIELD_PHONE = "phone"
FIELD_PASSWORD = "password"

_SYMBOL_RE = re.compile(r"[^A-Za-z0-9]")


@dataclass(frozen=True, slots=True)
class CredentialPolicy:
    phone_pattern: str = r"^\+53\d{8}$"
    password_min_length: int = 8
    password_max_length: int = 50

    @classmethod
    def from_settings(cls, settings) -> "CredentialPolicy":
        return cls(
            phone_pattern=settings.phone_pattern,
            password_min_length=settings.password_min_length,
            password_max_length=settings.password_max_length,
        )


def _field_error(field: str, msg: str) -> dict[str, Any]:
    return {"field": field, "msg": msg}


def phone_errors(phone: str, policy: CredentialPolicy) -> list[dict[str, Any]]:
    if not isinstance(phone, str) or not phone:
        return [_field_error(FIELD_PHONE, "phone is required")]
    if not re.fullmatch(policy.phone_pattern, phone):
        return [
            _field_error(
                FIELD_PHONE,
                "The phone number is not valid (example: +5351525354)",
            )
        ]
    return []


def password_errors(password: str, policy: CredentialPolicy) -> list[dict[str, Any]]:
    if not isinstance(password, str) or not password:
        return [_field_error(FIELD_PASSWORD, "password is required")]

    errors: list[dict[str, Any]] = []
    if len(password) < policy.password_min_length:
        errors.append(
            _field_error(
                FIELD_PASSWORD,
                f"password must be at least {policy.password_min_length} characters",
            )
        )
    if len(password) > policy.password_max_length:
        errors.append(
            _field_error(
                FIELD_PASSWORD,
                f"password must be at most {policy.password_max_length} characters",
            )
        )

    missing = [
        label
        for label, ok in (
            ("a lowercase letter", any(c.islower() for c in password)),
            ("an uppercase letter", any(c.isupper() for c in password)),
            ("a digit", any(c.isdigit() for c in password)),
            ("a symbol", bool(_SYMBOL_RE.search(password))),
        )
        if not ok
    ]
    if missing:
        errors.append(
            _field_error(
                FIELD_PASSWORD,
                "password is not strong enough: missing " + ", ".join(missing),
            )
        )
    return errors


def validate_credentials(phone: str, password: str, policy: CredentialPolicy) -> None:
    """
    Validación de registro: teléfono + política completa de password.

    Raises:
        ValidationError: con la lista completa de errores por campo.
    """
    errors = [*phone_errors(phone, policy), *password_errors(password, policy)]
    if errors:
        raise ValidationError("Invalid input", errors=errors)


def validate_login(phone: str, password: str, policy: CredentialPolicy) -> None:
    """
    Validación de login: solo forma.

    La fuerza del password no se evalúa acá; un password incorrecto debe
    terminar siempre en 401, nunca en 400.
    """
    errors = phone_errors(phone, policy)
    if not isinstance(password, str) or not password:
        errors.append(_field_error(FIELD_PASSWORD, "password is required"))
    elif len(password) > policy.password_max_length:
        errors.append(
            _field_error(
                FIELD_PASSWORD,
                f"password must be at most {policy.password_max_length} characters",
            )
        )
    if errors:
        raise ValidationError("Invalid input", errors=errors)
