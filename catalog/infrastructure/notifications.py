"""
===============================================================================
TARJETA CRC — infrastructure/notifications.py
===============================================================================

Componente:
    LoggingAuthEventNotifier (adapter de AuthEventNotifier)

Responsabilidades:
    - Publicar "The user <phone> performed the operation <op>" tras
      register / login.

Colaboradores:
    - domain.repositories.AuthEventNotifier (puerto)
    - crosscutting.logger

Notas:
    - Reemplazable por un broadcaster real (WebSocket) sin tocar el core.
===============================================================================
"""

from __future__ import annotations

from ..crosscutting.logger import logger


class LoggingAuthEventNotifier:
    def notify(self, phone: str, operation: str) -> None:
        logger.info(
            f"The user {phone} performed the operation {operation}",
            extra={"auth_operation": operation},
        )
