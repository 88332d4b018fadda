"""
===============================================================================
TARJETA CRC — domain/services.py
===============================================================================

Módulo:
    Puertos de Servicios Externos (Protocols)

Responsabilidades:
    - Definir contratos para envío de emails y caché de perfiles.
    - Proteger a application de detalles del proveedor (SMTP, Redis).

Colaboradores:
    - infrastructure/mail.py, infrastructure/cache.py: implementaciones.
    - application/usecases/auth: consumen estos puertos.

Reglas:
    - SOLO interfaces: nada de implementación.
===============================================================================
"""

from __future__ import annotations

from typing import Any, Optional, Protocol
from uuid import UUID


class MailSender(Protocol):
    """Contrato para mails transaccionales de identidad."""

    def send_verification_email(self, *, to: str, name: str, token: str) -> None:
        """Envía el link de verificación de email."""
        ...

    def send_password_reset_email(self, *, to: str, name: str, token: str) -> None:
        """Envía el link de reseteo de password."""
        ...


class ProfileCache(Protocol):
    """Caché get/set/invalidate de vistas de perfil (side-channel best-effort)."""

    def get(self, user_id: UUID) -> Optional[dict[str, Any]]: ...

    def set(self, user_id: UUID, profile: dict[str, Any]) -> None: ...

    def invalidate(self, user_id: UUID) -> None: ...
