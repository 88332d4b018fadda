"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio (API pública del dominio)

Responsabilidades:
    - Centralizar exports para imports limpios en application/identity/api.

Reglas:
    - Solo re-exporta contratos/entidades del dominio.
    - No importar infraestructura aquí.
===============================================================================
"""

from .entities import (
    Store,
    StoreStatus,
    TwoFactorState,
    User,
    UserRole,
    VerificationToken,
    VerificationTokenType,
)
from .repositories import (
    StoreRepository,
    UnitOfWork,
    UnitOfWorkFactory,
    UserRepository,
    VerificationTokenRepository,
)
from .services import MailSender, ProfileCache

__all__ = [
    "Store",
    "StoreStatus",
    "TwoFactorState",
    "User",
    "UserRole",
    "VerificationToken",
    "VerificationTokenType",
    "StoreRepository",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "UserRepository",
    "VerificationTokenRepository",
    "MailSender",
    "ProfileCache",
]
