"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Módulo:
    Entidades del dominio de identidad (usuarios, tiendas, tokens de verificación)

Responsabilidades:
    - Definir roles y estados como enums estables (valores persistidos).
    - Definir User / Store / VerificationToken como dataclasses inmutables.
    - Exponer reglas puras de las entidades (validez de token, estado 2FA).

Colaboradores:
    - domain/repositories.py: contratos que persisten estas entidades.
    - identity/*: servicios que mutan credenciales (vía repositorios).
    - application/views.py: proyecciones públicas (allow-list).

Reglas:
    - Sin IO ni dependencias de infraestructura.
    - password_hash / two_factor_secret / refresh_token_hash nunca salen del
      borde de identidad: las vistas públicas los omiten explícitamente.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """Roles soportados (valor = string persistido y emitido en el JWT)."""

    CUSTOMER = "customer"
    STORE_OWNER = "store_owner"
    ADMIN = "admin"


class TwoFactorState(str, Enum):
    """Sub-estado 2FA derivado de (secret, enabled)."""

    UNSET = "unset"
    SECRET_GENERATED = "secret_generated"
    ENABLED = "enabled"


@dataclass(frozen=True, slots=True)
class User:
    """Registro de identidad. Las mutaciones pasan por UserRepository."""

    id: UUID
    name: str
    email: str
    password_hash: str
    role: UserRole
    is_active: bool = True
    is_email_verified: bool = False
    is_two_factor_enabled: bool = False
    two_factor_secret: str | None = None
    refresh_token_hash: str | None = None
    last_login: datetime | None = None
    phone: str | None = None
    address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def two_factor_state(self) -> TwoFactorState:
        if self.is_two_factor_enabled and self.two_factor_secret:
            return TwoFactorState.ENABLED
        if self.two_factor_secret:
            return TwoFactorState.SECRET_GENERATED
        return TwoFactorState.UNSET

    @property
    def has_active_session(self) -> bool:
        return self.refresh_token_hash is not None


class StoreStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"


@dataclass(frozen=True, slots=True)
class Store:
    """Tienda creada junto con su owner en el registro de STORE_OWNER."""

    id: UUID
    name: str
    email: str
    owner_id: UUID
    address: str | None = None
    description: str | None = None
    status: StoreStatus = StoreStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None


class VerificationTokenType(str, Enum):
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True, slots=True)
class VerificationToken:
    """Capacidad bearer de un solo uso (el valor crudo es el secreto)."""

    id: UUID
    token: str
    type: VerificationTokenType
    user_id: UUID
    expires_at: datetime
    is_used: bool = False
    created_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Vencido si now >= expires_at (el límite exacto ya no es válido)."""
        current = now or datetime.now(timezone.utc)
        return current >= self.expires_at

    def is_valid(self, now: datetime | None = None) -> bool:
        return not self.is_used and not self.is_expired(now)
