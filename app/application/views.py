"""
===============================================================================
TARJETA CRC — application/views.py
===============================================================================

Módulo:
    Proyecciones públicas de User (allow-list explícita)

Responsabilidades:
    - Definir QUÉ campos salen del sistema por cada vista (perfil / admin).
    - Serializar a tipos JSON-friendly (UUID/datetime -> str) para caché y HTTP.

Reglas:
    - Nunca incluir password_hash, two_factor_secret ni refresh_token_hash:
      las vistas enumeran campos permitidos; nada se copia "por defecto".
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..domain.entities import Store, User

PROFILE_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "email",
    "phone",
    "address",
    "role",
    "is_active",
    "is_email_verified",
    "is_two_factor_enabled",
    "last_login",
    "created_at",
    "updated_at",
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value"):  # Enum
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def to_profile_view(user: User) -> dict[str, Any]:
    return {name: _jsonable(getattr(user, name)) for name in PROFILE_FIELDS}


def to_admin_view(user: User, store: Store | None = None) -> dict[str, Any]:
    view = to_profile_view(user)
    view["store_id"] = str(store.id) if store else None
    view["store_name"] = store.name if store else None
    view["store_status"] = store.status.value if store else None
    return view
