"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/user.py
============================================================
Class: PostgresUserRepository

Responsibilities:
  - Cargar usuarios por email / id (login, guardas, refresh).
  - Crear usuarios (email único -> ConflictError).
  - Mutaciones de credenciales como UPDATE de una sola fila:
      refresh_token_hash + last_login, email verificado, 2FA, password, activo.
  - Mapear filas crudas -> entidad `User` validando `UserRole`.

Collaborators:
  - PostgresRepositoryBase (conexión + errores)
  - domain.entities.User / UserRole

Constraints / Notes:
  - Repositorio puro: NO define reglas de negocio.
  - Retorna None cuando no existe el recurso.
  - updated_at se estampa en cada UPDATE.
  - Orden estable en listados: created_at DESC, id DESC.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from ....crosscutting.exceptions import DatabaseError
from ....domain.entities import User, UserRole
from .base import PostgresRepositoryBase

# R: Lista explícita de columnas: contrato con la migración 001_identity.
_USER_COLUMNS = (
    "id, name, email, password_hash, role, is_active, is_email_verified, "
    "is_two_factor_enabled, two_factor_secret, refresh_token_hash, last_login, "
    "phone, address, created_at, updated_at"
)

_USER_ORDER_BY = "created_at DESC, id DESC"


def _row_to_user(row: tuple) -> User:
    try:
        role = UserRole(row[4])
    except ValueError as exc:
        raise DatabaseError(f"Invalid user role in database: {row[4]}") from exc

    return User(
        id=row[0],
        name=row[1],
        email=row[2],
        password_hash=row[3],
        role=role,
        is_active=row[5],
        is_email_verified=row[6],
        is_two_factor_enabled=row[7],
        two_factor_secret=row[8],
        refresh_token_hash=row[9],
        last_login=row[10],
        phone=row[11],
        address=row[12],
        created_at=row[13],
        updated_at=row[14],
    )


class PostgresUserRepository(PostgresRepositoryBase):
    conflict_message = "Email already exists"

    # =========================================================
    # Lectura
    # =========================================================
    def get_by_id(self, user_id: UUID) -> Optional[User]:
        row = self._fetchone(
            query=f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            params=(user_id,),
            log_msg="PostgresUserRepository: get_by_id failed",
            log_extra={"user_id": str(user_id)},
        )
        return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        # R: match exacto (case-sensitive, tal como se persistió).
        row = self._fetchone(
            query=f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s",
            params=(email,),
            log_msg="PostgresUserRepository: get_by_email failed",
            log_extra={},
        )
        return _row_to_user(row) if row else None

    def list_users(self, *, limit: int = 100, offset: int = 0) -> list[User]:
        if limit <= 0:
            return []
        rows = self._fetchall(
            query=f"""
                SELECT {_USER_COLUMNS}
                FROM users
                ORDER BY {_USER_ORDER_BY}
                LIMIT %s OFFSET %s
            """,
            params=(limit, max(offset, 0)),
            log_msg="PostgresUserRepository: list_users failed",
            log_extra={"limit": limit, "offset": offset},
        )
        return [_row_to_user(r) for r in rows]

    # =========================================================
    # Escritura
    # =========================================================
    def create(self, user: User) -> User:
        row = self._fetchone(
            query=f"""
                INSERT INTO users (
                    id, name, email, password_hash, role, is_active,
                    is_email_verified, is_two_factor_enabled, phone, address
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_USER_COLUMNS}
            """,
            params=(
                user.id,
                user.name,
                user.email,
                user.password_hash,
                user.role.value,
                user.is_active,
                user.is_email_verified,
                user.is_two_factor_enabled,
                user.phone,
                user.address,
            ),
            log_msg="PostgresUserRepository: create failed",
            log_extra={"user_id": str(user.id), "role": user.role.value},
        )
        if not row:
            raise DatabaseError("PostgresUserRepository: create returned no row")
        return _row_to_user(row)

    def _update(
        self, user_id: UUID, assignments: str, params: tuple, log_msg: str
    ) -> Optional[User]:
        # assignments es controlado por código (nunca input de usuario).
        row = self._fetchone(
            query=f"""
                UPDATE users
                SET {assignments}, updated_at = now()
                WHERE id = %s
                RETURNING {_USER_COLUMNS}
            """,
            params=(*params, user_id),
            log_msg=log_msg,
            log_extra={"user_id": str(user_id)},
        )
        return _row_to_user(row) if row else None

    def set_refresh_token_hash(
        self,
        user_id: UUID,
        refresh_token_hash: Optional[str],
        *,
        last_login: Optional[datetime] = None,
    ) -> Optional[User]:
        if last_login is None:
            return self._update(
                user_id,
                "refresh_token_hash = %s",
                (refresh_token_hash,),
                "PostgresUserRepository: set_refresh_token_hash failed",
            )
        return self._update(
            user_id,
            "refresh_token_hash = %s, last_login = %s",
            (refresh_token_hash, last_login),
            "PostgresUserRepository: set_refresh_token_hash failed",
        )

    def set_email_verified(self, user_id: UUID) -> Optional[User]:
        return self._update(
            user_id,
            "is_email_verified = %s",
            (True,),
            "PostgresUserRepository: set_email_verified failed",
        )

    def set_two_factor(
        self, user_id: UUID, *, secret: Optional[str], enabled: bool
    ) -> Optional[User]:
        return self._update(
            user_id,
            "two_factor_secret = %s, is_two_factor_enabled = %s",
            (secret, enabled),
            "PostgresUserRepository: set_two_factor failed",
        )

    def update_password(self, user_id: UUID, password_hash: str) -> Optional[User]:
        return self._update(
            user_id,
            "password_hash = %s",
            (password_hash,),
            "PostgresUserRepository: update_password failed",
        )

    def set_active(self, user_id: UUID, is_active: bool) -> Optional[User]:
        return self._update(
            user_id,
            "is_active = %s",
            (is_active,),
            "PostgresUserRepository: set_active failed",
        )
