"""
TARJETA CRC — infrastructure/repositories/postgres/verification_token.py

Class: PostgresVerificationTokenRepository
  - Persistir tokens de verificación / reset.
  - Borrar tokens sin usar de (usuario, tipo) antes de emitir uno nuevo.
  - Lookup por match exacto del token (unused) y marcado como usado.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from ....crosscutting.exceptions import DatabaseError
from ....domain.entities import VerificationToken, VerificationTokenType
from .base import PostgresRepositoryBase

_TOKEN_COLUMNS = "id, token, type, user_id, expires_at, is_used, created_at"


def _row_to_token(row: tuple) -> VerificationToken:
    return VerificationToken(
        id=row[0],
        token=row[1],
        type=VerificationTokenType(row[2]),
        user_id=row[3],
        expires_at=row[4],
        is_used=row[5],
        created_at=row[6],
    )


class PostgresVerificationTokenRepository(PostgresRepositoryBase):
    conflict_message = "Verification token collision"

    def create(self, token: VerificationToken) -> VerificationToken:
        row = self._fetchone(
            query=f"""
                INSERT INTO verification_tokens (id, token, type, user_id, expires_at, is_used)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING {_TOKEN_COLUMNS}
            """,
            params=(
                token.id,
                token.token,
                token.type.value,
                token.user_id,
                token.expires_at,
                token.is_used,
            ),
            log_msg="PostgresVerificationTokenRepository: create failed",
            log_extra={"user_id": str(token.user_id), "token_type": token.type.value},
        )
        if not row:
            raise DatabaseError(
                "PostgresVerificationTokenRepository: create returned no row"
            )
        return _row_to_token(row)

    def delete_unused(self, user_id: UUID, token_type: VerificationTokenType) -> int:
        return self._execute(
            query="""
                DELETE FROM verification_tokens
                WHERE user_id = %s AND type = %s AND is_used = false
            """,
            params=(user_id, token_type.value),
            log_msg="PostgresVerificationTokenRepository: delete_unused failed",
            log_extra={"user_id": str(user_id), "token_type": token_type.value},
        )

    def get_unused(
        self, token: str, token_type: VerificationTokenType
    ) -> Optional[VerificationToken]:
        row = self._fetchone(
            query=f"""
                SELECT {_TOKEN_COLUMNS}
                FROM verification_tokens
                WHERE token = %s AND type = %s AND is_used = false
            """,
            params=(token, token_type.value),
            log_msg="PostgresVerificationTokenRepository: get_unused failed",
            log_extra={"token_type": token_type.value},
        )
        return _row_to_token(row) if row else None

    def mark_used(self, token_id: UUID) -> bool:
        # R: el WHERE is_used = false hace del UPDATE el único punto de canje.
        claimed = self._execute(
            query=(
                "UPDATE verification_tokens SET is_used = true "
                "WHERE id = %s AND is_used = false"
            ),
            params=(token_id,),
            log_msg="PostgresVerificationTokenRepository: mark_used failed",
            log_extra={"token_id": str(token_id)},
        )
        return claimed == 1
