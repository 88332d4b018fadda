"""
===============================================================================
TARJETA CRC — identity/verification.py
===============================================================================

Módulo:
    Tokens de verificación de un solo uso (email / password reset)

Responsabilidades:
    - Emitir tokens aleatorios (32 bytes -> 64 hex) con vencimiento por tipo.
    - Garantizar a lo sumo UN token sin usar por (usuario, tipo).
    - Consumir tokens de verificación de email (marca usado + email verificado).
    - Validar tokens de reseteo de password.
    - Canje atómico: UPDATE condicional + cambio del usuario en una unidad
      de trabajo (de dos canjes concurrentes, gana uno).

Colaboradores:
    - secrets: generación criptográficamente segura.
    - domain.repositories: VerificationTokenRepository, UserRepository.
    - crosscutting.config: TTL por tipo (24h / 1h por defecto).

Semántica de errores:
    - Token inexistente o ya usado  -> NotFoundError (email verification)
    - Token vencido                 -> TokenExpiredError
    - Reset inválido/vencido        -> UnauthorizedError
    - Búsqueda SIEMPRE por match exacto del string (sin prefijos).
===============================================================================
"""

from __future__ import annotations

import secrets
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator
from uuid import UUID, uuid4

from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import (
    NotFoundError,
    TokenExpiredError,
    UnauthorizedError,
)
from ..crosscutting.logger import logger
from ..domain.entities import User, VerificationToken, VerificationTokenType
from ..domain.repositories import (
    UnitOfWorkFactory,
    UserRepository,
    VerificationTokenRepository,
)

TOKEN_BYTES: int = 32


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def default_ttls() -> dict[VerificationTokenType, timedelta]:
    s = get_settings()
    return {
        VerificationTokenType.EMAIL_VERIFICATION: timedelta(
            hours=s.email_verification_ttl_hours
        ),
        VerificationTokenType.PASSWORD_RESET: timedelta(
            hours=s.password_reset_ttl_hours
        ),
    }


class VerificationTokenService:
    def __init__(
        self,
        tokens: VerificationTokenRepository,
        users: UserRepository,
        ttls: dict[VerificationTokenType, timedelta] | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        uow_factory: UnitOfWorkFactory | None = None,
    ) -> None:
        self._tokens = tokens
        self._users = users
        self._uow_factory = uow_factory
        self._ttls = ttls or default_ttls()
        self._clock = clock

    def issue(self, user: User, token_type: VerificationTokenType) -> str:
        """Borra tokens previos sin usar del tipo y persiste uno nuevo."""
        self._tokens.delete_unused(user.id, token_type)

        now = self._clock()
        raw = generate_token()
        self._tokens.create(
            VerificationToken(
                id=uuid4(),
                token=raw,
                type=token_type,
                user_id=user.id,
                expires_at=now + self._ttls[token_type],
                is_used=False,
                created_at=now,
            )
        )
        logger.info(
            "Token de verificación emitido",
            extra={"user_id": str(user.id), "token_type": token_type.value},
        )
        return raw

    @contextmanager
    def _writes(
        self,
    ) -> Iterator[tuple[VerificationTokenRepository, UserRepository]]:
        """Canje del token + cambio del usuario: juntos o ninguno."""
        if self._uow_factory is None:
            yield self._tokens, self._users
            return
        with self._uow_factory() as uow:
            yield uow.tokens, uow.users

    def consume_email_verification(self, token: str) -> User:
        record = self._tokens.get_unused(
            token, VerificationTokenType.EMAIL_VERIFICATION
        )
        if record is None:
            raise NotFoundError("Invalid or expired verification token")
        if record.is_expired(self._clock()):
            raise TokenExpiredError("Verification token has expired")

        with self._writes() as (tokens, users):
            # R: dos requests con el mismo token: solo uno gana el UPDATE.
            if not tokens.mark_used(record.id):
                raise NotFoundError("Invalid or expired verification token")
            user = users.set_email_verified(record.user_id)
            if user is None:
                raise NotFoundError("User not found")

        logger.info("Email verificado", extra={"user_id": str(user.id)})
        return user

    def validate_password_reset_token(self, token: str) -> tuple[User, UUID]:
        """Retorna (usuario, id del token); el canje ocurre en complete_password_reset."""
        record = self._tokens.get_unused(token, VerificationTokenType.PASSWORD_RESET)
        if record is None or record.is_expired(self._clock()):
            raise UnauthorizedError("Invalid or expired password reset token")

        user = self._users.get_by_id(record.user_id)
        if user is None:
            raise UnauthorizedError("Invalid or expired password reset token")
        return user, record.id

    def mark_used(self, token_id: UUID) -> None:
        if not self._tokens.mark_used(token_id):
            raise UnauthorizedError("Invalid or expired password reset token")

    def complete_password_reset(
        self, user_id: UUID, token_id: UUID, password_hash: str
    ) -> None:
        """Canjea el token de reset y guarda el hash nuevo en una sola unidad."""
        with self._writes() as (tokens, users):
            if not tokens.mark_used(token_id):
                raise UnauthorizedError("Invalid or expired password reset token")
            if users.update_password(user_id, password_hash) is None:
                raise UnauthorizedError("Invalid or expired password reset token")
