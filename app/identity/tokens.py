"""
===============================================================================
TARJETA CRC — identity/tokens.py
===============================================================================

Módulo:
    Emisión y validación de tokens de sesión (JWT HS256)

Responsabilidades:
    - Emitir access tokens (cortos, stateless) con claims de verificación/2FA.
    - Emitir refresh tokens (7 días) con un secreto DISTINTO al de acceso.
    - Emitir el token temporal de 2FA pendiente (5 min, secreto propio).
    - Persistir hash(refresh) + last_login; validar refresh contra ese hash.
    - Revocar la sesión (logout) limpiando el hash almacenado.
    - Decodificar cada tipo de token validando firma, exp y `typ`.

Colaboradores:
    - PyJWT: encode/decode.
    - identity.passwords: mismo primitivo de hash para el refresh token.
    - domain.repositories.UserRepository: lectura/escritura del hash.
    - crosscutting.config.get_settings: secretos y TTLs.

Decisiones de diseño:
    - Cada token lleva `jti` aleatorio: dos tokens emitidos en el mismo
      segundo nunca son idénticos, así la rotación siempre invalida el anterior.
    - Un refresh con hash que no coincide LIMPIA el hash (la sesión se revoca
      en lugar de dejar activo un token posiblemente comprometido).
    - No se loguean tokens: solo user_id y motivo.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import UUID, uuid4

import jwt

from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import UnauthorizedError
from ..crosscutting.logger import logger
from ..domain.entities import User, UserRole
from ..domain.repositories import UserRepository
from .passwords import hash_password, verify_password

# ---------------------------------------------------------------------------
# Constantes (evitan strings mágicos)
# ---------------------------------------------------------------------------

JWT_ALGORITHM: str = "HS256"

CLAIM_SUB: str = "sub"
CLAIM_EMAIL: str = "email"
CLAIM_ROLE: str = "role"
CLAIM_EMAIL_VERIFIED: str = "is_email_verified"
CLAIM_SECOND_FACTOR: str = "is_second_factor_authenticated"
CLAIM_2FA_PENDING: str = "is_2fa_pending"
CLAIM_IAT: str = "iat"
CLAIM_EXP: str = "exp"
CLAIM_JTI: str = "jti"
CLAIM_TYP: str = "typ"

TOKEN_TYPE_ACCESS: str = "access"
TOKEN_TYPE_REFRESH: str = "refresh"
TOKEN_TYPE_2FA_PENDING: str = "2fa_pending"


# ---------------------------------------------------------------------------
# Contratos
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TokenSettings:
    """Snapshot de settings de tokens."""

    access_secret: str
    refresh_secret: str
    two_factor_secret: str
    access_ttl_minutes: int
    refresh_ttl_days: int
    two_factor_ttl_minutes: int


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """Claims validados de un access token."""

    user_id: UUID
    email: str
    role: UserRole
    is_email_verified: bool
    is_second_factor_authenticated: bool


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


def get_token_settings() -> TokenSettings:
    s = get_settings()
    return TokenSettings(
        access_secret=s.jwt_secret,
        refresh_secret=s.jwt_refresh_secret,
        two_factor_secret=s.jwt_verification_secret,
        access_ttl_minutes=s.jwt_access_ttl_minutes,
        refresh_ttl_days=s.jwt_refresh_ttl_days,
        two_factor_ttl_minutes=s.two_factor_token_ttl_minutes,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_subject(value: object) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise UnauthorizedError("Invalid token") from exc


# ---------------------------------------------------------------------------
# Servicio
# ---------------------------------------------------------------------------


class TokenService:
    """
    Token Issuance Service.

    Un único punto que conoce secretos y formato de claims; el resto del
    sistema trabaja con AccessClaims / TokenPair.
    """

    def __init__(
        self,
        users: UserRepository,
        settings: TokenSettings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._users = users
        self._settings = settings or get_token_settings()
        self._clock = clock

    # =========================================================
    # Emisión
    # =========================================================
    def _encode(self, claims: dict[str, object], secret: str, ttl: timedelta) -> str:
        now = self._clock()
        payload = {
            **claims,
            CLAIM_IAT: int(now.timestamp()),
            CLAIM_EXP: int((now + ttl).timestamp()),
            CLAIM_JTI: uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)

    def issue_access_token(
        self, user: User, *, second_factor_authenticated: bool = False
    ) -> tuple[str, int]:
        """Retorna (token, expires_in_seconds)."""
        expires_in = int(self._settings.access_ttl_minutes * 60)
        token = self._encode(
            {
                CLAIM_SUB: str(user.id),
                CLAIM_EMAIL: user.email,
                CLAIM_ROLE: user.role.value,
                CLAIM_EMAIL_VERIFIED: user.is_email_verified,
                CLAIM_SECOND_FACTOR: second_factor_authenticated,
                CLAIM_TYP: TOKEN_TYPE_ACCESS,
            },
            self._settings.access_secret,
            timedelta(seconds=expires_in),
        )
        return token, expires_in

    def issue_refresh_token(self, user_id: UUID) -> str:
        return self._encode(
            {CLAIM_SUB: str(user_id), CLAIM_TYP: TOKEN_TYPE_REFRESH},
            self._settings.refresh_secret,
            timedelta(days=self._settings.refresh_ttl_days),
        )

    def issue_two_factor_token(self, user_id: UUID) -> str:
        return self._encode(
            {
                CLAIM_SUB: str(user_id),
                CLAIM_2FA_PENDING: True,
                CLAIM_TYP: TOKEN_TYPE_2FA_PENDING,
            },
            self._settings.two_factor_secret,
            timedelta(minutes=self._settings.two_factor_ttl_minutes),
        )

    def issue_session(
        self, user: User, *, second_factor_authenticated: bool = False
    ) -> TokenPair:
        """Access + refresh; persiste hash(refresh) y estampa last_login."""
        access_token, expires_in = self.issue_access_token(
            user, second_factor_authenticated=second_factor_authenticated
        )
        refresh_token = self.issue_refresh_token(user.id)
        self.persist_refresh_token(user.id, refresh_token)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        )

    # =========================================================
    # Decodificación
    # =========================================================
    def _decode(
        self,
        token: str,
        *,
        secret: str,
        expected_type: str,
        required: list[str],
        expired_message: str,
        invalid_message: str,
    ) -> dict:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": [CLAIM_SUB, CLAIM_EXP, CLAIM_TYP, *required]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise UnauthorizedError(expired_message) from exc
        except jwt.InvalidTokenError as exc:
            raise UnauthorizedError(invalid_message) from exc

        if payload.get(CLAIM_TYP) != expected_type:
            raise UnauthorizedError(invalid_message)
        return payload

    def decode_access_token(self, token: str) -> AccessClaims:
        payload = self._decode(
            token,
            secret=self._settings.access_secret,
            expected_type=TOKEN_TYPE_ACCESS,
            required=[CLAIM_EMAIL, CLAIM_ROLE],
            expired_message="Token expired",
            invalid_message="Invalid token",
        )
        try:
            role = UserRole(str(payload[CLAIM_ROLE]))
        except ValueError as exc:
            raise UnauthorizedError("Invalid token") from exc

        return AccessClaims(
            user_id=_parse_subject(payload[CLAIM_SUB]),
            email=str(payload[CLAIM_EMAIL]),
            role=role,
            is_email_verified=bool(payload.get(CLAIM_EMAIL_VERIFIED, False)),
            is_second_factor_authenticated=bool(
                payload.get(CLAIM_SECOND_FACTOR, False)
            ),
        )

    def decode_refresh_token(self, token: str) -> UUID:
        payload = self._decode(
            token,
            secret=self._settings.refresh_secret,
            expected_type=TOKEN_TYPE_REFRESH,
            required=[],
            expired_message="Refresh token expired",
            invalid_message="Invalid refresh token",
        )
        return _parse_subject(payload[CLAIM_SUB])

    def decode_two_factor_token(self, token: str) -> UUID:
        payload = self._decode(
            token,
            secret=self._settings.two_factor_secret,
            expected_type=TOKEN_TYPE_2FA_PENDING,
            required=[CLAIM_2FA_PENDING],
            expired_message="2FA session expired, please log in again",
            invalid_message="Invalid 2FA session token",
        )
        if payload.get(CLAIM_2FA_PENDING) is not True:
            raise UnauthorizedError("Invalid 2FA session token")
        return _parse_subject(payload[CLAIM_SUB])

    # =========================================================
    # Sesión persistida (hash del refresh token)
    # =========================================================
    def persist_refresh_token(self, user_id: UUID, raw_refresh_token: str) -> None:
        self._users.set_refresh_token_hash(
            user_id, hash_password(raw_refresh_token), last_login=self._clock()
        )

    def validate_refresh(self, user_id: UUID, raw_refresh_token: str) -> User:
        """
        Valida un refresh token presentado para user_id.

        Falla Unauthorized si: el usuario no existe o está inactivo, no hay
        sesión persistida, el JWT es inválido/expirado o de otro sujeto, o el
        hash no coincide (en cuyo caso además se revoca la sesión).
        """
        user = self._users.get_by_id(user_id)
        if user is None or not user.is_active:
            raise UnauthorizedError("Invalid refresh token")
        if not user.refresh_token_hash:
            raise UnauthorizedError("Invalid refresh token")

        subject = self.decode_refresh_token(raw_refresh_token)
        if subject != user_id:
            raise UnauthorizedError("Invalid refresh token")

        if not verify_password(raw_refresh_token, user.refresh_token_hash):
            logger.warning(
                "Refresh token no coincide: sesión revocada",
                extra={"user_id": str(user_id)},
            )
            self.invalidate(user_id)
            raise UnauthorizedError("Invalid refresh token")

        return user

    def invalidate(self, user_id: UUID) -> None:
        self._users.set_refresh_token_hash(user_id, None)
