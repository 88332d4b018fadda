"""
===============================================================================
TARJETA CRC — identity/two_factor.py
===============================================================================

Módulo:
    Autenticación de dos factores (TOTP, RFC 6238)

Responsabilidades:
    - Generar secreto base32 y payload de provisioning (otpauth:// + QR PNG).
    - Verificar códigos con ventana ±1 paso (pasos de 30s).
    - Habilitar / deshabilitar 2FA para un usuario.

Colaboradores:
    - pyotp: secreto, TOTP, provisioning URI.
    - qrcode (+ Pillow): imagen PNG del provisioning URI.
    - domain.repositories.UserRepository: persistencia de secret/flag.

Máquina de estados (por usuario):
    UNSET --generate--> SECRET_GENERATED --enable(code)--> ENABLED
    SECRET_GENERATED --generate--> SECRET_GENERATED (secreto nuevo)
    ENABLED --generate--> BadRequest
    ENABLED --disable(code)--> UNSET
    SECRET_GENERATED --disable--> UNSET

Notas:
    - El secreto nunca se loguea ni sale del servicio salvo en generate_secret
      (el usuario necesita escanearlo una vez).
    - disable con 2FA habilitado exige un código válido (prueba de posesión).
===============================================================================
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from uuid import UUID

import pyotp
import qrcode

from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import BadRequestError, NotFoundError, UnauthorizedError
from ..crosscutting.logger import logger
from ..domain.entities import TwoFactorState, User
from ..domain.repositories import UserRepository

# R: ±1 paso de 30s => acepta códigos hasta 30s viejos o adelantados.
TOTP_VALID_WINDOW: int = 1


@dataclass(frozen=True, slots=True)
class TwoFactorSetup:
    secret: str
    otpauth_url: str
    qr_code_url: str


def _qr_data_url(payload: str) -> str:
    image = qrcode.make(payload)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


class TwoFactorService:
    def __init__(self, users: UserRepository, issuer: str | None = None) -> None:
        self._users = users
        self._issuer = issuer or get_settings().app_name

    def _require_user(self, user_id: UUID) -> User:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def generate_secret(self, user: User) -> TwoFactorSetup:
        """Nuevo secreto (reemplaza uno pendiente); el flag queda en False."""
        # R: ENABLED solo se abandona vía disable(code).
        if user.two_factor_state == TwoFactorState.ENABLED:
            raise BadRequestError("2FA is already enabled")
        secret = pyotp.random_base32()
        otpauth_url = pyotp.TOTP(secret).provisioning_uri(
            name=user.email, issuer_name=self._issuer
        )
        self._users.set_two_factor(user.id, secret=secret, enabled=False)
        logger.info("2FA: secreto generado", extra={"user_id": str(user.id)})
        return TwoFactorSetup(
            secret=secret,
            otpauth_url=otpauth_url,
            qr_code_url=_qr_data_url(otpauth_url),
        )

    def verify_code(self, user: User, code: str) -> bool:
        if not user.two_factor_secret:
            raise NotFoundError("2FA secret not found for user")
        normalized = (code or "").strip()
        if not normalized.isdigit():
            return False
        return pyotp.TOTP(user.two_factor_secret).verify(
            normalized, valid_window=TOTP_VALID_WINDOW
        )

    def enable(self, user_id: UUID, code: str) -> User:
        user = self._require_user(user_id)
        if not user.two_factor_secret:
            raise NotFoundError("2FA secret not found for user")
        if not self.verify_code(user, code):
            raise UnauthorizedError("Invalid 2FA code")

        updated = self._users.set_two_factor(
            user_id, secret=user.two_factor_secret, enabled=True
        )
        logger.info("2FA: habilitado", extra={"user_id": str(user_id)})
        return updated or user

    def disable(self, user_id: UUID, code: str | None = None) -> User:
        user = self._require_user(user_id)
        if user.two_factor_state == TwoFactorState.ENABLED:
            if not code or not self.verify_code(user, code):
                raise UnauthorizedError("Invalid 2FA code")

        updated = self._users.set_two_factor(user_id, secret=None, enabled=False)
        logger.info("2FA: deshabilitado", extra={"user_id": str(user_id)})
        return updated or user

    def verify_enabled(self, user_id: UUID, code: str) -> bool:
        """Verifica un código para un usuario con 2FA ya habilitado."""
        user = self._require_user(user_id)
        if user.two_factor_state != TwoFactorState.ENABLED:
            raise BadRequestError("2FA is not enabled for this user")
        if not self.verify_code(user, code):
            raise UnauthorizedError("Invalid 2FA code")
        return True
