"""
===============================================================================
USE CASES: Verify Email + Resend Verification
===============================================================================

Class:
    VerifyEmailUseCase
Responsibilities:
    - Consumir el token (un solo uso) y marcar el email como verificado.
    - Invalidar el perfil cacheado del usuario.

Class:
    ResendVerificationUseCase
Responsibilities:
    - Responder SIEMPRE el mismo mensaje genérico (no revela si el email existe).
    - Emitir token nuevo + mail solo si la cuenta existe y no está verificada.

Collaborators:
    - identity.verification.VerificationTokenService
    - UserRepository, MailSender, ProfileCache
===============================================================================
"""

from __future__ import annotations

from ....crosscutting.exceptions import BadRequestError, MailDeliveryError
from ....crosscutting.logger import logger
from ....domain.entities import User, VerificationTokenType
from ....domain.repositories import UserRepository
from ....domain.services import MailSender, ProfileCache
from ....identity.verification import VerificationTokenService

RESEND_VERIFICATION_MESSAGE = (
    "If an account with that email exists and is not verified, "
    "a new verification email has been sent."
)


class VerifyEmailUseCase:
    def __init__(
        self,
        *,
        verification: VerificationTokenService,
        profile_cache: ProfileCache | None = None,
    ) -> None:
        self._verification = verification
        self._cache = profile_cache

    def execute(self, token: str) -> User:
        token = (token or "").strip()
        if not token:
            raise BadRequestError("Verification token is required")

        user = self._verification.consume_email_verification(token)
        if self._cache is not None:
            self._cache.invalidate(user.id)
        return user


class ResendVerificationUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        verification: VerificationTokenService,
        mail: MailSender,
    ) -> None:
        self._users = users
        self._verification = verification
        self._mail = mail

    def execute(self, email: str) -> str:
        user = self._users.get_by_email((email or "").strip())
        if user is None or user.is_email_verified or not user.is_active:
            return RESEND_VERIFICATION_MESSAGE

        token = self._verification.issue(user, VerificationTokenType.EMAIL_VERIFICATION)
        try:
            self._mail.send_verification_email(
                to=user.email, name=user.name, token=token
            )
        except MailDeliveryError:
            # R: la respuesta no puede diferir según exista o no la cuenta.
            logger.error(
                "Reenvío de verificación: mail no entregado",
                extra={"user_id": str(user.id)},
            )
        return RESEND_VERIFICATION_MESSAGE
