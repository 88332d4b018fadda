"""
===============================================================================
USE CASES: Forgot Password + Reset Password
===============================================================================

Class:
    RequestPasswordResetUseCase
Responsibilities:
    - Mensaje genérico siempre (sin enumeración de cuentas).
    - Si la cuenta existe y está activa: token password_reset (1h) + mail.

Class:
    ResetPasswordUseCase
Responsibilities:
    - Validar confirmación y política del password nuevo (BadRequest).
    - Validar token (Unauthorized si inexistente, usado o vencido).
    - Guardar el hash nuevo, marcar el token usado y revocar la sesión.

Collaborators:
    - VerificationTokenService, TokenService, UserRepository,
      MailSender, ProfileCache, identity.passwords
===============================================================================
"""

from __future__ import annotations

from ....crosscutting.exceptions import BadRequestError, MailDeliveryError
from ....crosscutting.logger import logger
from ....domain.entities import VerificationTokenType
from ....domain.repositories import UserRepository
from ....domain.services import MailSender, ProfileCache
from ....identity.password_policy import password_policy_violation
from ....identity.passwords import hash_password
from ....identity.tokens import TokenService
from ....identity.verification import VerificationTokenService

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)
RESET_PASSWORD_MESSAGE = "Password has been reset successfully. Please log in."


class RequestPasswordResetUseCase:
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
        if user is None or not user.is_active:
            return FORGOT_PASSWORD_MESSAGE

        token = self._verification.issue(user, VerificationTokenType.PASSWORD_RESET)
        try:
            self._mail.send_password_reset_email(
                to=user.email, name=user.name, token=token
            )
        except MailDeliveryError:
            logger.error(
                "Reset de password: mail no entregado",
                extra={"user_id": str(user.id)},
            )
        return FORGOT_PASSWORD_MESSAGE


class ResetPasswordUseCase:
    def __init__(
        self,
        *,
        verification: VerificationTokenService,
        tokens: TokenService,
        profile_cache: ProfileCache | None = None,
    ) -> None:
        self._verification = verification
        self._tokens = tokens
        self._cache = profile_cache

    def execute(self, token: str, new_password: str, confirm_password: str) -> str:
        if new_password != confirm_password:
            raise BadRequestError("Passwords do not match")
        violation = password_policy_violation(new_password)
        if violation:
            raise BadRequestError(violation)

        user, token_id = self._verification.validate_password_reset_token(
            (token or "").strip()
        )

        self._verification.complete_password_reset(
            user.id, token_id, hash_password(new_password)
        )
        self._tokens.invalidate(user.id)
        if self._cache is not None:
            self._cache.invalidate(user.id)

        logger.info("Password reseteado", extra={"user_id": str(user.id)})
        return RESET_PASSWORD_MESSAGE
