"""
===============================================================================
USE CASE: Login (password) + Login 2FA (second step)
===============================================================================

Business Goal:
    Autenticar credenciales y entregar una sesión (access + refresh) o, si el
    usuario tiene 2FA habilitado, un desafío con token temporal de 5 minutos.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    LoginUseCase

Responsibilities:
    - Mismo error genérico para email inexistente y password incorrecto.
    - Cuenta deshabilitada -> Forbidden (solo tras verificar el password).
    - Rehash transparente si cambiaron los parámetros de Argon2.
    - 2FA habilitado -> LoginChallenge (nunca tokens de sesión directos).

Class:
    VerifyTwoFactorLoginUseCase

Responsibilities:
    - Validar el token temporal (secreto propio, is_2fa_pending).
    - Verificar el código TOTP y emitir la sesión con segundo factor.

Collaborators:
    - UserRepository, TokenService, TwoFactorService, ProfileCache
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Union

from ....crosscutting.exceptions import ForbiddenError, UnauthorizedError
from ....crosscutting.logger import logger
from ....domain.entities import TwoFactorState, User
from ....domain.repositories import UserRepository
from ....domain.services import ProfileCache
from ....identity.passwords import hash_password, needs_rehash, verify_password
from ....identity.tokens import TokenPair, TokenService
from ....identity.two_factor import TwoFactorService

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass(frozen=True)
class LoginChallenge:
    temp_token: str
    requires_2fa: bool = True


@dataclass(frozen=True)
class LoginSession:
    user: User
    tokens: TokenPair


LoginResult = Union[LoginChallenge, LoginSession]


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # R: iguala el costo de un email inexistente con el de un password erróneo.
    return hash_password("not-a-real-password")


class LoginUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        tokens: TokenService,
        profile_cache: ProfileCache | None = None,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._cache = profile_cache

    def execute(self, email: str, password: str) -> LoginResult:
        user = self._users.get_by_email((email or "").strip())
        if user is None:
            verify_password(password or "", _dummy_hash())
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not verify_password(password or "", user.password_hash):
            logger.info("Login rechazado", extra={"user_id": str(user.id)})
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.is_active:
            raise ForbiddenError("Account is disabled")

        if needs_rehash(user.password_hash):
            self._users.update_password(user.id, hash_password(password))

        if user.two_factor_state == TwoFactorState.ENABLED:
            logger.info("Login: desafío 2FA emitido", extra={"user_id": str(user.id)})
            return LoginChallenge(temp_token=self._tokens.issue_two_factor_token(user.id))

        pair = self._tokens.issue_session(user, second_factor_authenticated=False)
        if self._cache is not None:
            self._cache.invalidate(user.id)
        logger.info("Login exitoso", extra={"user_id": str(user.id)})
        return LoginSession(user=self._users.get_by_id(user.id) or user, tokens=pair)


class VerifyTwoFactorLoginUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        tokens: TokenService,
        two_factor: TwoFactorService,
        profile_cache: ProfileCache | None = None,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._two_factor = two_factor
        self._cache = profile_cache

    def execute(self, code: str, temp_token: str) -> LoginSession:
        user_id = self._tokens.decode_two_factor_token(temp_token)

        user = self._users.get_by_id(user_id)
        if user is None:
            raise UnauthorizedError("User not found")
        if not user.is_active:
            raise ForbiddenError("Account is disabled")

        if not self._two_factor.verify_code(user, code):
            logger.info("Login 2FA: código inválido", extra={"user_id": str(user_id)})
            raise UnauthorizedError("Invalid 2FA code")

        pair = self._tokens.issue_session(user, second_factor_authenticated=True)
        if self._cache is not None:
            self._cache.invalidate(user.id)
        logger.info("Login 2FA exitoso", extra={"user_id": str(user_id)})
        return LoginSession(user=self._users.get_by_id(user.id) or user, tokens=pair)
