"""
Session use cases: refresh-token rotation and logout.

Refresh tokens are single-use: each successful refresh overwrites the stored
hash, so presenting the previous refresh token again fails. Logout clears the
hash, which revokes every refresh token issued before it. Enabling 2FA does
the same, so a refresh token never outlives the switch to two factors.
"""

from __future__ import annotations

from uuid import UUID

from ....crosscutting.logger import logger
from ....domain.entities import TwoFactorState
from ....domain.services import ProfileCache
from ....identity.tokens import TokenPair, TokenService


class RefreshTokensUseCase:
    def __init__(
        self, *, tokens: TokenService, profile_cache: ProfileCache | None = None
    ) -> None:
        self._tokens = tokens
        self._cache = profile_cache

    def execute(self, user_id: UUID, refresh_token: str) -> TokenPair:
        user = self._tokens.validate_refresh(user_id, refresh_token)

        # R: habilitar 2FA revoca la sesión previa; con 2FA activo, el único
        # refresh vigente salió de /auth/login/2fa.
        pair = self._tokens.issue_session(
            user,
            second_factor_authenticated=user.two_factor_state
            == TwoFactorState.ENABLED,
        )
        if self._cache is not None:
            self._cache.invalidate(user_id)
        logger.info("Sesión rotada", extra={"user_id": str(user_id)})
        return pair


class LogoutUseCase:
    def __init__(
        self, *, tokens: TokenService, profile_cache: ProfileCache | None = None
    ) -> None:
        self._tokens = tokens
        self._cache = profile_cache

    def execute(self, user_id: UUID) -> None:
        self._tokens.invalidate(user_id)
        if self._cache is not None:
            self._cache.invalidate(user_id)
        logger.info("Logout", extra={"user_id": str(user_id)})
