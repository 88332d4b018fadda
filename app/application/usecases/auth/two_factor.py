"""
2FA lifecycle use cases (generate / enable / disable / verify).

Thin wrappers over identity.two_factor.TwoFactorService that keep the cached
profile coherent with the is_two_factor_enabled flag.
"""

from __future__ import annotations

from uuid import UUID

from ....crosscutting.exceptions import NotFoundError
from ....domain.entities import User
from ....domain.repositories import UserRepository
from ....domain.services import ProfileCache
from ....identity.tokens import TokenService
from ....identity.two_factor import TwoFactorService, TwoFactorSetup


class GenerateTwoFactorSecretUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        two_factor: TwoFactorService,
        profile_cache: ProfileCache | None = None,
    ) -> None:
        self._users = users
        self._two_factor = two_factor
        self._cache = profile_cache

    def execute(self, user_id: UUID) -> TwoFactorSetup:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        setup = self._two_factor.generate_secret(user)
        if self._cache is not None:
            self._cache.invalidate(user_id)
        return setup


class EnableTwoFactorUseCase:
    """Habilita 2FA y revoca la sesión de refresh emitida sin segundo factor."""

    def __init__(
        self,
        *,
        two_factor: TwoFactorService,
        tokens: TokenService,
        profile_cache: ProfileCache | None = None,
    ) -> None:
        self._two_factor = two_factor
        self._tokens = tokens
        self._cache = profile_cache

    def execute(self, user_id: UUID, code: str) -> User:
        user = self._two_factor.enable(user_id, code)
        # R: desde aquí todo refresh vigente proviene de un login con TOTP.
        self._tokens.invalidate(user_id)
        if self._cache is not None:
            self._cache.invalidate(user_id)
        return user


class DisableTwoFactorUseCase:
    def __init__(
        self, *, two_factor: TwoFactorService, profile_cache: ProfileCache | None = None
    ) -> None:
        self._two_factor = two_factor
        self._cache = profile_cache

    def execute(self, user_id: UUID, code: str | None = None) -> User:
        user = self._two_factor.disable(user_id, code)
        if self._cache is not None:
            self._cache.invalidate(user_id)
        return user


class VerifyTwoFactorCodeUseCase:
    def __init__(self, *, two_factor: TwoFactorService) -> None:
        self._two_factor = two_factor

    def execute(self, user_id: UUID, code: str) -> bool:
        return self._two_factor.verify_enabled(user_id, code)
