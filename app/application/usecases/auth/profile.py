"""
===============================================================================
USE CASE: Get Profile
===============================================================================

Responsibilities:
    - Devolver la vista pública del usuario (allow-list de views.py).
    - Servir desde ProfileCache cuando hay entrada vigente.

Error Mapping:
    - UNAUTHORIZED: el usuario del token ya no existe
===============================================================================
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from ....crosscutting.exceptions import UnauthorizedError
from ....domain.repositories import UserRepository
from ....domain.services import ProfileCache
from ...views import to_profile_view


class GetProfileUseCase:
    def __init__(
        self, *, users: UserRepository, profile_cache: ProfileCache | None = None
    ) -> None:
        self._users = users
        self._cache = profile_cache

    def execute(self, user_id: UUID) -> dict[str, Any]:
        if self._cache is not None:
            cached = self._cache.get(user_id)
            if cached is not None:
                return cached

        user = self._users.get_by_id(user_id)
        if user is None:
            raise UnauthorizedError("User not found")

        view = to_profile_view(user)
        if self._cache is not None:
            self._cache.set(user_id, view)
        return view
