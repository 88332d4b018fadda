"""
===============================================================================
USE CASES: Admin user moderation
===============================================================================

Class:
    ListUsersUseCase
Responsibilities:
    - Listar usuarios paginados como vista admin (perfil + store asociado).

Class:
    SetUserActiveUseCase
Responsibilities:
    - Habilitar / deshabilitar cuentas.
    - Al deshabilitar: revocar la sesión (refresh) e invalidar el perfil.
    - Un admin no puede deshabilitarse a sí mismo.

Collaborators:
    - UserRepository, StoreRepository, TokenService, ProfileCache
===============================================================================
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from ....crosscutting.exceptions import BadRequestError, NotFoundError
from ....crosscutting.logger import logger
from ....domain.entities import UserRole
from ....domain.repositories import StoreRepository, UserRepository
from ....domain.services import ProfileCache
from ....identity.tokens import TokenService
from ...views import to_admin_view

MAX_PAGE_SIZE = 200


class ListUsersUseCase:
    def __init__(self, *, users: UserRepository, stores: StoreRepository) -> None:
        self._users = users
        self._stores = stores

    def execute(self, *, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)

        views = []
        for user in self._users.list_users(limit=limit, offset=offset):
            store = (
                self._stores.get_by_owner(user.id)
                if user.role == UserRole.STORE_OWNER
                else None
            )
            views.append(to_admin_view(user, store))
        return views


class SetUserActiveUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        stores: StoreRepository,
        tokens: TokenService,
        profile_cache: ProfileCache | None = None,
    ) -> None:
        self._users = users
        self._stores = stores
        self._tokens = tokens
        self._cache = profile_cache

    def execute(
        self, *, actor_id: UUID, user_id: UUID, is_active: bool
    ) -> dict[str, Any]:
        if actor_id == user_id and not is_active:
            raise BadRequestError("Admins cannot disable their own account")

        updated = self._users.set_active(user_id, is_active)
        if updated is None:
            raise NotFoundError("User not found")

        if not is_active:
            self._tokens.invalidate(user_id)
        if self._cache is not None:
            self._cache.invalidate(user_id)

        logger.info(
            "Estado de cuenta actualizado",
            extra={
                "actor_id": str(actor_id),
                "target_user_id": str(user_id),
                "is_active": is_active,
            },
        )
        store = (
            self._stores.get_by_owner(user_id)
            if updated.role == UserRole.STORE_OWNER
            else None
        )
        return to_admin_view(updated, store)
