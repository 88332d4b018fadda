"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define persistence contracts for the identity domain (ports).
- Keep application/identity independent from infrastructure (PostgreSQL, in-memory).
- Define the transactional UnitOfWork used by multi-row flows (registration).

Collaborators
- domain.entities: User, Store, VerificationToken
- infrastructure.repositories: postgres/*, in_memory/* implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Every credential mutation is a single-row update (no app-level locking).
- Lookups return None when the row does not exist (no exception for "not found").
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional, Protocol
from uuid import UUID

from .entities import Store, User, VerificationToken, VerificationTokenType


class UserRepository(Protocol):
    """
    R: Credential store.

    Implementations must:
      - Enforce email uniqueness (raise ConflictError on duplicates)
      - Never log password_hash / two_factor_secret / refresh_token_hash
    """

    def get_by_id(self, user_id: UUID) -> Optional[User]: ...

    def get_by_email(self, email: str) -> Optional[User]: ...

    def create(self, user: User) -> User:
        """R: Insert a new user; raises ConflictError if the email exists."""
        ...

    def list_users(self, *, limit: int = 100, offset: int = 0) -> List[User]: ...

    def set_refresh_token_hash(
        self,
        user_id: UUID,
        refresh_token_hash: Optional[str],
        *,
        last_login: Optional[datetime] = None,
    ) -> Optional[User]:
        """R: Store (or clear with None) the active refresh-token hash."""
        ...

    def set_email_verified(self, user_id: UUID) -> Optional[User]: ...

    def set_two_factor(
        self, user_id: UUID, *, secret: Optional[str], enabled: bool
    ) -> Optional[User]: ...

    def update_password(self, user_id: UUID, password_hash: str) -> Optional[User]: ...

    def set_active(self, user_id: UUID, is_active: bool) -> Optional[User]: ...


class StoreRepository(Protocol):
    """R: Store rows (only created during store-owner registration here)."""

    def create(self, store: Store) -> Store: ...

    def get_by_owner(self, owner_id: UUID) -> Optional[Store]: ...


class VerificationTokenRepository(Protocol):
    """R: Single-use verification / password-reset tokens."""

    def create(self, token: VerificationToken) -> VerificationToken: ...

    def delete_unused(self, user_id: UUID, token_type: VerificationTokenType) -> int:
        """R: Delete unused tokens of a type for a user. Returns rows deleted."""
        ...

    def get_unused(
        self, token: str, token_type: VerificationTokenType
    ) -> Optional[VerificationToken]:
        """R: Exact match on token string, is_used = false."""
        ...

    def mark_used(self, token_id: UUID) -> bool:
        """R: Conditional claim (is_used false -> true). True only for the caller that flipped it."""
        ...


class UnitOfWork(Protocol):
    """
    R: Transactional boundary.

    Usage:
        with uow_factory() as uow:
            uow.users.create(...)
            uow.stores.create(...)

    Leaving the block normally commits; an exception rolls back every write
    made through uow.users / uow.stores / uow.tokens and propagates.
    """

    users: UserRepository
    stores: StoreRepository
    tokens: VerificationTokenRepository

    def __enter__(self) -> "UnitOfWork": ...

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
