"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/identity.py
============================================================
Classes:
  - InMemoryIdentityStore (las "tablas" en memoria)
  - InMemoryUserRepository / InMemoryStoreRepository /
    InMemoryVerificationTokenRepository (vistas sobre el store)
  - InMemoryUnitOfWork (snapshot + restore ante excepción)

Responsibilities:
  - Replicar la semántica de los repos Postgres para tests y APP_ENV=test:
      - email único -> ConflictError
      - updates de una sola fila que devuelven el User actualizado
      - ordering determinístico (created_at DESC, id DESC)
  - Proveer atomicidad all-or-nothing equivalente a conn.transaction().

Constraints / Notes:
  - Thread-safe: RLock (la UoW lo mantiene tomado durante el bloque, los
    repos lo re-adquieren en el mismo hilo).
  - Entidades inmutables: mutar = dataclasses.replace.
============================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import RLock
from typing import Dict, List, Optional
from uuid import UUID

from ....crosscutting.exceptions import ConflictError
from ....domain.entities import (
    Store,
    User,
    VerificationToken,
    VerificationTokenType,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InMemoryIdentityStore:
    users: Dict[UUID, User] = field(default_factory=dict)
    stores: Dict[UUID, Store] = field(default_factory=dict)
    tokens: Dict[UUID, VerificationToken] = field(default_factory=dict)
    lock: RLock = field(default_factory=RLock)

    def snapshot(self) -> tuple[dict, dict, dict]:
        return dict(self.users), dict(self.stores), dict(self.tokens)

    def restore(self, snap: tuple[dict, dict, dict]) -> None:
        self.users, self.stores, self.tokens = (dict(s) for s in snap)


class InMemoryUserRepository:
    def __init__(self, store: InMemoryIdentityStore | None = None) -> None:
        self._db = store or InMemoryIdentityStore()

    @property
    def identity_store(self) -> InMemoryIdentityStore:
        return self._db

    def get_by_id(self, user_id: UUID) -> Optional[User]:
        with self._db.lock:
            return self._db.users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        with self._db.lock:
            return next((u for u in self._db.users.values() if u.email == email), None)

    def list_users(self, *, limit: int = 100, offset: int = 0) -> List[User]:
        if limit <= 0:
            return []
        with self._db.lock:
            ordered = sorted(
                self._db.users.values(),
                key=lambda u: (u.created_at or datetime.min.replace(tzinfo=timezone.utc), str(u.id)),
                reverse=True,
            )
        start = max(offset, 0)
        return ordered[start : start + limit]

    def create(self, user: User) -> User:
        with self._db.lock:
            if any(u.email == user.email for u in self._db.users.values()):
                raise ConflictError("Email already exists")
            now = _now()
            stored = replace(
                user,
                created_at=user.created_at or now,
                updated_at=user.updated_at or now,
            )
            self._db.users[stored.id] = stored
            return stored

    def _update(self, user_id: UUID, **changes) -> Optional[User]:
        with self._db.lock:
            current = self._db.users.get(user_id)
            if current is None:
                return None
            updated = replace(current, updated_at=_now(), **changes)
            self._db.users[user_id] = updated
            return updated

    def set_refresh_token_hash(
        self,
        user_id: UUID,
        refresh_token_hash: Optional[str],
        *,
        last_login: Optional[datetime] = None,
    ) -> Optional[User]:
        changes: dict[str, object] = {"refresh_token_hash": refresh_token_hash}
        if last_login is not None:
            changes["last_login"] = last_login
        return self._update(user_id, **changes)

    def set_email_verified(self, user_id: UUID) -> Optional[User]:
        return self._update(user_id, is_email_verified=True)

    def set_two_factor(
        self, user_id: UUID, *, secret: Optional[str], enabled: bool
    ) -> Optional[User]:
        return self._update(
            user_id, two_factor_secret=secret, is_two_factor_enabled=enabled
        )

    def update_password(self, user_id: UUID, password_hash: str) -> Optional[User]:
        return self._update(user_id, password_hash=password_hash)

    def set_active(self, user_id: UUID, is_active: bool) -> Optional[User]:
        return self._update(user_id, is_active=is_active)


class InMemoryStoreRepository:
    def __init__(self, store: InMemoryIdentityStore | None = None) -> None:
        self._db = store or InMemoryIdentityStore()

    def create(self, store: Store) -> Store:
        with self._db.lock:
            if store.owner_id not in self._db.users:
                # R: emula la FK stores.owner_id -> users.id
                raise ValueError("store owner does not exist")
            now = _now()
            stored = replace(
                store,
                created_at=store.created_at or now,
                updated_at=store.updated_at or now,
            )
            self._db.stores[stored.id] = stored
            return stored

    def get_by_owner(self, owner_id: UUID) -> Optional[Store]:
        with self._db.lock:
            owned = [s for s in self._db.stores.values() if s.owner_id == owner_id]
        return owned[0] if owned else None


class InMemoryVerificationTokenRepository:
    def __init__(self, store: InMemoryIdentityStore | None = None) -> None:
        self._db = store or InMemoryIdentityStore()

    def create(self, token: VerificationToken) -> VerificationToken:
        with self._db.lock:
            stored = replace(token, created_at=token.created_at or _now())
            self._db.tokens[stored.id] = stored
            return stored

    def delete_unused(self, user_id: UUID, token_type: VerificationTokenType) -> int:
        with self._db.lock:
            doomed = [
                t.id
                for t in self._db.tokens.values()
                if t.user_id == user_id and t.type == token_type and not t.is_used
            ]
            for token_id in doomed:
                del self._db.tokens[token_id]
            return len(doomed)

    def get_unused(
        self, token: str, token_type: VerificationTokenType
    ) -> Optional[VerificationToken]:
        with self._db.lock:
            return next(
                (
                    t
                    for t in self._db.tokens.values()
                    if t.token == token and t.type == token_type and not t.is_used
                ),
                None,
            )

    def mark_used(self, token_id: UUID) -> bool:
        with self._db.lock:
            current = self._db.tokens.get(token_id)
            if current is None or current.is_used:
                return False
            self._db.tokens[token_id] = replace(current, is_used=True)
            return True


class InMemoryUnitOfWork:
    """Transacción en memoria: snapshot al entrar, restore si hay excepción."""

    def __init__(self, store: InMemoryIdentityStore) -> None:
        self._db = store
        self._snapshot: tuple[dict, dict, dict] | None = None
        self.users = InMemoryUserRepository(store)
        self.stores = InMemoryStoreRepository(store)
        self.tokens = InMemoryVerificationTokenRepository(store)

    def __enter__(self) -> "InMemoryUnitOfWork":
        self._db.lock.acquire()
        self._snapshot = self._db.snapshot()
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        try:
            if exc_type is not None and self._snapshot is not None:
                self._db.restore(self._snapshot)
        finally:
            self._snapshot = None
            self._db.lock.release()
        return None
