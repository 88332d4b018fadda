"""
Name: Postgres Identity Repository Integration Tests

Responsibilities:
  - Users: create, unique email -> ConflictError, single-row updates
  - Stores: FK to users, default PENDING
  - Verification tokens: delete_unused / get_unused / mark_used
  - PostgresUnitOfWork: rollback removes every row of the failed registration

Notes:
  - Requires RUN_INTEGRATION=1 and a reachable Postgres (DATABASE_URL)
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.crosscutting.exceptions import ConflictError
from app.domain.entities import (
    Store,
    StoreStatus,
    User,
    UserRole,
    VerificationToken,
    VerificationTokenType,
)
from app.infrastructure.repositories.postgres import (
    PostgresStoreRepository,
    PostgresUnitOfWork,
    PostgresUserRepository,
    PostgresVerificationTokenRepository,
)

pytestmark = pytest.mark.integration


def _user(email: str = "a@x.com", role: UserRole = UserRole.CUSTOMER) -> User:
    return User(id=uuid4(), name="Alice", email=email, password_hash="hash", role=role)


def _token(user_id, token_type=VerificationTokenType.EMAIL_VERIFICATION):
    return VerificationToken(
        id=uuid4(),
        token=uuid4().hex + uuid4().hex,
        type=token_type,
        user_id=user_id,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


def test_user_create_and_lookup(clean_db):
    repo = PostgresUserRepository()

    created = repo.create(_user())

    assert created.created_at is not None
    assert repo.get_by_email("a@x.com").id == created.id
    assert repo.get_by_email("A@x.com") is None
    assert repo.get_by_id(created.id).role == UserRole.CUSTOMER


def test_user_unique_email(clean_db):
    repo = PostgresUserRepository()
    repo.create(_user())

    with pytest.raises(ConflictError, match="Email already exists"):
        repo.create(_user())


def test_user_updates(clean_db):
    repo = PostgresUserRepository()
    user = repo.create(_user())
    now = datetime.now(timezone.utc)

    assert repo.set_refresh_token_hash(user.id, "h", last_login=now).last_login is not None
    assert repo.set_email_verified(user.id).is_email_verified is True
    assert repo.set_two_factor(user.id, secret="S", enabled=True).is_two_factor_enabled
    assert repo.set_active(user.id, False).is_active is False
    assert repo.update_password(uuid4(), "x") is None


def test_store_defaults_to_pending(clean_db):
    owner = PostgresUserRepository().create(_user(role=UserRole.STORE_OWNER))
    stores = PostgresStoreRepository()

    stores.create(Store(id=uuid4(), name="Shop", email=owner.email, owner_id=owner.id))

    assert stores.get_by_owner(owner.id).status == StoreStatus.PENDING


def test_verification_token_lifecycle(clean_db):
    user = PostgresUserRepository().create(_user())
    tokens = PostgresVerificationTokenRepository()
    first = tokens.create(_token(user.id))
    reset = tokens.create(_token(user.id, VerificationTokenType.PASSWORD_RESET))

    assert tokens.delete_unused(user.id, VerificationTokenType.EMAIL_VERIFICATION) == 1
    assert tokens.get_unused(first.token, first.type) is None
    assert tokens.get_unused(reset.token, reset.type).id == reset.id

    assert tokens.mark_used(reset.id) is True
    assert tokens.mark_used(reset.id) is False
    assert tokens.get_unused(reset.token, reset.type) is None


def test_unit_of_work_rollback(clean_db):
    user = _user(role=UserRole.STORE_OWNER)

    with pytest.raises(RuntimeError):
        with PostgresUnitOfWork() as uow:
            uow.users.create(user)
            uow.stores.create(
                Store(id=uuid4(), name="Shop", email=user.email, owner_id=user.id)
            )
            uow.tokens.create(_token(user.id))
            raise RuntimeError("mail down")

    assert PostgresUserRepository().get_by_id(user.id) is None
    assert PostgresStoreRepository().get_by_owner(user.id) is None


def test_unit_of_work_commit(clean_db):
    user = _user()

    with PostgresUnitOfWork() as uow:
        uow.users.create(user)

    assert PostgresUserRepository().get_by_id(user.id) is not None
