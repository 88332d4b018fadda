"""
Name: Account Use Case Tests

Responsibilities:
  - Email verification, resend and password reset flows
  - Generic responses that never reveal whether an email exists
  - Profile cache read-through and invalidation
  - Admin listing and enable/disable
"""

from uuid import uuid4

import pytest

from app.application.usecases.auth import (
    FORGOT_PASSWORD_MESSAGE,
    RESEND_VERIFICATION_MESSAGE,
    RESET_PASSWORD_MESSAGE,
    GetProfileUseCase,
    ListUsersUseCase,
    LoginUseCase,
    RefreshTokensUseCase,
    RequestPasswordResetUseCase,
    ResendVerificationUseCase,
    ResetPasswordUseCase,
    SetUserActiveUseCase,
    VerifyEmailUseCase,
)
from app.crosscutting.exceptions import (
    BadRequestError,
    NotFoundError,
    UnauthorizedError,
)
from app.domain.entities import Store, StoreStatus, UserRole
from app.identity.passwords import verify_password

pytestmark = pytest.mark.unit


# ============================================================================
# Email verification
# ============================================================================


@pytest.fixture
def verify_email(verification_service, profile_cache):
    return VerifyEmailUseCase(
        verification=verification_service, profile_cache=profile_cache
    )


@pytest.fixture
def resend(users, verification_service, mail):
    return ResendVerificationUseCase(
        users=users, verification=verification_service, mail=mail
    )


def test_verify_email_marks_user_and_clears_cache(
    verify_email, resend, make_user, users, mail, profile_cache
):
    user = make_user(email="a@x.com")
    profile_cache.set(user.id, {"is_email_verified": False})
    resend.execute("a@x.com")

    verified = verify_email.execute(mail.last_token("a@x.com"))

    assert verified.is_email_verified is True
    assert users.get_by_id(user.id).is_email_verified is True
    assert profile_cache.get(user.id) is None


@pytest.mark.parametrize("token", ["", "   ", None])
def test_verify_email_requires_token(verify_email, token):
    with pytest.raises(BadRequestError, match="Verification token is required"):
        verify_email.execute(token)


def test_resend_is_generic_for_unknown_and_verified(resend, make_user, mail):
    make_user(email="done@x.com", is_email_verified=True)

    assert resend.execute("ghost@x.com") == RESEND_VERIFICATION_MESSAGE
    assert resend.execute("done@x.com") == RESEND_VERIFICATION_MESSAGE
    assert mail.outbox == []


def test_resend_swallows_delivery_failure(resend, make_user, mail):
    make_user(email="a@x.com")
    mail.fail_next = True

    assert resend.execute("a@x.com") == RESEND_VERIFICATION_MESSAGE
    assert mail.outbox == []


# ============================================================================
# Password reset
# ============================================================================


@pytest.fixture
def forgot(users, verification_service, mail):
    return RequestPasswordResetUseCase(
        users=users, verification=verification_service, mail=mail
    )


@pytest.fixture
def reset(verification_service, token_service, profile_cache):
    return ResetPasswordUseCase(
        verification=verification_service,
        tokens=token_service,
        profile_cache=profile_cache,
    )


def test_forgot_password_is_generic(forgot, make_user, mail):
    make_user(email="a@x.com")

    assert forgot.execute("ghost@x.com") == FORGOT_PASSWORD_MESSAGE
    assert forgot.execute("a@x.com") == FORGOT_PASSWORD_MESSAGE
    assert len(mail.outbox) == 1
    assert mail.last_token("a@x.com", "password_reset") is not None


def test_reset_password_revokes_session(
    forgot, reset, make_user, users, mail, token_service, profile_cache
):
    user = make_user(email="a@x.com")
    login = LoginUseCase(users=users, tokens=token_service)
    refresh = RefreshTokensUseCase(tokens=token_service)
    pair = login.execute("a@x.com", "Abc12345!").tokens

    forgot.execute("a@x.com")
    token = mail.last_token("a@x.com", "password_reset")
    assert reset.execute(token, "NewPass1!", "NewPass1!") == RESET_PASSWORD_MESSAGE

    stored = users.get_by_id(user.id)
    assert verify_password("NewPass1!", stored.password_hash)
    assert stored.refresh_token_hash is None
    with pytest.raises(UnauthorizedError):
        refresh.execute(user.id, pair.refresh_token)
    with pytest.raises(UnauthorizedError):
        reset.execute(token, "Other123!", "Other123!")


def test_reset_password_validates_before_token(reset):
    with pytest.raises(BadRequestError, match="Passwords do not match"):
        reset.execute("whatever", "NewPass1!", "NewPass2!")
    with pytest.raises(BadRequestError, match="uppercase"):
        reset.execute("whatever", "newpass1!", "newpass1!")


def test_reset_password_unknown_token(reset):
    with pytest.raises(UnauthorizedError, match="password reset token"):
        reset.execute("0" * 64, "NewPass1!", "NewPass1!")


# ============================================================================
# Profile
# ============================================================================


def test_profile_is_cached(users, make_user, profile_cache):
    use_case = GetProfileUseCase(users=users, profile_cache=profile_cache)
    user = make_user(email="a@x.com", name="Alice")

    first = use_case.execute(user.id)
    assert first["email"] == "a@x.com"
    assert "password_hash" not in first
    assert "two_factor_secret" not in first
    assert "refresh_token_hash" not in first

    users.set_active(user.id, False)
    assert use_case.execute(user.id)["is_active"] is True

    profile_cache.invalidate(user.id)
    assert use_case.execute(user.id)["is_active"] is False


def test_profile_unknown_user(users):
    with pytest.raises(UnauthorizedError, match="User not found"):
        GetProfileUseCase(users=users).execute(uuid4())


# ============================================================================
# Admin
# ============================================================================


@pytest.fixture
def set_active(users, stores, token_service, profile_cache):
    return SetUserActiveUseCase(
        users=users, stores=stores, tokens=token_service, profile_cache=profile_cache
    )


def test_list_users_includes_store_for_owners(users, stores, make_user):
    owner = make_user(email="owner@x.com", role=UserRole.STORE_OWNER)
    make_user(email="c@x.com")
    stores.create(
        Store(id=uuid4(), name="Corner Shop", email="owner@x.com", owner_id=owner.id)
    )

    views = ListUsersUseCase(users=users, stores=stores).execute(limit=1000)
    by_email = {v["email"]: v for v in views}

    assert by_email["owner@x.com"]["store_name"] == "Corner Shop"
    assert by_email["owner@x.com"]["store_status"] == StoreStatus.PENDING.value
    assert by_email["c@x.com"]["store_id"] is None


def test_list_users_pagination(users, stores, make_user):
    for i in range(3):
        make_user(email=f"u{i}@x.com")
    use_case = ListUsersUseCase(users=users, stores=stores)

    assert len(use_case.execute(limit=2)) == 2
    assert len(use_case.execute(limit=2, offset=2)) == 1


def test_disable_user_revokes_session(set_active, make_user, users, token_service):
    admin = make_user(role=UserRole.ADMIN)
    target = make_user(email="t@x.com")
    users.set_refresh_token_hash(target.id, "hash")

    view = set_active.execute(actor_id=admin.id, user_id=target.id, is_active=False)

    assert view["is_active"] is False
    assert users.get_by_id(target.id).refresh_token_hash is None

    view = set_active.execute(actor_id=admin.id, user_id=target.id, is_active=True)
    assert view["is_active"] is True


def test_admin_cannot_disable_self(set_active, make_user):
    admin = make_user(role=UserRole.ADMIN)

    with pytest.raises(BadRequestError):
        set_active.execute(actor_id=admin.id, user_id=admin.id, is_active=False)


def test_set_active_unknown_user(set_active, make_user):
    with pytest.raises(NotFoundError):
        set_active.execute(actor_id=make_user().id, user_id=uuid4(), is_active=True)
