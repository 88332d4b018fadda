"""
Name: Verification Token Service Tests

Responsibilities:
  - Tokens are single-use (second consume -> NotFound)
  - Expired tokens fail with TokenExpiredError
  - Re-issuing deletes previous unused tokens of the same type only
  - Password reset tokens validate to (user, token_id)
  - Redemption is a conditional claim: only one caller wins a token
  - Claim + user update roll back together
"""

from datetime import timedelta

import pytest

from app.crosscutting.exceptions import (
    NotFoundError,
    TokenExpiredError,
    UnauthorizedError,
)
from app.domain.entities import VerificationTokenType
from app.identity.verification import VerificationTokenService, generate_token
from app.infrastructure.repositories.in_memory import InMemoryUserRepository

pytestmark = pytest.mark.unit

EMAIL = VerificationTokenType.EMAIL_VERIFICATION
RESET = VerificationTokenType.PASSWORD_RESET


@pytest.fixture
def clocked_service(token_repo, users, clock, uow_factory):
    return VerificationTokenService(
        token_repo, users, clock=clock, uow_factory=uow_factory
    )


def _tokens_of(identity_store, user_id):
    return [t for t in identity_store.tokens.values() if t.user_id == user_id]


def test_generated_token_is_64_hex_chars():
    token = generate_token()

    assert len(token) == 64
    int(token, 16)


def test_issue_uses_type_specific_ttl(clocked_service, identity_store, make_user, clock):
    user = make_user()
    clocked_service.issue(user, EMAIL)
    clocked_service.issue(user, RESET)

    by_type = {t.type: t for t in _tokens_of(identity_store, user.id)}
    assert by_type[EMAIL].expires_at - clock.now == timedelta(hours=24)
    assert by_type[RESET].expires_at - clock.now == timedelta(hours=1)


def test_consume_marks_verified_and_is_single_use(clocked_service, users, make_user):
    user = make_user()
    token = clocked_service.issue(user, EMAIL)

    verified = clocked_service.consume_email_verification(token)

    assert verified.is_email_verified is True
    assert users.get_by_id(user.id).is_email_verified is True
    with pytest.raises(NotFoundError):
        clocked_service.consume_email_verification(token)


def test_consume_unknown_token(clocked_service):
    with pytest.raises(NotFoundError, match="Invalid or expired verification token"):
        clocked_service.consume_email_verification("0" * 64)


def test_consume_does_not_match_prefix(clocked_service, make_user):
    token = clocked_service.issue(make_user(), EMAIL)

    with pytest.raises(NotFoundError):
        clocked_service.consume_email_verification(token[:32])


def test_expired_token_fails_with_expired(clocked_service, users, make_user, clock):
    user = make_user()
    token = clocked_service.issue(user, EMAIL)
    clock.advance(hours=24)

    with pytest.raises(TokenExpiredError, match="expired"):
        clocked_service.consume_email_verification(token)
    assert users.get_by_id(user.id).is_email_verified is False


def test_reissue_deletes_previous_unused_token_of_same_type(
    clocked_service, identity_store, make_user
):
    user = make_user()
    first = clocked_service.issue(user, EMAIL)
    reset = clocked_service.issue(user, RESET)
    second = clocked_service.issue(user, EMAIL)

    tokens = {t.token for t in _tokens_of(identity_store, user.id)}
    assert first not in tokens
    assert {second, reset} <= tokens
    with pytest.raises(NotFoundError):
        clocked_service.consume_email_verification(first)


def test_email_token_is_not_a_reset_token(clocked_service, make_user):
    token = clocked_service.issue(make_user(), EMAIL)

    with pytest.raises(UnauthorizedError):
        clocked_service.validate_password_reset_token(token)


def test_password_reset_token_validation(clocked_service, make_user, clock):
    user = make_user()
    token = clocked_service.issue(user, RESET)

    found, token_id = clocked_service.validate_password_reset_token(token)
    assert found.id == user.id

    clocked_service.mark_used(token_id)
    with pytest.raises(UnauthorizedError):
        clocked_service.validate_password_reset_token(token)


def test_expired_password_reset_token(clocked_service, make_user, clock):
    token = clocked_service.issue(make_user(), RESET)
    clock.advance(minutes=61)

    with pytest.raises(UnauthorizedError, match="Invalid or expired password reset token"):
        clocked_service.validate_password_reset_token(token)


def test_reset_token_can_only_be_claimed_once(clocked_service, users, make_user):
    user = make_user()
    token = clocked_service.issue(user, RESET)

    # Two requests validate the same token before either redeems it.
    _, first_id = clocked_service.validate_password_reset_token(token)
    _, second_id = clocked_service.validate_password_reset_token(token)
    assert first_id == second_id

    clocked_service.complete_password_reset(user.id, first_id, "hash-a")
    with pytest.raises(UnauthorizedError):
        clocked_service.complete_password_reset(user.id, second_id, "hash-b")

    assert users.get_by_id(user.id).password_hash == "hash-a"


def test_mark_used_twice_fails(clocked_service, make_user):
    token = clocked_service.issue(make_user(), RESET)
    _, token_id = clocked_service.validate_password_reset_token(token)

    clocked_service.mark_used(token_id)
    with pytest.raises(UnauthorizedError):
        clocked_service.mark_used(token_id)


def test_repository_claim_is_conditional(token_repo, clocked_service, make_user):
    token = clocked_service.issue(make_user(), EMAIL)
    record = token_repo.get_unused(token, EMAIL)

    assert token_repo.mark_used(record.id) is True
    assert token_repo.mark_used(record.id) is False


def test_failed_verification_does_not_burn_token(
    clocked_service, users, make_user, monkeypatch
):
    user = make_user()
    token = clocked_service.issue(user, EMAIL)

    def _boom(self, user_id):
        raise RuntimeError("db down")

    with monkeypatch.context() as patched:
        patched.setattr(InMemoryUserRepository, "set_email_verified", _boom)
        with pytest.raises(RuntimeError):
            clocked_service.consume_email_verification(token)

    assert users.get_by_id(user.id).is_email_verified is False
    assert clocked_service.consume_email_verification(token).is_email_verified is True
