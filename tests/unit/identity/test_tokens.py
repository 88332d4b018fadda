"""
Name: Token Issuance Service Tests

Responsibilities:
  - Access / refresh / 2FA-pending tokens use distinct secrets and types
  - Refresh validation against the stored hash (rotation, mismatch, logout)
  - Expired vs invalid tokens produce different messages

Notes:
  - Expiry is simulated by issuing with a clock in the past (PyJWT checks
    `exp` against wall-clock time)
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from app.crosscutting.exceptions import UnauthorizedError
from app.domain.entities import UserRole
from app.identity.passwords import verify_password
from app.identity.tokens import JWT_ALGORITHM, TokenService

pytestmark = pytest.mark.unit


def _past_clock(**delta):
    moment = datetime.now(timezone.utc) - timedelta(**delta)
    return lambda: moment


class TestIssueAndDecode:
    def test_access_token_carries_identity_claims(self, token_service, make_user):
        user = make_user(role=UserRole.STORE_OWNER)

        token, expires_in = token_service.issue_access_token(user)
        claims = token_service.decode_access_token(token)

        assert expires_in == 15 * 60
        assert claims.user_id == user.id
        assert claims.email == user.email
        assert claims.role == UserRole.STORE_OWNER
        assert claims.is_email_verified is False
        assert claims.is_second_factor_authenticated is False

    def test_second_factor_claim_is_propagated(self, token_service, make_user):
        user = make_user()
        token, _ = token_service.issue_access_token(
            user, second_factor_authenticated=True
        )

        assert token_service.decode_access_token(token).is_second_factor_authenticated

    def test_tokens_minted_in_same_instant_differ(self, users, token_settings, make_user):
        fixed = datetime.now(timezone.utc)
        service = TokenService(users, token_settings, clock=lambda: fixed)
        user = make_user()

        assert service.issue_refresh_token(user.id) != service.issue_refresh_token(
            user.id
        )

    def test_refresh_token_is_rejected_as_access_token(self, token_service, make_user):
        refresh = token_service.issue_refresh_token(make_user().id)

        with pytest.raises(UnauthorizedError, match="Invalid token"):
            token_service.decode_access_token(refresh)

    def test_access_token_is_rejected_as_refresh_token(self, token_service, make_user):
        access, _ = token_service.issue_access_token(make_user())

        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            token_service.decode_refresh_token(access)

    def test_wrong_type_with_right_secret_is_rejected(self, token_service, token_settings):
        forged = jwt.encode(
            {"sub": str(uuid4()), "typ": "access", "exp": 9999999999},
            token_settings.refresh_secret,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            token_service.decode_refresh_token(forged)

    def test_expired_access_token(self, users, token_settings, make_user):
        service = TokenService(users, token_settings, clock=_past_clock(hours=2))
        token, _ = service.issue_access_token(make_user())

        with pytest.raises(UnauthorizedError, match="Token expired"):
            service.decode_access_token(token)

    def test_two_factor_token_roundtrip_and_expiry(self, users, token_settings):
        user_id = uuid4()
        fresh = TokenService(users, token_settings)
        assert fresh.decode_two_factor_token(fresh.issue_two_factor_token(user_id)) == user_id

        stale = TokenService(users, token_settings, clock=_past_clock(minutes=6))
        with pytest.raises(UnauthorizedError, match="2FA session expired"):
            stale.decode_two_factor_token(stale.issue_two_factor_token(user_id))

    def test_two_factor_token_with_garbage(self, token_service):
        with pytest.raises(UnauthorizedError, match="Invalid 2FA session token"):
            token_service.decode_two_factor_token("not-a-jwt")


class TestRefreshSession:
    def test_issue_session_persists_hash_and_last_login(self, token_service, users, make_user):
        user = make_user()

        pair = token_service.issue_session(user)
        stored = users.get_by_id(user.id)

        assert stored.refresh_token_hash != pair.refresh_token
        assert verify_password(pair.refresh_token, stored.refresh_token_hash)
        assert stored.last_login is not None

    def test_validate_refresh_accepts_current_token(self, token_service, make_user):
        user = make_user()
        pair = token_service.issue_session(user)

        assert token_service.validate_refresh(user.id, pair.refresh_token).id == user.id

    def test_rotation_invalidates_previous_refresh_token(self, token_service, users, make_user):
        user = make_user()
        first = token_service.issue_session(user)
        token_service.validate_refresh(user.id, first.refresh_token)
        token_service.issue_session(user)

        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            token_service.validate_refresh(user.id, first.refresh_token)
        # R: un refresh viejo presentado revoca la sesión completa.
        assert users.get_by_id(user.id).refresh_token_hash is None

    def test_invalidate_then_refresh_fails(self, token_service, make_user):
        user = make_user()
        pair = token_service.issue_session(user)
        token_service.invalidate(user.id)

        with pytest.raises(UnauthorizedError):
            token_service.validate_refresh(user.id, pair.refresh_token)

    def test_refresh_for_other_subject_fails(self, token_service, make_user):
        alice, bob = make_user(), make_user()
        token_service.issue_session(alice)
        bob_pair = token_service.issue_session(bob)

        with pytest.raises(UnauthorizedError):
            token_service.validate_refresh(alice.id, bob_pair.refresh_token)

    def test_inactive_user_cannot_refresh(self, token_service, users, make_user):
        user = make_user()
        pair = token_service.issue_session(user)
        users.set_active(user.id, False)

        with pytest.raises(UnauthorizedError):
            token_service.validate_refresh(user.id, pair.refresh_token)

    def test_unknown_user_cannot_refresh(self, token_service):
        with pytest.raises(UnauthorizedError):
            token_service.validate_refresh(uuid4(), "whatever")
