from datetime import timedelta

import pytest

from pitchey.auth.models.session import UserSession
from pitchey.auth.schemas.auth import RegisterRequest
from pitchey.auth.schemas.user import AuthenticatedUser
from pitchey.auth.services.auth_service import AuthService
from pitchey.core.datetime_utils import ensure_utc, utcnow
from pitchey.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError
from tests.utils.factories import create_session_factory


class TestAuthenticate:
    def test_should_match_email_case_insensitively(self, db_session, creator):
        user = AuthService(db_session).authenticate("CREATOR@example.com", "testpass123", "creator")

        assert user.id == creator.id

    def test_should_reject_wrong_password(self, db_session, creator):
        with pytest.raises(UnauthorizedError):
            AuthService(db_session).authenticate(creator.email, "nope", "creator")

    def test_should_reject_other_portal(self, db_session, creator):
        with pytest.raises(ForbiddenError):
            AuthService(db_session).authenticate(creator.email, "testpass123", "investor")


class TestRegister:
    def test_should_hash_password_and_fix_portal(self, db_session):
        data = RegisterRequest(
            email="fresh@example.com", password="longenough1", username="fresh"
        )

        user = AuthService(db_session).register(data, "investor")

        assert user.user_type == "investor"
        assert user.hashed_password != "longenough1"
        assert user.is_active is True

    def test_should_reject_duplicate_email(self, db_session, creator):
        data = RegisterRequest(
            email="Creator@Example.com", password="longenough1", username="again"
        )

        with pytest.raises(ConflictError):
            AuthService(db_session).register(data, "creator")


class TestSessions:
    def test_should_create_session_with_configured_lifetime(self, db_session, creator):
        now = utcnow()

        session = AuthService(db_session).create_session(creator, now=now)

        assert session.id != session.token
        assert ensure_utc(session.expires_at) - now == timedelta(days=30)

    def test_should_purge_only_expired_sessions(self, db_session, creator):
        now = utcnow()
        expired = create_session_factory(db_session, creator, expires_at=now - timedelta(days=1))
        boundary = create_session_factory(db_session, creator, expires_at=now)
        live = create_session_factory(db_session, creator, expires_at=now + timedelta(days=1))
        expired_id, boundary_id, live_id = expired.id, boundary.id, live.id

        purged = AuthService(db_session).purge_expired_sessions(now)

        assert purged == 2
        assert db_session.get(UserSession, expired_id) is None
        assert db_session.get(UserSession, boundary_id) is None
        assert db_session.get(UserSession, live_id) is not None

    @pytest.mark.asyncio
    async def test_should_ignore_logout_without_session(self, db_session):
        await AuthService(db_session).logout(None)


class TestRequirePortal:
    def test_should_pass_matching_portal(self):
        identity = AuthenticatedUser(id=1, email="a@example.com", name="A", user_type="production")

        assert AuthService.require_portal(identity, "production") is identity

    def test_should_reject_other_portal(self):
        identity = AuthenticatedUser(id=1, email="a@example.com", name="A", user_type="creator")

        with pytest.raises(ForbiddenError):
            AuthService.require_portal(identity, "investor")
