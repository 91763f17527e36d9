import logging
from datetime import datetime

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pitchey.auth.models.session import UserSession
from pitchey.auth.models.user import User
from pitchey.auth.schemas.auth import RegisterRequest
from pitchey.auth.schemas.user import AuthenticatedUser
from pitchey.core import security
from pitchey.core.datetime_utils import utcnow
from pitchey.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError
from pitchey.core.redis import SessionCache

logger = logging.getLogger(__name__)


class AuthService:
    """Login, registration and session lifecycle."""

    def __init__(self, db: Session, cache: SessionCache | None = None) -> None:
        self.db = db
        self.cache = cache

    def authenticate(self, email: str, password: str, portal: str) -> User:
        user = self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

        if not user or not security.verify_password(password, user.hashed_password):
            raise UnauthorizedError("Invalid credentials")

        if not user.is_active:
            raise ForbiddenError("Account is inactive")

        if user.user_type != portal:
            raise ForbiddenError(f"Access denied. {portal} portal access required.")

        return user

    def register(self, data: RegisterRequest, portal: str) -> User:
        existing = (
            self.db.query(User.id).filter(func.lower(User.email) == data.email.lower()).first()
        )
        if existing:
            raise ConflictError("User already exists", resource="user")

        user = User(
            email=data.email,
            username=data.username,
            user_type=portal,
            name=data.name,
            first_name=data.first_name,
            last_name=data.last_name,
            company_name=data.company_name,
            bio=data.bio,
            hashed_password=security.get_password_hash(data.password),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("User already exists", resource="user") from exc
        self.db.refresh(user)
        logger.info("User registered: id=%s user_type=%s", user.id, portal)
        return user

    def create_session(self, user: User, now: datetime | None = None) -> UserSession:
        now = now or utcnow()
        session = UserSession(
            id=security.generate_session_token(),
            token=security.generate_session_token(),
            user_id=user.id,
            expires_at=security.session_expiry(now),
            created_at=now,
            updated_at=now,
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    @staticmethod
    def issue_token(user: User) -> str:
        return security.create_access_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "user_type": user.user_type,
                "name": user.display_name,
            }
        )

    async def logout(self, session_id: str | None) -> None:
        """Delete the session row and its cache entry. Unknown ids are ignored."""
        if not session_id:
            return

        self.db.execute(
            delete(UserSession)
            .where((UserSession.id == session_id) | (UserSession.token == session_id))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        if self.cache is not None:
            try:
                await self.cache.delete(session_id)
            except Exception as exc:
                logger.warning("Session cache eviction failed: %s", exc)

    def purge_expired_sessions(self, now: datetime | None = None) -> int:
        result = self.db.execute(
            delete(UserSession)
            .where(UserSession.expires_at <= (now or utcnow()))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        purged = int(result.rowcount or 0)  # type: ignore[attr-defined]
        if purged:
            logger.info("Purged %d expired sessions", purged)
        return purged

    @staticmethod
    def require_portal(identity: AuthenticatedUser, portal: str) -> AuthenticatedUser:
        if identity.user_type != portal:
            raise ForbiddenError(f"Access denied. {portal} portal access required.")
        return identity
