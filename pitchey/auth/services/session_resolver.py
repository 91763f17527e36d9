"""Request identity resolution.

A request is authenticated by the first strategy that recognises it:

1. ``CookieSessionStrategy``: session cookie, looked up in the Redis cache and
   then in the ``sessions`` table.
2. ``SessionTokenStrategy``: the same cookie value matched against
   ``sessions.token`` (sessions issued by the previous auth stack).
3. ``BearerTokenStrategy``: ``Authorization: Bearer <jwt>``; the token only
   points at a user, who is always re-read from the database.

Strategies never raise. Cache and database failures are logged and treated as
"no identity", so an outage degrades to 401 instead of 500.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.requests import Request

from pitchey.auth.models.session import UserSession
from pitchey.auth.models.user import User
from pitchey.auth.schemas.auth import AuthResult
from pitchey.auth.schemas.user import AuthenticatedUser
from pitchey.core import security
from pitchey.core.config import settings
from pitchey.core.datetime_utils import ensure_utc, parse_utc, utcnow
from pitchey.core.redis import SessionCache

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class IdentityStrategy(ABC):
    """One way of turning request headers into a user."""

    name: str = "strategy"

    @abstractmethod
    async def resolve(self, headers: Mapping[str, str]) -> AuthenticatedUser | None:
        """Return the identity, or None to let the next strategy try."""


class CookieSessionStrategy(IdentityStrategy):
    name = "session_cookie"

    def __init__(
        self,
        db: Session,
        cache: SessionCache | None = None,
        clock: Clock = utcnow,
        cache_ttl_seconds: int | None = None,
    ) -> None:
        self.db = db
        self.cache = cache
        self.clock = clock
        self.cache_ttl_seconds = cache_ttl_seconds or settings.SESSION_CACHE_TTL_SECONDS

    def _lookup_column(self) -> Any:
        return UserSession.id

    async def resolve(self, headers: Mapping[str, str]) -> AuthenticatedUser | None:
        session_id = security.session_id_from_cookies(headers.get("cookie"))
        if not session_id:
            return None

        now = self.clock()
        cached = await self._read_cache(session_id, now)
        if cached is not None:
            return cached

        session = self._load_session(session_id, now)
        if session is None:
            return None

        identity = AuthenticatedUser.from_user(session.user)
        await self._write_cache(session_id, identity, session.expires_at)
        return identity

    def _load_session(self, value: str, now: datetime) -> UserSession | None:
        try:
            session: UserSession | None = (
                self.db.query(UserSession)
                .join(User, User.id == UserSession.user_id)
                .filter(
                    self._lookup_column() == value,
                    UserSession.expires_at > now,
                    User.is_active.is_(True),
                )
                .first()
            )
        except SQLAlchemyError as exc:
            logger.warning("Session lookup failed (%s): %s", self.name, exc)
            self.db.rollback()
            return None
        return session

    async def _read_cache(self, session_id: str, now: datetime) -> AuthenticatedUser | None:
        if self.cache is None:
            return None
        try:
            record = await self.cache.get(session_id)
            if record is None:
                return None
            if parse_utc(record["expires_at"]) <= now:
                return None
            return AuthenticatedUser.model_validate(record["user"])
        except Exception as exc:
            logger.warning("Session cache read failed: %s", exc)
            return None

    async def _write_cache(
        self, session_id: str, identity: AuthenticatedUser, expires_at: datetime
    ) -> None:
        if self.cache is None:
            return
        record = {
            "user": identity.to_cache_record(),
            "expires_at": ensure_utc(expires_at).isoformat(),
        }
        try:
            # TTL bounds staleness; the embedded expiry still decides validity
            await self.cache.put(session_id, record, self.cache_ttl_seconds)
        except Exception as exc:
            logger.warning("Session cache write failed: %s", exc)


class SessionTokenStrategy(CookieSessionStrategy):
    """Cookie value matched against ``sessions.token``, without caching."""

    name = "session_token"

    def __init__(self, db: Session, clock: Clock = utcnow) -> None:
        super().__init__(db, cache=None, clock=clock)

    def _lookup_column(self) -> Any:
        return UserSession.token


class BearerTokenStrategy(IdentityStrategy):
    name = "bearer_jwt"

    def __init__(self, db: Session, clock: Clock = utcnow) -> None:
        self.db = db
        self.clock = clock

    async def resolve(self, headers: Mapping[str, str]) -> AuthenticatedUser | None:
        token = security.bearer_token_from_header(headers.get("authorization"))
        if not token:
            return None

        # Signature and expiry are checked before touching the database
        payload = security.decode_token(token)
        if payload is None or payload.get("type", "access") != "access":
            return None
        if payload["exp"] <= self.clock().timestamp():
            return None

        user = self._load_user(payload)
        if user is None or not user.is_active:
            return None
        return AuthenticatedUser.from_user(user)

    def _load_user(self, payload: dict[str, Any]) -> User | None:
        """Find the token's user by id, falling back to email for id-less tokens.

        When both claims are present they must name the same account.
        """
        subject = str(payload.get("sub") or payload.get("userId") or "")
        email = str(payload.get("email") or "").strip().lower()
        try:
            if subject.isdigit():
                user: User | None = self.db.get(User, int(subject))
                if user is not None and email and user.email.lower() != email:
                    logger.warning("Bearer token claims disagree for user %s", subject)
                    return None
                return user
            if email:
                return self.db.query(User).filter(func.lower(User.email) == email).first()
        except SQLAlchemyError as exc:
            logger.warning("Bearer token user lookup failed: %s", exc)
            self.db.rollback()
        return None


class SessionResolver:
    """Runs identity strategies in order; the first success wins."""

    def __init__(self, strategies: Sequence[IdentityStrategy]) -> None:
        self.strategies = list(strategies)

    @classmethod
    def default(
        cls,
        db: Session,
        cache: SessionCache | None = None,
        clock: Clock = utcnow,
        enable_jwt_fallback: bool | None = None,
    ) -> "SessionResolver":
        strategies: list[IdentityStrategy] = [
            CookieSessionStrategy(db, cache=cache, clock=clock),
            SessionTokenStrategy(db, clock=clock),
        ]
        if settings.ENABLE_JWT_FALLBACK if enable_jwt_fallback is None else enable_jwt_fallback:
            strategies.append(BearerTokenStrategy(db, clock=clock))
        return cls(strategies)

    async def resolve(self, headers: Mapping[str, str]) -> AuthResult:
        for strategy in self.strategies:
            try:
                user = await strategy.resolve(headers)
            except Exception:
                logger.exception("Identity strategy %s failed", strategy.name)
                continue
            if user is not None:
                return AuthResult(authenticated=True, user=user, source=strategy.name)
        return AuthResult(authenticated=False)

    async def resolve_request(self, request: Request) -> AuthResult:
        return await self.resolve(request.headers)
