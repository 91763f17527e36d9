import secrets
from datetime import datetime, timedelta
from typing import Any, Literal

from fastapi import Response
from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.requests import cookie_parser

from pitchey.core.config import settings
from pitchey.core.constants import SESSION_TOKEN_BYTES
from pitchey.core.datetime_utils import utcnow

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bool(pwd_context.verify(plain_password, hashed_password))


def get_password_hash(password: str) -> str:
    return str(pwd_context.hash(password))


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Issue the legacy bearer token handed to clients that predate session cookies."""
    to_encode = data.copy()
    now = utcnow()
    expire = now + (expires_delta or timedelta(days=settings.JWT_EXPIRE_DAYS))
    to_encode.update({"exp": expire, "iat": now, "type": "access"})
    encoded_jwt: str = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> dict[str, Any] | None:
    """Verify signature and a mandatory ``exp``; any failure yields None."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require_exp": True},
        )
        return payload
    except JWTError:
        return None


def generate_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def session_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(days=settings.SESSION_EXPIRE_DAYS)


def parse_cookie_header(cookie_header: str | None) -> dict[str, str]:
    """Parse a raw ``Cookie`` header the way Starlette does for ``request.cookies``."""
    return cookie_parser(cookie_header or "")


def session_id_from_cookies(cookie_header: str | None) -> str | None:
    """Return the session id from the primary cookie, else from a legacy one."""
    cookies = parse_cookie_header(cookie_header)
    for name in settings.session_cookie_names:
        value = cookies.get(name)
        if value:
            return value
    return None


def bearer_token_from_header(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _cookie_samesite() -> Literal["lax", "none"]:
    """Return SameSite policy: 'none' for cross-site production, 'lax' for same-site/dev."""
    return "lax" if settings.DEBUG else "none"


def set_session_cookie(response: Response, session_id: str) -> None:
    """Set the httpOnly session cookie"""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        httponly=True,
        secure=not settings.DEBUG,
        samesite=_cookie_samesite(),
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60,
    )


def clear_session_cookies(response: Response) -> None:
    """Clear the session cookie and any legacy ones on logout"""
    samesite = _cookie_samesite()
    for name in settings.session_cookie_names:
        response.delete_cookie(name, samesite=samesite, secure=not settings.DEBUG)
