from typing import Any

import httpx
from jose import jwt

from pitchey.auth.models.session import UserSession
from pitchey.core.config import settings


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio.Redis the app uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class BrokenRedis(FakeRedis):
    """Cache whose every call fails, as during a Redis outage."""

    async def get(self, key: str) -> str | None:
        raise ConnectionError("redis unavailable")

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        raise ConnectionError("redis unavailable")

    async def delete(self, *keys: str) -> int:
        raise ConnectionError("redis unavailable")


def session_cookie_header(session: UserSession, cookie_name: str | None = None) -> dict[str, str]:
    """Cookie header carrying a session id, under the primary cookie name by default."""
    return {"cookie": f"{cookie_name or settings.SESSION_COOKIE_NAME}={session.id}"}


def create_auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def assert_error_response(response: httpx.Response, status_code: int, code: str) -> dict[str, Any]:
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    error: dict[str, Any] = body["error"]
    return error


def decode_jwt_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
