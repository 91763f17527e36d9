import json
from typing import Any

from redis.asyncio import Redis

from pitchey.core.constants import SESSION_CACHE_KEY_PREFIX

# Global Redis client instance, set in the app lifespan
redis_client: Redis | None = None


class SessionCache:
    """
    Key-value view over Redis for resolved session records.

    Entries are a read-through optimisation only: a miss, an eviction or an
    outage must never change who a request resolves to, so callers treat
    every exception raised here as a miss.

    Example:
        cache = SessionCache(redis_client)
        await cache.put("abc123", {"user_id": 7, ...}, ttl_seconds=3600)
        record = await cache.get("abc123")
    """

    def __init__(self, client: Redis) -> None:
        self.client = client

    @staticmethod
    def key(session_id: str) -> str:
        return f"{SESSION_CACHE_KEY_PREFIX}{session_id}"

    async def get(self, session_id: str) -> dict[str, Any] | None:
        data = await self.client.get(self.key(session_id))
        if not data:
            return None
        result: dict[str, Any] = json.loads(data)
        return result

    async def put(self, session_id: str, record: dict[str, Any], ttl_seconds: int) -> None:
        await self.client.setex(self.key(session_id), ttl_seconds, json.dumps(record))

    async def delete(self, session_id: str) -> None:
        await self.client.delete(self.key(session_id))


async def get_session_cache() -> SessionCache | None:
    if redis_client is None:
        return None
    return SessionCache(redis_client)
