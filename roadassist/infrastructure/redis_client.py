"""Redis async connection pool and the revoked-token store built on it."""

from __future__ import annotations

from datetime import datetime, timezone

import redis.asyncio as aioredis

from roadassist.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


class TokenRevocationStore:
    """
    Deny-list of signed-out token ids.

    Each entry lives exactly as long as the token it blocks would have, so
    the set never grows past the number of live tokens.
    """

    def __init__(self, client: aioredis.Redis, prefix: str = "revoked"):
        self.redis = client
        self.prefix = prefix

    def _key(self, jti: str) -> str:
        return f"{self.prefix}:{jti}"

    async def revoke(self, jti: str, expires_at: datetime) -> None:
        ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds())
        if ttl <= 0:
            return  # already expired, nothing to block
        await self.redis.set(self._key(jti), "1", ex=ttl)

    async def is_revoked(self, jti: str) -> bool:
        return bool(await self.redis.exists(self._key(jti)))
