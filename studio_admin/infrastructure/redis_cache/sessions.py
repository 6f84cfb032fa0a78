from __future__ import annotations

import secrets
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from studio_admin.domain.errors import TransientInfraError


class RedisSessions:
    """Opaque bearer tokens for logged-in admins, expiring after ttl_seconds."""

    def __init__(
        self, redis: Redis, *, key_prefix: str = "admin-sess:", ttl_seconds: int = 3600
    ) -> None:
        self._redis = redis
        self._prefix = key_prefix
        self._ttl = ttl_seconds

    def _key(self, token: str) -> str:
        return f"{self._prefix}{token}"

    async def create(self, subject_id: str) -> str:
        token = secrets.token_urlsafe(32)
        try:
            await self._redis.set(self._key(token), subject_id, ex=self._ttl)
        except RedisError as e:
            raise TransientInfraError(f"session store error: {e}") from e
        return token

    async def get(self, token: str) -> Optional[str]:
        try:
            return await self._redis.get(self._key(token))
        except RedisError as e:
            raise TransientInfraError(f"session store error: {e}") from e

    async def revoke(self, token: str) -> None:
        try:
            await self._redis.delete(self._key(token))
        except RedisError as e:
            raise TransientInfraError(f"session store error: {e}") from e
