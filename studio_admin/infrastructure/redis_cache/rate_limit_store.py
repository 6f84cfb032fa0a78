from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from studio_admin.domain.entities import RateLimitRecord
from studio_admin.domain.errors import TransientInfraError
from studio_admin.domain.ports.rate_limit_store import RateLimitStorePort


_LUA_CAS = """
-- KEYS[1]: counter key
-- ARGV[1]: expected encoded record ('' when absent)
-- ARGV[2]: new encoded record
-- ARGV[3]: ttl seconds
local cur = redis.call('GET', KEYS[1])
if not cur then
  cur = ''
end
if cur ~= ARGV[1] then
  return 0
end
redis.call('SET', KEYS[1], ARGV[2], 'EX', tonumber(ARGV[3]))
return 1
"""


def _encode(record: RateLimitRecord | None) -> str:
    if record is None:
        return ""
    return f"{record.attempt_count}:{record.window_start!r}"


def _decode(raw: str | None) -> RateLimitRecord | None:
    if not raw:
        return None
    count, _, start = raw.partition(":")
    return RateLimitRecord(attempt_count=int(count), window_start=float(start))


class RedisRateLimitStore(RateLimitStorePort):
    """Counters shared by every worker; swaps run as a single Lua script."""

    def __init__(self, redis: Redis, *, key_prefix: str = "rl:") -> None:
        self._redis = redis
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> RateLimitRecord | None:
        try:
            raw = await self._redis.get(self._key(key))
        except RedisError as e:
            raise TransientInfraError(f"rate limit store error: {e}") from e
        return _decode(raw)

    async def compare_and_swap(
        self,
        key: str,
        expected: RateLimitRecord | None,
        new: RateLimitRecord,
        ttl_seconds: int,
    ) -> bool:
        try:
            res = await self._redis.eval(
                _LUA_CAS,
                1,
                self._key(key),
                _encode(expected),
                _encode(new),
                max(1, int(ttl_seconds)),
            )
        except RedisError as e:
            raise TransientInfraError(f"rate limit store error: {e}") from e
        return int(res) == 1

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as e:
            raise TransientInfraError(f"rate limit store error: {e}") from e
