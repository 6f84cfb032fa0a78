from __future__ import annotations

import asyncio
import time
from typing import Callable

from studio_admin.domain.entities import RateLimitRecord
from studio_admin.domain.ports.rate_limit_store import RateLimitStorePort


class InMemoryRateLimitStore(RateLimitStorePort):
    """
    Process-local counters. Limits only hold per process; multi-instance
    deployments use RedisRateLimitStore.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._records: dict[str, tuple[RateLimitRecord, float]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> RateLimitRecord | None:
        entry = self._records.get(key)
        if entry is None:
            return None
        record, expires_at = entry
        if self._clock() >= expires_at:
            del self._records[key]
            return None
        return record

    async def get(self, key: str) -> RateLimitRecord | None:
        async with self._lock:
            return self._live(key)

    async def compare_and_swap(
        self,
        key: str,
        expected: RateLimitRecord | None,
        new: RateLimitRecord,
        ttl_seconds: int,
    ) -> bool:
        async with self._lock:
            if self._live(key) != expected:
                return False
            self._records[key] = (new, self._clock() + ttl_seconds)
            return True

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._records.pop(key, None)
