from __future__ import annotations

import logging
import math
import time
from typing import Callable

from studio_admin.domain.entities import RateDecision, RateLimitRecord
from studio_admin.domain.errors import RateLimited, TransientInfraError
from studio_admin.domain.ports.rate_limit_store import RateLimitStorePort

logger = logging.getLogger(__name__)

MAX_SWAP_ATTEMPTS = 8


class RateLimiter:
    """
    Fixed-window attempt counter keyed by (purpose, identifier).

    Inside a window the count grows until it reaches max_attempts, after
    which calls are denied with the seconds left until the window resets.
    The first call after the window elapses opens a new window with count 1.
    """

    def __init__(
        self,
        store: RateLimitStorePort,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    @staticmethod
    def _key(identifier: str, purpose: str) -> str:
        return f"{purpose}:{identifier}"

    async def check(
        self,
        identifier: str,
        purpose: str,
        max_attempts: int,
        window_seconds: int,
    ) -> RateDecision:
        key = self._key(identifier, purpose)
        for _ in range(MAX_SWAP_ATTEMPTS):
            now = self._clock()
            current = await self._store.get(key)

            if current is None or now - current.window_start >= window_seconds:
                new = RateLimitRecord(attempt_count=1, window_start=now)
                ttl = window_seconds
            elif current.attempt_count >= max_attempts:
                remaining = current.window_start + window_seconds - now
                return RateDecision(
                    allowed=False,
                    attempts=current.attempt_count,
                    retry_after=max(1, math.ceil(remaining)),
                )
            else:
                new = RateLimitRecord(
                    attempt_count=current.attempt_count + 1,
                    window_start=current.window_start,
                )
                ttl = max(1, math.ceil(current.window_start + window_seconds - now))

            if await self._store.compare_and_swap(key, current, new, ttl):
                return RateDecision(allowed=True, attempts=new.attempt_count)

        logger.warning("rate limit counter contention", extra={"key": key})
        raise TransientInfraError("rate limiter is busy, try again")

    async def enforce(
        self,
        identifier: str,
        purpose: str,
        max_attempts: int,
        window_seconds: int,
    ) -> RateDecision:
        """Like check(), but raise RateLimited on denial."""
        decision = await self.check(identifier, purpose, max_attempts, window_seconds)
        if not decision.allowed:
            logger.info(
                "rate limited",
                extra={
                    "purpose": purpose,
                    "identifier": identifier,
                    "retry_after": decision.retry_after,
                },
            )
            raise RateLimited(decision.retry_after)
        return decision

    async def reset(self, identifier: str, purpose: str) -> None:
        await self._store.delete(self._key(identifier, purpose))
