from __future__ import annotations

from typing import Protocol

from studio_admin.domain.entities import RateLimitRecord


class RateLimitStorePort(Protocol):
    async def get(self, key: str) -> RateLimitRecord | None:
        """Current record for key, or None if absent/expired."""

    async def compare_and_swap(
        self,
        key: str,
        expected: RateLimitRecord | None,
        new: RateLimitRecord,
        ttl_seconds: int,
    ) -> bool:
        """
        Atomically replace the record for key with `new` (expiring after
        ttl_seconds) only if it still equals `expected`. Return True on swap.
        """

    async def delete(self, key: str) -> None:
        """Drop the record for key."""
