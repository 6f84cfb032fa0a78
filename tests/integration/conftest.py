import asyncio
import os
import time
import uuid

import pytest
import pytest_asyncio
from psycopg_pool import AsyncConnectionPool
from redis.asyncio import Redis

from studio_admin.infrastructure.db.schema import ensure_schema
from studio_admin.settings import get_settings


def pytest_collection_modifyitems(config, items):
    # live Postgres/Redis tests only run under INTEGRATION=1 (docker compose)
    if os.getenv("INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set INTEGRATION=1 to run against Postgres and Redis")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest_asyncio.fixture
async def redis_client():
    r = Redis.from_url(get_settings().redis_url, encoding="utf-8", decode_responses=True)
    try:
        yield r
    finally:
        await r.aclose()


async def _wait_pool_ready(p: AsyncConnectionPool, timeout: float = 30.0) -> None:
    """Retry a trivial SELECT until Postgres accepts connections."""
    deadline = time.monotonic() + timeout
    last_exc: Exception | None = None
    while time.monotonic() < deadline:
        try:
            async with p.connection(timeout=1) as conn:
                await conn.execute("SELECT 1")
            return
        except Exception as e:
            last_exc = e
            await asyncio.sleep(0.5)
    if last_exc:
        raise last_exc
    raise TimeoutError("database not ready")


@pytest_asyncio.fixture
async def pool():
    p = AsyncConnectionPool(get_settings().database_url, min_size=1, max_size=4, open=False)
    await p.open()
    await _wait_pool_ready(p)
    async with p.connection() as conn:
        await ensure_schema(conn)
    try:
        yield p
    finally:
        await p.close()


@pytest_asyncio.fixture
async def admin_id(pool):
    """Insert a fresh admin user and remove it (and its codes) afterwards."""
    email = f"admin-{uuid.uuid4().hex[:8]}@example.com"
    async with pool.connection() as conn:
        async with conn.transaction():
            cur = await conn.execute(
                "INSERT INTO users (email, password_hash) VALUES (%s, %s) RETURNING id",
                (email, "hashed-Old!Pass1"),
            )
            (user_id,) = await cur.fetchone()
            await conn.execute("INSERT INTO admins (user_id) VALUES (%s)", (user_id,))
    yield str(user_id)
    async with pool.connection() as conn:
        async with conn.transaction():
            await conn.execute("DELETE FROM activity_logs WHERE user_id = %s", (user_id,))
            await conn.execute("DELETE FROM users WHERE id = %s", (user_id,))
