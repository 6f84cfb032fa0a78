from __future__ import annotations

from typing import Any

import psycopg
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from studio_admin.domain.errors import TransientInfraError
from studio_admin.domain.ports.activity_log import ActivityLogPort


class PgActivityLog(ActivityLogPort):
    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def record(
        self, event_kind: str, subject_id: str | None, metadata: dict[str, Any]
    ) -> None:
        sql = """
        INSERT INTO activity_logs (user_id, action, details)
        VALUES (%s, %s, %s)
        """
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(sql, (subject_id, event_kind, Json(metadata)))
        except psycopg.Error as e:
            raise TransientInfraError(f"activity log error: {e}") from e
