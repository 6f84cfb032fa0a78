from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import psycopg
from psycopg_pool import AsyncConnectionPool

from studio_admin.domain.entities import VerificationCode
from studio_admin.domain.errors import TransientInfraError
from studio_admin.domain.ports.verification_repository import (
    VerificationRepositoryPort,
)

_COLUMNS = "id, user_id, purpose, code_digest, expires_at, used, created_at"


def _row_to_code(row: tuple) -> VerificationCode:
    id_, user_id, purpose, digest, expires_at, used, created_at = row
    return VerificationCode(
        id=str(id_),
        subject_id=str(user_id),
        purpose=purpose,
        code_digest=digest,
        expires_at=expires_at,
        consumed=bool(used),
        created_at=created_at,
    )


class PgVerificationRepository(VerificationRepositoryPort):
    """
    Postgres implementation over password_verification_codes.
    Each call borrows a pooled connection and runs in its own transaction.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    @asynccontextmanager
    async def _cursor(self) -> AsyncIterator[psycopg.AsyncCursor]:
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        yield cur
        except psycopg.Error as e:
            raise TransientInfraError(f"verification store error: {e}") from e

    async def replace_active(self, code: VerificationCode) -> VerificationCode:
        delete_sql = """
        DELETE FROM password_verification_codes
        WHERE user_id = %s AND used = false
        """
        insert_sql = f"""
        INSERT INTO password_verification_codes
            (user_id, purpose, code_digest, expires_at, used, created_at)
        VALUES (%s, %s, %s, %s, false, %s)
        RETURNING {_COLUMNS}
        """
        async with self._cursor() as cur:
            await cur.execute(delete_sql, (code.subject_id,))
            await cur.execute(
                insert_sql,
                (
                    code.subject_id,
                    code.purpose,
                    code.code_digest,
                    code.expires_at,
                    code.created_at,
                ),
            )
            row = await cur.fetchone()
        if not row:
            raise TransientInfraError("verification code insert returned no row")
        return _row_to_code(row)

    async def latest_unconsumed(self, subject_id: str) -> Optional[VerificationCode]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM password_verification_codes
        WHERE user_id = %s AND used = false
        ORDER BY created_at DESC
        LIMIT 1
        """
        async with self._cursor() as cur:
            await cur.execute(sql, (subject_id,))
            row = await cur.fetchone()
        return _row_to_code(row) if row else None

    async def latest(self, subject_id: str) -> Optional[VerificationCode]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM password_verification_codes
        WHERE user_id = %s
        ORDER BY created_at DESC
        LIMIT 1
        """
        async with self._cursor() as cur:
            await cur.execute(sql, (subject_id,))
            row = await cur.fetchone()
        return _row_to_code(row) if row else None

    async def mark_consumed(self, code_id: str) -> bool:
        sql = """
        UPDATE password_verification_codes
        SET used = true
        WHERE id = %s AND used = false
        """
        async with self._cursor() as cur:
            await cur.execute(sql, (code_id,))
            return cur.rowcount == 1

    async def mark_unconsumed(self, code_id: str) -> bool:
        sql = """
        UPDATE password_verification_codes c
        SET used = false
        WHERE c.id = %s
          AND c.used = true
          AND NOT EXISTS (
            SELECT 1
            FROM password_verification_codes n
            WHERE n.user_id = c.user_id
              AND n.id <> c.id
              AND n.created_at >= c.created_at
          )
        """
        async with self._cursor() as cur:
            await cur.execute(sql, (code_id,))
            return cur.rowcount == 1
