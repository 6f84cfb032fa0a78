from __future__ import annotations

from typing import Callable, Optional

import psycopg
from psycopg_pool import AsyncConnectionPool

from studio_admin.domain.entities import Subject
from studio_admin.domain.errors import CredentialUpdateFailed, TransientInfraError
from studio_admin.domain.ports.identity import IdentityPort

_SELECT_SUBJECT = """
SELECT u.id, u.email, u.password_hash, u.status, (a.user_id IS NOT NULL) AS is_admin
FROM users u
LEFT JOIN admins a ON a.user_id = u.id
"""


def _row_to_subject(row: tuple) -> Subject:
    id_, email, password_hash, status, is_admin = row
    return Subject(
        id=str(id_),
        email=str(email),
        password_hash=password_hash,
        is_admin=bool(is_admin),
        active=status == "active",
    )


class PgIdentityRepository(IdentityPort):
    """
    Identity store backed by the users/admins tables.
    update_credential() hashes the new password before it touches the row.
    """

    def __init__(
        self, pool: AsyncConnectionPool, hash_password: Callable[[str], str]
    ) -> None:
        self._pool = pool
        self._hash_password = hash_password

    async def _fetch_one(self, where: str, param: str) -> Optional[Subject]:
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(_SELECT_SUBJECT + where, (param,))
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise TransientInfraError(f"identity store error: {e}") from e
        return _row_to_subject(row) if row else None

    async def find_subject_by_identifier(self, email: str) -> Optional[Subject]:
        return await self._fetch_one("WHERE u.email = LOWER(TRIM(%s))", email)

    async def get_subject(self, subject_id: str) -> Optional[Subject]:
        return await self._fetch_one("WHERE u.id = %s", subject_id)

    async def update_credential(self, subject_id: str, new_credential: str) -> None:
        password_hash = self._hash_password(new_credential)
        sql = """
        UPDATE users
        SET password_hash = %s, updated_at = now()
        WHERE id = %s
        """
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(sql, (password_hash, subject_id))
                        updated = cur.rowcount
        except psycopg.Error as e:
            raise CredentialUpdateFailed(f"identity store error: {e}") from e
        if updated != 1:
            raise CredentialUpdateFailed(f"no user row updated for {subject_id}")
