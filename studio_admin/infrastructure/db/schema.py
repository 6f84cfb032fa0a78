from __future__ import annotations

import asyncio
import logging
import sys

import psycopg

from studio_admin.logging import setup_logging
from studio_admin.settings import get_settings

logger = logging.getLogger(__name__)

SCHEMA_SQL = (
    """
    CREATE TABLE IF NOT EXISTS users (
      id            uuid PRIMARY KEY DEFAULT gen_random_uuid(),
      email         text NOT NULL UNIQUE,
      password_hash text NOT NULL,
      status        text NOT NULL DEFAULT 'active',
      created_at    timestamptz NOT NULL DEFAULT now(),
      updated_at    timestamptz NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS admins (
      user_id    uuid PRIMARY KEY REFERENCES users (id) ON DELETE CASCADE,
      created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS password_verification_codes (
      id          uuid PRIMARY KEY DEFAULT gen_random_uuid(),
      user_id     uuid NOT NULL REFERENCES users (id) ON DELETE CASCADE,
      purpose     text NOT NULL DEFAULT 'password_reset',
      code_digest text NOT NULL,
      expires_at  timestamptz NOT NULL,
      used        boolean NOT NULL DEFAULT false,
      created_at  timestamptz NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS password_verification_codes_user_idx
      ON password_verification_codes (user_id, created_at DESC);
    """,
    """
    CREATE TABLE IF NOT EXISTS activity_logs (
      id         bigserial PRIMARY KEY,
      user_id    uuid,
      action     text NOT NULL,
      details    jsonb NOT NULL DEFAULT '{}'::jsonb,
      created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
)


async def ensure_schema(conn: psycopg.AsyncConnection) -> None:
    """Create every table the service needs. Safe to run repeatedly."""
    async with conn.transaction():
        async with conn.cursor() as cur:
            for statement in SCHEMA_SQL:
                await cur.execute(statement)


async def _run() -> int:
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        async with await psycopg.AsyncConnection.connect(settings.database_url) as conn:
            await ensure_schema(conn)
    except psycopg.Error as e:
        logger.error("schema bootstrap failed", extra={"error": str(e)})
        return 1
    logger.info("schema ready")
    return 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())
