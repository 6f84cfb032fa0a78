from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from typing import Optional

from studio_admin.domain.entities import VerificationCode
from studio_admin.domain.ports.verification_repository import (
    VerificationRepositoryPort,
)


class InMemoryVerificationRepository(VerificationRepositoryPort):
    """Dict-backed repository for tests and single-process development."""

    def __init__(self) -> None:
        self._rows: dict[str, VerificationCode] = {}
        self._lock = asyncio.Lock()

    def rows(self) -> list[VerificationCode]:
        return [replace(r) for r in self._rows.values()]

    def _for_subject(self, subject_id: str) -> list[VerificationCode]:
        rows = [r for r in self._rows.values() if r.subject_id == subject_id]
        return sorted(rows, key=lambda r: r.created_at)

    async def replace_active(self, code: VerificationCode) -> VerificationCode:
        async with self._lock:
            for row in self._for_subject(code.subject_id):
                if not row.consumed:
                    del self._rows[row.id]
            stored = replace(code, id=code.id or str(uuid.uuid4()))
            self._rows[stored.id] = stored
            return replace(stored)

    async def latest_unconsumed(self, subject_id: str) -> Optional[VerificationCode]:
        async with self._lock:
            rows = [r for r in self._for_subject(subject_id) if not r.consumed]
            return replace(rows[-1]) if rows else None

    async def latest(self, subject_id: str) -> Optional[VerificationCode]:
        async with self._lock:
            rows = self._for_subject(subject_id)
            return replace(rows[-1]) if rows else None

    async def mark_consumed(self, code_id: str) -> bool:
        async with self._lock:
            row = self._rows.get(code_id)
            if row is None or row.consumed:
                return False
            row.consumed = True
            return True

    async def mark_unconsumed(self, code_id: str) -> bool:
        async with self._lock:
            row = self._rows.get(code_id)
            if row is None or not row.consumed:
                return False
            # a code issued at or after this one supersedes it
            if any(
                other.id != row.id and other.created_at >= row.created_at
                for other in self._for_subject(row.subject_id)
            ):
                return False
            row.consumed = False
            return True
