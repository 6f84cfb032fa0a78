from __future__ import annotations

from typing import Optional, Protocol

from studio_admin.domain.entities import VerificationCode


class VerificationRepositoryPort(Protocol):
    async def replace_active(self, code: VerificationCode) -> VerificationCode:
        """
        Delete every unconsumed code for code.subject_id, then insert `code`.
        Both steps happen atomically. Return the stored record (with id).
        """

    async def latest_unconsumed(self, subject_id: str) -> Optional[VerificationCode]:
        """Most recent code for the subject with consumed = false."""

    async def latest(self, subject_id: str) -> Optional[VerificationCode]:
        """Most recent code for the subject, consumed or not."""

    async def mark_consumed(self, code_id: str) -> bool:
        """
        Set consumed = true guarded by consumed = false.
        True only if exactly one row changed.
        """

    async def mark_unconsumed(self, code_id: str) -> bool:
        """
        Set consumed = false guarded by consumed = true. Refuse when the
        subject has a code issued at or after this one.
        """
