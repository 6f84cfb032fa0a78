from __future__ import annotations

from typing import Optional, Protocol

from studio_admin.domain.entities import Subject


class IdentityPort(Protocol):
    async def find_subject_by_identifier(self, email: str) -> Optional[Subject]:
        """Look up a subject by (normalized) email. None if unknown."""

    async def get_subject(self, subject_id: str) -> Optional[Subject]:
        """Look up a subject by id. None if unknown."""

    async def update_credential(self, subject_id: str, new_credential: str) -> None:
        """Replace the subject's password. Raise on any failure."""
