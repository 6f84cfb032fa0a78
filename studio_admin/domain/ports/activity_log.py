from __future__ import annotations

from typing import Any, Protocol


class ActivityLogPort(Protocol):
    async def record(
        self, event_kind: str, subject_id: str | None, metadata: dict[str, Any]
    ) -> None:
        """Append an audit entry."""
