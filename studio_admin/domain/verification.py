from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from studio_admin.domain.entities import CodePurpose, VerificationCode, utcnow
from studio_admin.domain.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    CodeNotFound,
    InvalidCode,
)
from studio_admin.domain.ports.verification_repository import (
    VerificationRepositoryPort,
)
from studio_admin.domain.services import CodeHasher

logger = logging.getLogger(__name__)


class VerificationStore:
    """
    One active code per subject, with expiry and single-use consumption.

    Only digests reach the repository. redeem() marks the code consumed
    before the caller acts on it; release() undoes that when the dependent
    action fails.
    """

    def __init__(
        self,
        repository: VerificationRepositoryPort,
        hasher: CodeHasher,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repository
        self._hasher = hasher
        self._clock = clock

    async def issue(
        self,
        subject_id: str,
        ttl: timedelta,
        purpose: CodePurpose = "password_reset",
    ) -> tuple[VerificationCode, str]:
        """Replace any outstanding code for subject_id. Return (record, plaintext)."""
        plaintext, digest = self._hasher.generate()
        now = self._clock()
        record = await self._repo.replace_active(
            VerificationCode(
                subject_id=subject_id,
                code_digest=digest,
                expires_at=now + ttl,
                purpose=purpose,
                consumed=False,
                created_at=now,
            )
        )
        logger.info(
            "verification code issued",
            extra={
                "subject_id": subject_id,
                "purpose": purpose,
                "expires_at": record.expires_at.isoformat(),
            },
        )
        return record, plaintext

    async def redeem(self, subject_id: str, candidate: str) -> VerificationCode:
        record = await self._repo.latest_unconsumed(subject_id)
        if record is None:
            latest = await self._repo.latest(subject_id)
            if latest is not None and latest.consumed:
                raise CodeAlreadyUsed()
            raise CodeNotFound()

        if record.is_expired(self._clock()):
            raise CodeExpired()

        if not self._hasher.verify(candidate, record.code_digest):
            raise InvalidCode()

        if not await self._repo.mark_consumed(record.id):
            raise CodeAlreadyUsed()

        record.consumed = True
        logger.info(
            "verification code redeemed",
            extra={"subject_id": subject_id, "code_id": record.id},
        )
        return record

    async def release(self, record: VerificationCode) -> None:
        """Revert a redemption so the same code can be retried before expiry."""
        if await self._repo.mark_unconsumed(record.id):
            record.consumed = False
            logger.info(
                "verification code released",
                extra={"subject_id": record.subject_id, "code_id": record.id},
            )
        else:
            logger.warning(
                "verification code release found nothing to revert",
                extra={"subject_id": record.subject_id, "code_id": record.id},
            )
