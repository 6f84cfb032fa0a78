"""
Shared machinery for the credential flows.

RecoveryContext bundles the collaborators every flow needs. The helpers below
hold the parts the reset and change flows have in common: bounded external
calls, issuing plus delivering a code, and redeem -> update -> rollback.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, TypeVar

from studio_admin.application.email_templates import render_code_email
from studio_admin.domain.entities import CodePurpose, Subject, VerificationCode
from studio_admin.domain.errors import (
    CodeAlreadyUsed,
    CallTimedOut,
    CodeExpired,
    CredentialUpdateFailed,
    DeliveryFailed,
    InvalidCode,
    NotFound,
    TransientInfraError,
)
from studio_admin.domain.ports.activity_log import ActivityLogPort
from studio_admin.domain.ports.email_port import EmailPort
from studio_admin.domain.ports.identity import IdentityPort
from studio_admin.domain.rate_limiter import RateLimiter
from studio_admin.domain.verification import VerificationStore
from studio_admin.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILED_ATTEMPTS_PURPOSE = "credential:failed"


@dataclass(frozen=True)
class RecoveryPolicy:
    code_ttl: timedelta = timedelta(minutes=10)
    code_length: int = 6
    issue_max_attempts: int = 5
    verify_max_attempts: int = 10
    window_seconds: int = 15 * 60
    failed_attempt_alert_threshold: int = 5
    call_timeout: float = 5.0
    brand: str = "Studio Admin"

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecoveryPolicy":
        return cls(
            code_ttl=timedelta(seconds=settings.code_ttl_seconds),
            code_length=settings.code_length,
            issue_max_attempts=settings.issue_max_attempts,
            verify_max_attempts=settings.verify_max_attempts,
            window_seconds=settings.rate_limit_window_seconds,
            failed_attempt_alert_threshold=settings.failed_attempt_alert_threshold,
            call_timeout=settings.external_call_timeout_seconds,
            brand=settings.brand_name,
        )


@dataclass
class RecoveryContext:
    identity: IdentityPort
    store: VerificationStore
    limiter: RateLimiter
    notifier: EmailPort
    activity_log: ActivityLogPort
    verify_password: Callable[[str, str | None], bool]
    policy: RecoveryPolicy = RecoveryPolicy()


@dataclass(frozen=True)
class Accepted:
    accepted: bool = True


@dataclass(frozen=True)
class ChangeRequested:
    expires_in: int
    accepted: bool = True


@dataclass(frozen=True)
class Completed:
    success: bool = True


async def bounded(ctx: RecoveryContext, awaitable: Awaitable[T], what: str) -> T:
    """Await an external call under the policy timeout."""
    try:
        return await asyncio.wait_for(awaitable, ctx.policy.call_timeout)
    except asyncio.TimeoutError as e:
        logger.warning(
            "external call timed out",
            extra={"call": what, "timeout_s": ctx.policy.call_timeout},
        )
        raise CallTimedOut(f"{what} timed out") from e


async def enforce_limit(
    ctx: RecoveryContext, identifier: str, purpose: str, max_attempts: int
) -> None:
    await bounded(
        ctx,
        ctx.limiter.enforce(
            identifier, purpose, max_attempts, ctx.policy.window_seconds
        ),
        "rate limiter",
    )


async def record_activity(
    ctx: RecoveryContext,
    event_kind: str,
    subject_id: str | None,
    metadata: dict[str, Any],
) -> None:
    """Fire-and-forget: an audit failure never fails the flow."""
    try:
        await bounded(
            ctx, ctx.activity_log.record(event_kind, subject_id, metadata), "activity log"
        )
    except Exception:  # noqa: BLE001
        logger.warning(
            "activity log write failed",
            extra={"event": event_kind, "subject_id": subject_id},
            exc_info=True,
        )


async def note_failure(ctx: RecoveryContext, identifier: str) -> None:
    """Count a failed confirmation and raise a security alert at the threshold."""
    threshold = ctx.policy.failed_attempt_alert_threshold
    try:
        decision = await bounded(
            ctx,
            ctx.limiter.check(
                identifier, FAILED_ATTEMPTS_PURPOSE, threshold, ctx.policy.window_seconds
            ),
            "failed-attempt monitor",
        )
    except TransientInfraError:
        logger.warning(
            "failed-attempt monitor unavailable", extra={"identifier": identifier}
        )
        return
    if not decision.allowed or decision.attempts >= threshold:
        logger.warning(
            "security alert: repeated failed credential confirmations",
            extra={"identifier": identifier, "attempts": decision.attempts},
        )


async def clear_failures(ctx: RecoveryContext, identifier: str) -> None:
    try:
        await bounded(
            ctx,
            ctx.limiter.reset(identifier, FAILED_ATTEMPTS_PURPOSE),
            "failed-attempt monitor",
        )
    except TransientInfraError:
        logger.warning(
            "failed-attempt monitor unavailable", extra={"identifier": identifier}
        )


async def issue_and_deliver(
    ctx: RecoveryContext, subject: Subject, purpose: CodePurpose
) -> VerificationCode:
    """CODE_ISSUED -> DELIVERED. A delivery failure leaves the issued code in place."""
    record, plaintext = await bounded(
        ctx,
        ctx.store.issue(subject.id, ctx.policy.code_ttl, purpose),
        "verification store",
    )
    message = render_code_email(
        purpose, plaintext, ctx.policy.code_ttl, brand=ctx.policy.brand
    )
    try:
        await bounded(
            ctx,
            ctx.notifier.send(
                to=subject.email,
                subject=message.subject,
                html=message.html,
                text=message.text,
                idempotency_key=record.id,
            ),
            "notifier",
        )
    except TransientInfraError as e:
        logger.error(
            "verification code delivery failed",
            extra={"subject_id": subject.id, "purpose": purpose, "error": str(e)},
        )
        raise DeliveryFailed() from e
    logger.info(
        "verification code delivered",
        extra={"subject_id": subject.id, "purpose": purpose},
    )
    return record


async def redeem_and_update(
    ctx: RecoveryContext,
    subject: Subject,
    code: str,
    new_password: str,
    *,
    failure_key: str,
) -> None:
    """
    REDEEMED -> CREDENTIAL_UPDATED, or ROLLED_BACK.

    The code is consumed before the credential changes. If the update fails
    the code is released so it can be retried until it expires. A timed-out
    update may still have committed, so its code stays consumed.
    """
    try:
        record = await bounded(
            ctx, ctx.store.redeem(subject.id, code), "verification store"
        )
    except (NotFound, CodeExpired, CodeAlreadyUsed, InvalidCode) as e:
        logger.info(
            "verification code rejected",
            extra={"subject_id": subject.id, "reason": e.kind},
        )
        await note_failure(ctx, failure_key)
        raise

    try:
        await bounded(
            ctx,
            ctx.identity.update_credential(subject.id, new_password),
            "identity store",
        )
    except CallTimedOut as e:
        logger.error(
            "credential update timed out, code stays consumed",
            extra={"subject_id": subject.id, "code_id": record.id},
        )
        raise CredentialUpdateFailed() from e
    except Exception as e:  # noqa: BLE001
        logger.error(
            "credential update failed, rolling back code",
            extra={"subject_id": subject.id, "code_id": record.id},
            exc_info=True,
        )
        try:
            await bounded(ctx, ctx.store.release(record), "verification store")
        except TransientInfraError:
            logger.error(
                "code rollback failed",
                extra={"subject_id": subject.id, "code_id": record.id},
            )
        raise CredentialUpdateFailed() from e

    await clear_failures(ctx, failure_key)
