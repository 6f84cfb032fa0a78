from __future__ import annotations

import logging

from studio_admin.application.recovery import (
    Accepted,
    Completed,
    RecoveryContext,
    bounded,
    enforce_limit,
    issue_and_deliver,
    note_failure,
    record_activity,
    redeem_and_update,
)
from studio_admin.domain.credential_policy import (
    validate_code_format,
    validate_new_credential,
)
from studio_admin.domain.entities import normalize_email
from studio_admin.domain.errors import SubjectNotFound, ValidationError

logger = logging.getLogger(__name__)

REQUEST_PURPOSE = "password_reset:request"
CONFIRM_PURPOSE = "password_reset:confirm"


def _email(raw: str) -> str:
    try:
        return normalize_email(raw)
    except ValueError:
        raise ValidationError("email", "email is required") from None


async def request_password_reset(ctx: RecoveryContext, email: str) -> Accepted:
    """
    Start a reset for the admin behind `email`.

    The result is the same whether or not such an admin exists.
    """
    normalized_email = _email(email)
    await enforce_limit(
        ctx, normalized_email, REQUEST_PURPOSE, ctx.policy.issue_max_attempts
    )

    subject = await bounded(
        ctx,
        ctx.identity.find_subject_by_identifier(normalized_email),
        "identity store",
    )
    if subject is None or not subject.can_manage_credentials():
        logger.info("password reset requested for an unknown or unauthorized subject")
        return Accepted()

    await issue_and_deliver(ctx, subject, "password_reset")
    await record_activity(
        ctx, "password_reset_requested", subject.id, {"email": subject.email}
    )
    return Accepted()


async def confirm_password_reset(
    ctx: RecoveryContext,
    email: str,
    code: str,
    new_password: str,
    confirm_password: str,
) -> Completed:
    normalized_email = _email(email)
    validate_code_format(code, ctx.policy.code_length)
    validate_new_credential(new_password, confirm_password)
    await enforce_limit(
        ctx, normalized_email, CONFIRM_PURPOSE, ctx.policy.verify_max_attempts
    )

    subject = await bounded(
        ctx,
        ctx.identity.find_subject_by_identifier(normalized_email),
        "identity store",
    )
    if subject is None or not subject.can_manage_credentials():
        await note_failure(ctx, normalized_email)
        raise SubjectNotFound()

    await redeem_and_update(
        ctx, subject, code, new_password, failure_key=normalized_email
    )
    logger.info("password reset completed", extra={"subject_id": subject.id})
    await record_activity(
        ctx,
        "password_reset_completed",
        subject.id,
        {"email": subject.email, "reset_via": "email_otp"},
    )
    return Completed()
