from __future__ import annotations

import logging

from studio_admin.application.recovery import (
    ChangeRequested,
    Completed,
    RecoveryContext,
    bounded,
    enforce_limit,
    issue_and_deliver,
    record_activity,
    redeem_and_update,
)
from studio_admin.domain.credential_policy import (
    validate_code_format,
    validate_new_credential,
)
from studio_admin.domain.entities import Subject
from studio_admin.domain.errors import (
    InvalidCredentials,
    SubjectNotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)

REQUEST_PURPOSE = "password_change:request"
CONFIRM_PURPOSE = "password_change:confirm"


async def _load_subject(ctx: RecoveryContext, subject_id: str) -> Subject:
    subject = await bounded(ctx, ctx.identity.get_subject(subject_id), "identity store")
    if subject is None or not subject.can_manage_credentials():
        raise SubjectNotFound()
    return subject


async def request_password_change(
    ctx: RecoveryContext, subject_id: str, current_password: str
) -> ChangeRequested:
    """A logged-in admin re-proves the current password and gets a code by email."""
    if not current_password:
        raise ValidationError("current_password", "current password is required")
    await enforce_limit(ctx, subject_id, REQUEST_PURPOSE, ctx.policy.issue_max_attempts)

    subject = await _load_subject(ctx, subject_id)
    if not ctx.verify_password(current_password, subject.password_hash):
        logger.info("password change refused", extra={"subject_id": subject.id})
        raise InvalidCredentials("current password is incorrect")

    await issue_and_deliver(ctx, subject, "password_change")
    await record_activity(
        ctx, "password_change_requested", subject.id, {"email": subject.email}
    )
    return ChangeRequested(expires_in=int(ctx.policy.code_ttl.total_seconds()))


async def confirm_password_change(
    ctx: RecoveryContext,
    subject_id: str,
    code: str,
    new_password: str,
    confirm_password: str,
) -> Completed:
    validate_code_format(code, ctx.policy.code_length)
    validate_new_credential(new_password, confirm_password)
    await enforce_limit(ctx, subject_id, CONFIRM_PURPOSE, ctx.policy.verify_max_attempts)

    subject = await _load_subject(ctx, subject_id)
    await redeem_and_update(ctx, subject, code, new_password, failure_key=subject_id)
    logger.info("password changed", extra={"subject_id": subject.id})
    await record_activity(ctx, "password_changed", subject.id, {"email": subject.email})
    return Completed()
