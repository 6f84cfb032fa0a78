import asyncio
import logging

import pytest

from studio_admin.application.password_reset import (
    confirm_password_reset,
    request_password_reset,
)
from studio_admin.application.recovery import Accepted, Completed, RecoveryPolicy
from studio_admin.domain.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    CredentialUpdateFailed,
    DeliveryFailed,
    InvalidCode,
    NotFound,
    RateLimited,
    SubjectNotFound,
    TransientInfraError,
    ValidationError,
)
from tests.fakes import ADMIN_EMAIL, FakeEmailDown, stub_hash

NEW_PASSWORD = "Str0ng!Pass"


async def _confirm(ctx, code="482913", email=ADMIN_EMAIL, password=NEW_PASSWORD):
    return await confirm_password_reset(
        ctx,
        email=email,
        code=code,
        new_password=password,
        confirm_password=password,
    )


@pytest.mark.asyncio
async def test_reset_end_to_end(ctx, email, identity, activity, repo):
    result = await request_password_reset(ctx, ADMIN_EMAIL)
    assert result == Accepted()

    assert len(email.calls) == 1
    sent = email.calls[0]
    assert sent["to"] == ADMIN_EMAIL
    assert email.last_code() == "482913"
    assert sent["idempotency_key"] == repo.rows()[0].id
    assert "482913" in sent["html"]

    done = await _confirm(ctx)
    assert done == Completed()
    assert identity.update_calls == [("admin-1", NEW_PASSWORD)]
    assert identity.by_id["admin-1"].password_hash == stub_hash(NEW_PASSWORD)
    assert activity.kinds() == ["password_reset_requested", "password_reset_completed"]

    with pytest.raises(CodeAlreadyUsed):
        await _confirm(ctx)
    assert len(identity.update_calls) == 1


@pytest.mark.asyncio
async def test_email_is_normalized(ctx, email):
    await request_password_reset(ctx, "  USER@Example.COM ")
    assert email.calls[0]["to"] == ADMIN_EMAIL

    await _confirm(ctx, email="User@Example.com")


@pytest.mark.asyncio
async def test_empty_email_is_a_validation_error(ctx):
    with pytest.raises(ValidationError) as ei:
        await request_password_reset(ctx, "   ")
    assert ei.value.field == "email"


@pytest.mark.asyncio
@pytest.mark.parametrize("who", ["nobody@example.com", "editor@example.com"])
async def test_request_does_not_reveal_unknown_or_unauthorized(ctx, email, repo, activity, who):
    result = await request_password_reset(ctx, who)
    assert result == Accepted()
    assert email.calls == []
    assert repo.rows() == []
    assert activity.entries == []


@pytest.mark.asyncio
async def test_request_is_rate_limited_even_for_unknown_email(ctx):
    for _ in range(5):
        await request_password_reset(ctx, "nobody@example.com")
    with pytest.raises(RateLimited) as ei:
        await request_password_reset(ctx, "nobody@example.com")
    assert ei.value.retry_after > 0


@pytest.mark.asyncio
async def test_request_limit_recovers_after_window(ctx, clock, email):
    for _ in range(5):
        await request_password_reset(ctx, ADMIN_EMAIL)
    with pytest.raises(RateLimited):
        await request_password_reset(ctx, ADMIN_EMAIL)

    clock.advance(15 * 60)
    await request_password_reset(ctx, ADMIN_EMAIL)
    assert len(email.calls) == 6


@pytest.mark.asyncio
async def test_confirm_unknown_subject_is_not_found(ctx, identity):
    with pytest.raises(SubjectNotFound):
        await _confirm(ctx, email="nobody@example.com")
    with pytest.raises(SubjectNotFound):
        await _confirm(ctx, email="editor@example.com")
    assert identity.update_calls == []


@pytest.mark.asyncio
async def test_confirm_without_issued_code_is_not_found(ctx):
    with pytest.raises(NotFound):
        await _confirm(ctx)


@pytest.mark.asyncio
async def test_wrong_code_then_right_code(ctx, identity):
    await request_password_reset(ctx, ADMIN_EMAIL)

    with pytest.raises(InvalidCode):
        await _confirm(ctx, code="000000")
    assert identity.update_calls == []

    await _confirm(ctx)
    assert len(identity.update_calls) == 1


@pytest.mark.asyncio
async def test_expired_code(ctx, clock, identity):
    await request_password_reset(ctx, ADMIN_EMAIL)
    clock.advance(600)

    with pytest.raises(CodeExpired):
        await _confirm(ctx)
    assert identity.update_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, password, confirm, field",
    [
        ("48291", NEW_PASSWORD, NEW_PASSWORD, "code"),
        ("48291a", NEW_PASSWORD, NEW_PASSWORD, "code"),
        ("482913", "weak", "weak", "new_password"),
        ("482913", NEW_PASSWORD, NEW_PASSWORD + "x", "confirm_password"),
        ("482913", "", "", "new_password"),
    ],
)
async def test_confirm_input_validation(ctx, identity, code, password, confirm, field):
    await request_password_reset(ctx, ADMIN_EMAIL)
    with pytest.raises(ValidationError) as ei:
        await confirm_password_reset(
            ctx,
            email=ADMIN_EMAIL,
            code=code,
            new_password=password,
            confirm_password=confirm,
        )
    assert ei.value.field == field
    assert identity.update_calls == []


@pytest.mark.asyncio
async def test_invalid_input_does_not_use_up_attempts(ctx):
    await request_password_reset(ctx, ADMIN_EMAIL)
    for _ in range(12):
        with pytest.raises(ValidationError):
            await _confirm(ctx, password="weak")

    assert await _confirm(ctx) == Completed()


@pytest.mark.asyncio
async def test_confirm_is_rate_limited(ctx, identity):
    await request_password_reset(ctx, ADMIN_EMAIL)
    for _ in range(10):
        with pytest.raises(InvalidCode):
            await _confirm(ctx, code="000000")

    with pytest.raises(RateLimited):
        await _confirm(ctx)
    assert identity.update_calls == []


@pytest.mark.asyncio
async def test_failed_update_releases_the_code(ctx, identity, repo):
    await request_password_reset(ctx, ADMIN_EMAIL)
    identity.fail_updates = 1

    with pytest.raises(CredentialUpdateFailed):
        await _confirm(ctx)
    assert [r.consumed for r in repo.rows()] == [False]

    assert await _confirm(ctx) == Completed()
    assert [r.consumed for r in repo.rows()] == [True]
    assert len(identity.update_calls) == 2


@pytest.mark.asyncio
async def test_timed_out_update_keeps_the_code_consumed(ctx, identity, repo):
    await request_password_reset(ctx, ADMIN_EMAIL)

    async def slow_update(subject_id, new_credential):
        await asyncio.sleep(1)

    identity.update_credential = slow_update
    ctx.policy = RecoveryPolicy(call_timeout=0.01)

    with pytest.raises(CredentialUpdateFailed):
        await _confirm(ctx)
    assert [r.consumed for r in repo.rows()] == [True]

    with pytest.raises(CodeAlreadyUsed):
        await _confirm(ctx)


@pytest.mark.asyncio
async def test_rollback_after_reissue_keeps_old_code_dead(ctx, identity, repo, monkeypatch):
    from studio_admin.domain import services

    await request_password_reset(ctx, ADMIN_EMAIL)

    async def reissue_then_fail(subject_id, new_credential):
        monkeypatch.setattr(services, "generate_numeric_code", lambda length=6: "135790")
        await request_password_reset(ctx, ADMIN_EMAIL)
        raise RuntimeError("identity service rejected the update")

    identity.update_credential = reissue_then_fail
    with pytest.raises(CredentialUpdateFailed):
        await _confirm(ctx)

    assert [r.consumed for r in repo.rows()].count(False) == 1
    with pytest.raises(InvalidCode):
        await _confirm(ctx, code="482913")


@pytest.mark.asyncio
async def test_delivery_failure_keeps_the_issued_code(ctx, repo, activity):
    ctx.notifier = FakeEmailDown()

    with pytest.raises(DeliveryFailed):
        await request_password_reset(ctx, ADMIN_EMAIL)

    assert ctx.notifier.calls == 1
    rows = repo.rows()
    assert len(rows) == 1 and rows[0].consumed is False
    assert activity.entries == []


@pytest.mark.asyncio
async def test_broken_activity_log_does_not_block(ctx, activity, identity):
    activity.broken = True

    await request_password_reset(ctx, ADMIN_EMAIL)
    await _confirm(ctx)
    assert len(identity.update_calls) == 1


@pytest.mark.asyncio
async def test_slow_identity_store_times_out(ctx, identity):
    async def slow(_email):
        await asyncio.sleep(1)

    identity.find_subject_by_identifier = slow
    ctx.policy = RecoveryPolicy(call_timeout=0.01)

    with pytest.raises(TransientInfraError):
        await request_password_reset(ctx, ADMIN_EMAIL)


@pytest.mark.asyncio
async def test_repeated_failures_raise_a_security_alert(ctx, caplog):
    await request_password_reset(ctx, ADMIN_EMAIL)
    caplog.set_level(logging.WARNING, logger="studio_admin.application.recovery")

    for _ in range(4):
        with pytest.raises(InvalidCode):
            await _confirm(ctx, code="000000")
    assert "security alert" not in caplog.text

    with pytest.raises(InvalidCode):
        await _confirm(ctx, code="000000")
    assert "security alert" in caplog.text


@pytest.mark.asyncio
async def test_success_clears_failure_count(ctx, caplog):
    await request_password_reset(ctx, ADMIN_EMAIL)
    for _ in range(4):
        with pytest.raises(InvalidCode):
            await _confirm(ctx, code="000000")
    await _confirm(ctx)

    caplog.set_level(logging.WARNING, logger="studio_admin.application.recovery")
    with pytest.raises(CodeAlreadyUsed):
        await _confirm(ctx)
    assert "security alert" not in caplog.text
