from typing import Annotated, Callable

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from studio_admin.application.admin_login import authenticate_admin
from studio_admin.application.password_change import (
    confirm_password_change,
    request_password_change,
)
from studio_admin.application.password_reset import (
    confirm_password_reset,
    request_password_reset,
)
from studio_admin.application.recovery import RecoveryContext
from studio_admin.domain.errors import InvalidCredentials
from studio_admin.domain.ports.identity import IdentityPort
from studio_admin.infrastructure.redis_cache.sessions import RedisSessions
from studio_admin.presentation.dependencies import (
    get_current_admin_id,
    get_identity,
    get_recovery_context,
    get_sessions,
    get_verify_password,
)
from studio_admin.schemas.requests import (
    PasswordChangeConfirmIn,
    PasswordChangeRequestIn,
    PasswordResetConfirmIn,
    PasswordResetRequestIn,
)
from studio_admin.schemas.responses import (
    AcceptedOut,
    AdminOut,
    ChangeRequestedOut,
    ErrorOut,
    SuccessOut,
    TokenOut,
)

router = APIRouter(prefix="/admin", tags=["Admin"])
security = HTTPBasic()

_ERRORS = {
    400: {"model": ErrorOut},
    422: {"model": ErrorOut},
    429: {"model": ErrorOut},
    503: {"model": ErrorOut},
}


@router.post(
    "/password-reset/request",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AcceptedOut,
    responses=_ERRORS,
)
async def post_request_password_reset(
    body: PasswordResetRequestIn,
    ctx: Annotated[RecoveryContext, Depends(get_recovery_context)],
):
    await request_password_reset(ctx, email=body.email)
    return AcceptedOut()


@router.post(
    "/password-reset/confirm", response_model=SuccessOut, responses=_ERRORS
)
async def post_confirm_password_reset(
    body: PasswordResetConfirmIn,
    ctx: Annotated[RecoveryContext, Depends(get_recovery_context)],
):
    await confirm_password_reset(
        ctx,
        email=body.email,
        code=body.code,
        new_password=body.new_password,
        confirm_password=body.confirm_password,
    )
    return SuccessOut()


@router.post("/login", response_model=TokenOut)
async def post_login(
    creds: HTTPBasicCredentials = Depends(security),
    identity: IdentityPort = Depends(get_identity),
    verify_password: Callable[[str, str | None], bool] = Depends(get_verify_password),
    sessions: RedisSessions = Depends(get_sessions),
):
    subject = await authenticate_admin(
        identity, creds.username, creds.password, verify_password
    )
    token = await sessions.create(subject.id)
    return TokenOut(token=token)


@router.get("/me", response_model=AdminOut)
async def get_me(
    admin_id: Annotated[str, Depends(get_current_admin_id)],
    identity: IdentityPort = Depends(get_identity),
):
    subject = await identity.get_subject(admin_id)
    if subject is None or not subject.can_manage_credentials():
        raise InvalidCredentials("unknown user")
    return AdminOut(id=subject.id, email=subject.email)


@router.post(
    "/password-change/request",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ChangeRequestedOut,
    responses=_ERRORS,
)
async def post_request_password_change(
    body: PasswordChangeRequestIn,
    admin_id: Annotated[str, Depends(get_current_admin_id)],
    ctx: Annotated[RecoveryContext, Depends(get_recovery_context)],
):
    result = await request_password_change(
        ctx, subject_id=admin_id, current_password=body.current_password
    )
    return ChangeRequestedOut(expires_in=result.expires_in)


@router.post(
    "/password-change/confirm", response_model=SuccessOut, responses=_ERRORS
)
async def post_confirm_password_change(
    body: PasswordChangeConfirmIn,
    admin_id: Annotated[str, Depends(get_current_admin_id)],
    ctx: Annotated[RecoveryContext, Depends(get_recovery_context)],
):
    await confirm_password_change(
        ctx,
        subject_id=admin_id,
        code=body.code,
        new_password=body.new_password,
        confirm_password=body.confirm_password,
    )
    return SuccessOut()
