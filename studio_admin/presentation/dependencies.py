from typing import Callable

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from studio_admin.application.recovery import RecoveryContext, RecoveryPolicy
from studio_admin.domain.errors import InvalidCredentials
from studio_admin.domain.ports.activity_log import ActivityLogPort
from studio_admin.domain.ports.email_port import EmailPort
from studio_admin.domain.ports.identity import IdentityPort
from studio_admin.domain.ports.rate_limit_store import RateLimitStorePort
from studio_admin.domain.ports.verification_repository import (
    VerificationRepositoryPort,
)
from studio_admin.domain.rate_limiter import RateLimiter
from studio_admin.domain.services import CodeHasher
from studio_admin.domain.verification import VerificationStore
from studio_admin.infrastructure.db.activity_log import PgActivityLog
from studio_admin.infrastructure.db.identity_repo import PgIdentityRepository
from studio_admin.infrastructure.db.pool import get_pool
from studio_admin.infrastructure.db.verification_repo import PgVerificationRepository
from studio_admin.infrastructure.redis_cache.pool import get_redis
from studio_admin.infrastructure.redis_cache.rate_limit_store import (
    RedisRateLimitStore,
)
from studio_admin.infrastructure.redis_cache.sessions import RedisSessions
from studio_admin.infrastructure.security.password import hash_password, verify_password
from studio_admin.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity() -> IdentityPort:
    return PgIdentityRepository(get_pool(), hash_password)


def get_verification_repository() -> VerificationRepositoryPort:
    return PgVerificationRepository(get_pool())


def get_rate_limit_store() -> RateLimitStorePort:
    return RedisRateLimitStore(get_redis())


def get_activity_log() -> ActivityLogPort:
    return PgActivityLog(get_pool())


def get_code_hasher(request: Request) -> CodeHasher:
    # Built once in studio_admin.main lifespan(); missing secret aborts startup there.
    return request.app.state.code_hasher


def get_email_port(request: Request) -> EmailPort:
    # This is set in studio_admin.main lifespan()
    return request.app.state.email_adapter


def get_verify_password() -> Callable[[str, str | None], bool]:
    return verify_password


def get_recovery_policy() -> RecoveryPolicy:
    return RecoveryPolicy.from_settings(get_settings())


def get_recovery_context(
    identity: IdentityPort = Depends(get_identity),
    repository: VerificationRepositoryPort = Depends(get_verification_repository),
    hasher: CodeHasher = Depends(get_code_hasher),
    rate_limit_store: RateLimitStorePort = Depends(get_rate_limit_store),
    notifier: EmailPort = Depends(get_email_port),
    activity_log: ActivityLogPort = Depends(get_activity_log),
    verify: Callable[[str, str | None], bool] = Depends(get_verify_password),
    policy: RecoveryPolicy = Depends(get_recovery_policy),
) -> RecoveryContext:
    return RecoveryContext(
        identity=identity,
        store=VerificationStore(repository, hasher),
        limiter=RateLimiter(rate_limit_store),
        notifier=notifier,
        activity_log=activity_log,
        verify_password=verify,
        policy=policy,
    )


def get_sessions() -> RedisSessions:
    return RedisSessions(get_redis(), ttl_seconds=get_settings().session_ttl_seconds)


async def get_current_admin_id(
    auth: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    sessions: RedisSessions = Depends(get_sessions),
) -> str:
    if auth is None or not auth.credentials:
        raise InvalidCredentials("missing bearer token")
    subject_id = await sessions.get(auth.credentials)
    if not subject_id:
        raise InvalidCredentials("invalid or expired token")
    return subject_id
