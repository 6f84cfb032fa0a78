import pytest

from studio_admin.application.recovery import RecoveryContext, RecoveryPolicy
from studio_admin.domain.entities import Subject
from studio_admin.domain.rate_limiter import RateLimiter
from studio_admin.domain.services import CodeHasher
from studio_admin.domain.verification import VerificationStore
from studio_admin.infrastructure.memory.rate_limit_store import InMemoryRateLimitStore
from studio_admin.infrastructure.memory.verification_repo import (
    InMemoryVerificationRepository,
)
from tests.fakes import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    FakeActivityLog,
    FakeClock,
    FakeEmailOK,
    FakeIdentity,
    stub_hash,
    stub_verify,
)



@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def hasher():
    return CodeHasher("test-otp-secret")


@pytest.fixture()
def repo():
    return InMemoryVerificationRepository()


@pytest.fixture()
def store(repo, hasher, clock):
    return VerificationStore(repo, hasher, clock=clock.now)


@pytest.fixture()
def limiter(clock):
    return RateLimiter(InMemoryRateLimitStore(clock=clock.time), clock=clock.time)


@pytest.fixture()
def admin():
    return Subject(
        id="admin-1",
        email=ADMIN_EMAIL,
        password_hash=stub_hash(ADMIN_PASSWORD),
        is_admin=True,
    )


@pytest.fixture()
def identity(admin):
    editor = Subject(
        id="editor-1",
        email="editor@example.com",
        password_hash=stub_hash(ADMIN_PASSWORD),
        is_admin=False,
    )
    return FakeIdentity(admin, editor)


@pytest.fixture()
def email():
    return FakeEmailOK()


@pytest.fixture()
def activity():
    return FakeActivityLog()


@pytest.fixture()
def policy():
    return RecoveryPolicy(call_timeout=1.0)


@pytest.fixture()
def ctx(identity, store, limiter, email, activity, policy):
    return RecoveryContext(
        identity=identity,
        store=store,
        limiter=limiter,
        notifier=email,
        activity_log=activity,
        verify_password=stub_verify,
        policy=policy,
    )


@pytest.fixture(autouse=True)
def patch_code(monkeypatch):
    """
    Make the issued code deterministic in all tests.
    You can override in a specific test by re-monkeypatching.
    """
    from studio_admin.domain import services as domain_services

    monkeypatch.setattr(
        domain_services, "generate_numeric_code", lambda length=6: "482913"
    )
    yield
