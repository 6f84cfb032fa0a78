import base64

import pytest
from fastapi.testclient import TestClient

from studio_admin.application.recovery import RecoveryPolicy
from studio_admin.domain.entities import Subject
from studio_admin.domain.services import CodeHasher
from studio_admin.infrastructure.memory.rate_limit_store import InMemoryRateLimitStore
from studio_admin.infrastructure.memory.verification_repo import (
    InMemoryVerificationRepository,
)
from studio_admin.main import create_app
from studio_admin.presentation.dependencies import (
    get_activity_log,
    get_code_hasher,
    get_email_port,
    get_identity,
    get_rate_limit_store,
    get_recovery_policy,
    get_sessions,
    get_verification_repository,
    get_verify_password,
)
from tests.fakes import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    FakeActivityLog,
    FakeEmailOK,
    FakeIdentity,
    FakeSessions,
    stub_hash,
    stub_verify,
)


@pytest.fixture()
def app_and_deps():
    app = create_app()
    deps = {
        "identity": FakeIdentity(
            Subject(
                id="admin-1",
                email=ADMIN_EMAIL,
                password_hash=stub_hash(ADMIN_PASSWORD),
                is_admin=True,
            )
        ),
        "repo": InMemoryVerificationRepository(),
        "rate_limits": InMemoryRateLimitStore(),
        "email": FakeEmailOK(),
        "activity": FakeActivityLog(),
        "sessions": FakeSessions(),
    }
    hasher = CodeHasher("api-test-secret")

    app.dependency_overrides[get_identity] = lambda: deps["identity"]
    app.dependency_overrides[get_verification_repository] = lambda: deps["repo"]
    app.dependency_overrides[get_rate_limit_store] = lambda: deps["rate_limits"]
    app.dependency_overrides[get_code_hasher] = lambda: hasher
    app.dependency_overrides[get_email_port] = lambda: deps["email"]
    app.dependency_overrides[get_activity_log] = lambda: deps["activity"]
    app.dependency_overrides[get_verify_password] = lambda: stub_verify
    app.dependency_overrides[get_sessions] = lambda: deps["sessions"]
    app.dependency_overrides[get_recovery_policy] = lambda: RecoveryPolicy(
        call_timeout=1.0
    )

    try:
        yield app, deps
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def deps(app_and_deps):
    _, deps = app_and_deps
    return deps


@pytest.fixture()
def client(app_and_deps):
    app, _ = app_and_deps
    return TestClient(app, raise_server_exceptions=False)


def basic_auth(email: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{email}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture()
def bearer(client) -> dict[str, str]:
    r = client.post("/v1/admin/login", headers=basic_auth(ADMIN_EMAIL, ADMIN_PASSWORD))
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}
