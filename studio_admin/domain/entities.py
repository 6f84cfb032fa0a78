from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

CodePurpose = Literal["password_reset", "password_change"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Subject:
    id: str
    email: str
    password_hash: str | None = None
    is_admin: bool = False
    active: bool = True

    def __post_init__(self):
        self.email = normalize_email(self.email)

    def can_manage_credentials(self) -> bool:
        """The one authority check every credential flow goes through."""
        return self.active and self.is_admin


@dataclass
class VerificationCode:
    subject_id: str
    code_digest: str
    expires_at: datetime
    purpose: CodePurpose = "password_reset"
    consumed: bool = False
    created_at: datetime = field(default_factory=utcnow)
    id: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at


@dataclass(frozen=True)
class RateLimitRecord:
    attempt_count: int
    window_start: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    attempts: int
    retry_after: int = 0


def normalize_email(email: str | None) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValueError("email is required")
    return normalized
