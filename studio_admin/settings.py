from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"
    brand_name: str = "Studio Admin"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    email_api_base_url: str = "https://api.resend.com"
    email_api_key: str = ""
    email_from: str = "Studio Admin <onboarding@resend.dev>"
    external_call_timeout_seconds: float = 5.0

    # Security / policies
    otp_secret: str | None = None
    bcrypt_rounds: int = 12
    code_length: int = 6
    code_ttl_seconds: int = 600
    issue_max_attempts: int = 5
    verify_max_attempts: int = 10
    rate_limit_window_seconds: int = 900
    failed_attempt_alert_threshold: int = 5
    session_ttl_seconds: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
