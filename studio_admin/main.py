import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from studio_admin.domain.errors import ConfigurationError
from studio_admin.domain.services import CodeHasher
from studio_admin.infrastructure.db.pool import close_pool, get_pool
from studio_admin.infrastructure.email.resend_adapter import ResendEmailAdapter
from studio_admin.infrastructure.http.client import (
    close_http_client,
    get_http_client,
    open_http_client,
)
from studio_admin.infrastructure.redis_cache.pool import close_redis, get_redis
from studio_admin.logging import setup_logging
from studio_admin.presentation.api import api
from studio_admin.presentation.errors import register_exception_handlers
from studio_admin.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup: refuse to serve without the code secret
    try:
        app.state.code_hasher = CodeHasher(
            settings.otp_secret, code_length=settings.code_length
        )
    except ConfigurationError:
        logger.critical("OTP_SECRET is not set; refusing to start")
        raise

    pool = get_pool()
    await pool.open()

    await open_http_client(timeout=settings.external_call_timeout_seconds)

    get_redis()

    # Create ONE shared Email adapter, using the shared HTTP client
    email_adapter = ResendEmailAdapter(
        base_url=settings.email_api_base_url,
        api_key=settings.email_api_key,
        sender=settings.email_from,
        client=get_http_client(),
    )
    app.state.email_adapter = email_adapter  # expose to dependencies

    try:
        yield
    finally:
        # shutdown
        await email_adapter.aclose()  # it won't close the shared client
        await close_http_client()  # closes the shared client
        await close_redis()
        await close_pool()


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Studio Admin Credentials API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    register_exception_handlers(app)
    app.include_router(api)
    return app


app = create_app()
