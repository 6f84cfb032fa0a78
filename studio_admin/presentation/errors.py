import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from studio_admin.domain.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    ConfigurationError,
    DomainError,
    InvalidCode,
    InvalidCredentials,
    NotFound,
    RateLimited,
    TransientInfraError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (RateLimited, status.HTTP_429_TOO_MANY_REQUESTS),
    (NotFound, status.HTTP_400_BAD_REQUEST),
    (CodeExpired, status.HTTP_400_BAD_REQUEST),
    (CodeAlreadyUsed, status.HTTP_400_BAD_REQUEST),
    (InvalidCode, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
    (TransientInfraError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def _status_for(exc: DomainError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = _status_for(exc)
    if isinstance(exc, NotFound):
        # one text for every not-found cause
        detail = NotFound.message
    elif isinstance(exc, TransientInfraError):
        detail = type(exc).message
    else:
        detail = str(exc)

    if status_code >= 500:
        logger.error(
            "request failed",
            extra={"path": request.url.path, "error": exc.kind, "reason": str(exc)},
        )

    content: dict = {"error": exc.kind, "detail": detail}
    headers: dict[str, str] = {}
    if isinstance(exc, ValidationError):
        content["field"] = exc.field
    if isinstance(exc, RateLimited):
        content["retry_after"] = exc.retry_after
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body errors use the same envelope as domain validation errors."""
    field = ""
    detail = "invalid input"
    for err in exc.errors():
        loc = err.get("loc", ())
        field = str(loc[-1]) if loc else ""
        detail = err.get("msg", detail)
        break
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": ValidationError.kind, "detail": detail, "field": field},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled exception", extra={"path": request.url.path}, exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": "internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
