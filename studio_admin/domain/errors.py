class DomainError(Exception):
    """Base class for all domain-level errors."""

    kind = "error"
    message = "request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class RateLimited(DomainError):
    """Too many attempts for an identifier within the current window."""

    kind = "rate_limited"
    message = "too many attempts, try again later"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class NotFound(DomainError):
    """
    Subject or code not found.
    User-facing text is the same for every subclass.
    """

    kind = "not_found"
    message = "invalid or expired verification code"


class SubjectNotFound(NotFound):
    """No subject allowed to manage credentials matches the identifier."""


class CodeNotFound(NotFound):
    """No outstanding code exists for the subject."""


class CodeExpired(DomainError):
    """Code is at or past its expiry instant."""

    kind = "expired"
    message = "verification code has expired, request a new one"


class CodeAlreadyUsed(DomainError):
    """Code has already been consumed."""

    kind = "already_used"
    message = "verification code has already been used, request a new one"


class InvalidCode(DomainError):
    """Candidate code does not match the stored digest."""

    kind = "invalid_code"
    message = "invalid verification code"


class ValidationError(DomainError):
    """Malformed input. Carries the offending field."""

    kind = "validation_error"
    message = "invalid input"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class InvalidCredentials(DomainError):
    """Email/password pair or current password did not check out."""

    kind = "unauthorized"
    message = "invalid credentials"


class ConfigurationError(DomainError):
    """A required setting is missing. Fatal at startup."""

    kind = "configuration_error"
    message = "service is not configured"


class TransientInfraError(DomainError):
    """Store, identity service or notifier unreachable. Safe to retry."""

    kind = "transient"
    message = "service temporarily unavailable, try again later"


class DeliveryFailed(TransientInfraError):
    """The notifier could not deliver the code."""

    message = "could not send the verification email, try again later"


class CredentialUpdateFailed(TransientInfraError):
    """The identity store rejected or failed the credential update."""

    message = "could not update the password, try again"


class CallTimedOut(TransientInfraError):
    """A collaborator did not answer in time. Its side effects are unknown."""
