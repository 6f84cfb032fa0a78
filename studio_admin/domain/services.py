# studio_admin/domain/services.py
from __future__ import annotations

import hashlib
import hmac
import secrets

from studio_admin.domain.errors import ConfigurationError

CODE_LENGTH = 6


def generate_numeric_code(length: int = CODE_LENGTH) -> str:
    """Zero-padded numeric code drawn from the OS CSPRNG."""
    return f"{secrets.randbelow(10**length):0{length}d}"


def secure_compare(a: str, b: str) -> bool:
    """
    Constant-time comparison for secrets.
    Accepts strings; falls back to bytes if needed.
    """
    try:
        return hmac.compare_digest(a, b)
    except TypeError:
        return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class CodeHasher:
    """
    Produces one-time codes and their keyed digests.

    digest = HMAC-SHA256(secret, code), hex encoded. The plaintext code only
    ever leaves this class to be delivered to the subject.
    """

    def __init__(self, secret: str | None, *, code_length: int = CODE_LENGTH) -> None:
        if not secret:
            raise ConfigurationError("OTP_SECRET must be set to issue verification codes")
        self._key = secret.encode("utf-8")
        self.code_length = code_length

    def digest(self, code: str) -> str:
        return hmac.new(self._key, code.encode("utf-8"), hashlib.sha256).hexdigest()

    def generate(self) -> tuple[str, str]:
        code = generate_numeric_code(self.code_length)
        return code, self.digest(code)

    def verify(self, candidate: str, digest: str) -> bool:
        return secure_compare(self.digest(candidate), digest)
