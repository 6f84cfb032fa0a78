import re

from studio_admin.domain.errors import ValidationError

MIN_LENGTH = 8
# bcrypt ignores everything past 72 bytes
MAX_BYTES = 72
SPECIAL_CHARACTERS = "@$!%*?&"

_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_DIGIT_RE = re.compile(r"[0-9]")


def validate_new_credential(new_password: str, confirm_password: str) -> None:
    """Raise ValidationError unless the new password meets the admin policy."""
    if not new_password:
        raise ValidationError("new_password", "new password is required")
    if not confirm_password:
        raise ValidationError("confirm_password", "password confirmation is required")
    if new_password != confirm_password:
        raise ValidationError("confirm_password", "passwords do not match")
    if len(new_password) < MIN_LENGTH:
        raise ValidationError(
            "new_password", f"password must be at least {MIN_LENGTH} characters long"
        )
    if len(new_password.encode("utf-8")) > MAX_BYTES:
        raise ValidationError(
            "new_password", f"password must be at most {MAX_BYTES} bytes long"
        )
    if not (
        _UPPER_RE.search(new_password)
        and _LOWER_RE.search(new_password)
        and _DIGIT_RE.search(new_password)
        and any(c in SPECIAL_CHARACTERS for c in new_password)
    ):
        raise ValidationError(
            "new_password",
            "password must contain uppercase, lowercase, number and one of "
            + SPECIAL_CHARACTERS,
        )


def validate_code_format(code: str, length: int) -> None:
    if not code or not re.fullmatch(rf"[0-9]{{{length}}}", code):
        raise ValidationError("code", f"verification code must be {length} digits")
