from typing import Callable

from studio_admin.domain.entities import Subject, normalize_email
from studio_admin.domain.errors import InvalidCredentials
from studio_admin.domain.ports.identity import IdentityPort


async def authenticate_admin(
    identity: IdentityPort,
    email: str,
    password: str,
    verify_password: Callable[[str, str | None], bool],
) -> Subject:
    try:
        normalized_email = normalize_email(email)
    except ValueError:
        raise InvalidCredentials() from None

    subject = await identity.find_subject_by_identifier(normalized_email)
    if subject is None or not subject.can_manage_credentials():
        raise InvalidCredentials()
    if not verify_password(password, subject.password_hash):
        raise InvalidCredentials()
    return subject
