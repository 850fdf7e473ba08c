"""Error taxonomy shared by account lifecycle results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    """Kinds of account errors reported back to callers."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFIGURATION_LOCK = "configuration_lock"
    SECURITY = "security"


@dataclass(frozen=True)
class AccountError:
    """One error attached to a specific input field (or `general`)."""

    kind: ErrorKind
    field: str
    message: str


GENERAL_FIELD = "general"

LOGIN_ERROR = AccountError(
    kind=ErrorKind.AUTHENTICATION,
    field="Username/Password",
    message="There was a problem with your username or password.",
)
DEMO_LOCK_ERROR = AccountError(
    kind=ErrorKind.CONFIGURATION_LOCK,
    field=GENERAL_FIELD,
    message="The demo site login cannot be changed.",
)
FORBIDDEN_PROFILE_ERROR = AccountError(
    kind=ErrorKind.AUTHORIZATION,
    field=GENERAL_FIELD,
    message="You cannot change the profile of another user.",
)


def validation_error(field: str, message: str) -> AccountError:
    """Build one field-scoped validation error."""

    return AccountError(kind=ErrorKind.VALIDATION, field=field, message=message)
