"""Application service for password reset requests and completions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from wiki_identity.application.ports.account_email_port import (
    AccountEmailPort,
    EmailDeliveryError,
)
from wiki_identity.application.ports.password_hasher_port import PasswordHasherPort
from wiki_identity.application.ports.user_repository_port import UserRecord, UserRepositoryPort
from wiki_identity.application.services.token_issuer import TokenIssuer
from wiki_identity.domain.auth.account_policy import AccountPolicy
from wiki_identity.domain.auth.credentials import (
    MAXIMUM_PASSWORD_BYTES,
    normalize_user_email,
    password_exceeds_maximum_length,
)
from wiki_identity.domain.auth.errors import (
    DEMO_LOCK_ERROR,
    GENERAL_FIELD,
    AccountError,
    ErrorKind,
    validation_error,
)

logger = logging.getLogger(__name__)

MISSING_EMAIL_ERROR = validation_error(GENERAL_FIELD, "Please enter an email address.")
EMAIL_NOT_FOUND_ERROR = AccountError(
    kind=ErrorKind.NOT_FOUND,
    field=GENERAL_FIELD,
    message="The email address could not be found.",
)
SERVER_ERROR = AccountError(
    kind=ErrorKind.SECURITY,
    field=GENERAL_FIELD,
    message="A server error occurred resetting your password. Please try again later.",
)
EMAIL_FAILED_ERROR = AccountError(
    kind=ErrorKind.SECURITY,
    field=GENERAL_FIELD,
    message="The password reset email could not be sent. Please try again later.",
)
PASSWORDS_ERROR = validation_error(
    "password",
    "The passwords were empty or do not match.",
)
PASSWORD_TOO_LONG_ERROR = validation_error(
    "password",
    f"The password must be at most {MAXIMUM_PASSWORD_BYTES} bytes.",
)
INVALID_KEY_ERROR = AccountError(
    kind=ErrorKind.NOT_FOUND,
    field=GENERAL_FIELD,
    message="The password reset link is invalid or has already been used.",
)


class ResetRequestOutcome(StrEnum):
    """Supported reset request outcomes."""

    SENT = "sent"
    EMAIL_FAILED = "email_failed"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    LOCKED = "locked"
    REDIRECT = "redirect"


class ResetCompleteOutcome(StrEnum):
    """Supported reset key lookup and completion outcomes."""

    VALID_KEY = "valid_key"
    CHANGED = "changed"
    INVALID = "invalid"
    INVALID_KEY = "invalid_key"
    LOCKED = "locked"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class ResetRequestResult:
    """Reset request result model."""

    outcome: ResetRequestOutcome
    error: AccountError | None = None
    email: str | None = None


@dataclass(frozen=True)
class ResetCompleteResult:
    """Reset completion (or key check) result model."""

    outcome: ResetCompleteOutcome
    user: UserRecord | None = None
    error: AccountError | None = None


class PasswordResetService:
    """Issue reset keys by email and redeem them exactly once."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        token_issuer: TokenIssuer,
        password_hasher: PasswordHasherPort,
        email_sender: AccountEmailPort,
        policy: AccountPolicy,
    ) -> None:
        self._users = users
        self._token_issuer = token_issuer
        self._password_hasher = password_hasher
        self._email_sender = email_sender
        self._policy = policy

    async def request_reset(self, *, email: str | None) -> ResetRequestResult:
        """Store a fresh reset key for the account, then email the reset link."""

        if self._policy.use_external_authentication:
            return ResetRequestResult(outcome=ResetRequestOutcome.REDIRECT)
        if self._policy.is_demo_site:
            return ResetRequestResult(outcome=ResetRequestOutcome.LOCKED, error=DEMO_LOCK_ERROR)

        try:
            normalized_email = normalize_user_email(email=email or "")
        except ValueError:
            return ResetRequestResult(
                outcome=ResetRequestOutcome.INVALID,
                error=MISSING_EMAIL_ERROR,
            )

        user = await self._users.get_by_email(email=normalized_email)
        if user is None:
            logger.info("password_reset_unknown_email email=%s", normalized_email)
            if self._policy.conceal_unknown_reset_email:
                return ResetRequestResult(outcome=ResetRequestOutcome.SENT, email=normalized_email)
            return ResetRequestResult(
                outcome=ResetRequestOutcome.NOT_FOUND,
                error=EMAIL_NOT_FOUND_ERROR,
            )

        keyed_user = await self._token_issuer.issue_password_reset_key(user_id=user.user_id)
        if keyed_user is None:
            return ResetRequestResult(outcome=ResetRequestOutcome.SERVER_ERROR, error=SERVER_ERROR)

        try:
            await self._email_sender.send_password_reset(user=keyed_user)
        except EmailDeliveryError:
            logger.exception("password_reset_email_failed user_id=%s", keyed_user.user_id)
            return ResetRequestResult(
                outcome=ResetRequestOutcome.EMAIL_FAILED,
                error=EMAIL_FAILED_ERROR,
                email=normalized_email,
            )
        return ResetRequestResult(outcome=ResetRequestOutcome.SENT, email=normalized_email)

    async def check_reset_key(self, *, password_reset_key: str) -> ResetCompleteResult:
        """Resolve the owner of an outstanding key before the new password is chosen."""

        if self._policy.use_external_authentication:
            return ResetCompleteResult(outcome=ResetCompleteOutcome.REDIRECT)

        user = await self._token_issuer.find_password_reset_owner(
            password_reset_key=password_reset_key,
        )
        if user is None:
            return ResetCompleteResult(
                outcome=ResetCompleteOutcome.INVALID_KEY,
                error=INVALID_KEY_ERROR,
            )
        return ResetCompleteResult(outcome=ResetCompleteOutcome.VALID_KEY, user=user)

    async def complete_reset(
        self,
        *,
        password_reset_key: str,
        password: str,
        password_confirmation: str,
    ) -> ResetCompleteResult:
        """Change the password for the key owner and consume the key."""

        if self._policy.use_external_authentication:
            return ResetCompleteResult(outcome=ResetCompleteOutcome.REDIRECT)
        if self._policy.is_demo_site:
            return ResetCompleteResult(outcome=ResetCompleteOutcome.LOCKED, error=DEMO_LOCK_ERROR)

        if not password or not password_confirmation or password != password_confirmation:
            return ResetCompleteResult(outcome=ResetCompleteOutcome.INVALID, error=PASSWORDS_ERROR)
        if password_exceeds_maximum_length(password):
            return ResetCompleteResult(
                outcome=ResetCompleteOutcome.INVALID,
                error=PASSWORD_TOO_LONG_ERROR,
            )

        owner = await self._token_issuer.find_password_reset_owner(
            password_reset_key=password_reset_key,
        )
        if owner is None:
            return ResetCompleteResult(
                outcome=ResetCompleteOutcome.INVALID_KEY,
                error=INVALID_KEY_ERROR,
            )

        user = await self._token_issuer.redeem_password_reset_key(
            password_reset_key=password_reset_key,
            password_hash=self._password_hasher.hash_password(password),
        )
        if user is None:
            # Lost the race to a concurrent redemption of the same key.
            return ResetCompleteResult(
                outcome=ResetCompleteOutcome.INVALID_KEY,
                error=INVALID_KEY_ERROR,
            )
        return ResetCompleteResult(outcome=ResetCompleteOutcome.CHANGED, user=user)
