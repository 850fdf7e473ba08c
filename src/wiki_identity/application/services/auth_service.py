"""Application authentication service for login and logout."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

from wiki_identity.application.ports.password_hasher_port import PasswordHasherPort
from wiki_identity.application.ports.user_repository_port import UserRecord, UserRepositoryPort
from wiki_identity.domain.auth.account_policy import AccountPolicy
from wiki_identity.domain.auth.credentials import normalize_user_email
from wiki_identity.domain.auth.errors import LOGIN_ERROR, AccountError
from wiki_identity.domain.auth.session_context import SessionContext

logger = logging.getLogger(__name__)

_DUMMY_PASSWORD = "not-a-real-password"


class AuthOutcome(StrEnum):
    """Supported authentication outcomes."""

    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class AuthResult:
    """Authentication result model.

    Every failed login carries the same `LOGIN_ERROR`, whatever the reason.
    """

    outcome: AuthOutcome
    session: SessionContext
    user: UserRecord | None = None
    redirect_to: str | None = None
    error: AccountError | None = None


class AuthService:
    """Authenticate credentials and bind/unbind the session principal."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        password_hasher: PasswordHasherPort,
        policy: AccountPolicy,
    ) -> None:
        self._users = users
        self._password_hasher = password_hasher
        self._policy = policy
        self._dummy_hash = password_hasher.hash_password(_DUMMY_PASSWORD)

    async def authenticate(
        self,
        *,
        email: str,
        password: str,
        from_url: str | None = None,
    ) -> AuthResult:
        """Verify credentials and return a session bound to the user on success."""

        if self._policy.use_external_authentication:
            return AuthResult(outcome=AuthOutcome.REDIRECT, session=SessionContext.anonymous())

        try:
            normalized_email = normalize_user_email(email=email)
        except ValueError:
            return self._failure(reason="blank_email", email=email)

        user = await self._users.get_by_email(email=normalized_email)
        if user is None:
            # Same hashing work as a real check so timing does not reveal unknown emails.
            self._password_hasher.verify_password(
                password=password,
                password_hash=self._dummy_hash,
            )
            return self._failure(reason="unknown_email", email=normalized_email)

        is_valid = self._password_hasher.verify_password(
            password=password,
            password_hash=user.password_hash,
        )
        if not is_valid:
            return self._failure(reason="wrong_password", email=normalized_email)
        if not user.is_activated:
            return self._failure(reason="not_activated", email=normalized_email)

        logger.info("login_success user_id=%s", user.user_id)
        return AuthResult(
            outcome=AuthOutcome.SUCCESS,
            session=SessionContext.for_principal(user.user_id),
            user=user,
            redirect_to=safe_redirect_target(from_url),
        )

    def logout(self, *, session: SessionContext) -> SessionContext:
        """Clear the session principal."""

        if session.is_authenticated:
            logger.info("logout user_id=%s", session.principal_id)
        return SessionContext.anonymous()

    def _failure(self, *, reason: str, email: str) -> AuthResult:
        logger.info("login_failed email=%s reason=%s", email, reason)
        return AuthResult(
            outcome=AuthOutcome.INVALID_CREDENTIALS,
            session=SessionContext.anonymous(),
            error=LOGIN_ERROR,
        )


def safe_redirect_target(from_url: str | None) -> str | None:
    """Return `from_url` only when it is a same-site absolute path."""

    if from_url is None or not from_url.strip():
        return None
    candidate = from_url.strip()
    parts = urlsplit(candidate)
    if parts.scheme or parts.netloc:
        return None
    if not candidate.startswith("/") or candidate.startswith("//") or "\\" in candidate:
        return None
    return candidate
