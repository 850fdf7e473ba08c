"""Application service for self-service signup and confirmation resends."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import uuid4

from wiki_identity.application.ports.account_email_port import (
    AccountEmailPort,
    EmailDeliveryError,
)
from wiki_identity.application.ports.captcha_verifier_port import (
    CaptchaUnavailableError,
    CaptchaVerifierPort,
)
from wiki_identity.application.ports.password_hasher_port import PasswordHasherPort
from wiki_identity.application.ports.user_repository_port import (
    DuplicateUserError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from wiki_identity.application.services.token_issuer import TokenIssuer
from wiki_identity.domain.auth.account_policy import AccountPolicy
from wiki_identity.domain.auth.credentials import (
    is_well_formed_email,
    normalize_user_email,
    normalize_username,
    validate_new_password,
)
from wiki_identity.domain.auth.errors import (
    GENERAL_FIELD,
    AccountError,
    ErrorKind,
    validation_error,
)
from wiki_identity.domain.auth.session_context import SessionContext

logger = logging.getLogger(__name__)


class SignupOutcome(StrEnum):
    """Supported signup outcomes."""

    CREATED = "created"
    EMAIL_FAILED = "email_failed"
    INVALID = "invalid"
    REDIRECT = "redirect"


class ResendOutcome(StrEnum):
    """Supported confirmation resend outcomes."""

    SENT = "sent"
    EMAIL_FAILED = "email_failed"
    RESTART_SIGNUP = "restart_signup"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class SignupInput:
    """Profile fields submitted on the signup form."""

    email: str
    username: str
    password: str
    password_confirmation: str
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True)
class SignupResult:
    """Signup result model.

    EMAIL_FAILED still carries the created user: the account stands and the
    caller can recover through a confirmation resend.
    """

    outcome: SignupOutcome
    user: UserRecord | None = None
    activation_key: str | None = None
    errors: tuple[AccountError, ...] = ()


@dataclass(frozen=True)
class ResendResult:
    """Confirmation resend result model."""

    outcome: ResendOutcome
    user: UserRecord | None = None


class SignupService:
    """Create unactivated accounts and deliver their activation links."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        token_issuer: TokenIssuer,
        password_hasher: PasswordHasherPort,
        email_sender: AccountEmailPort,
        policy: AccountPolicy,
        captcha_verifier: CaptchaVerifierPort | None = None,
    ) -> None:
        if policy.captcha_required and captcha_verifier is None:
            raise ValueError("captcha_verifier is required when captcha is enabled")
        self._users = users
        self._token_issuer = token_issuer
        self._password_hasher = password_hasher
        self._email_sender = email_sender
        self._policy = policy
        self._captcha_verifier = captcha_verifier

    async def signup(
        self,
        *,
        session: SessionContext,
        form: SignupInput,
        captcha_token: str | None = None,
        remote_ip: str | None = None,
    ) -> SignupResult:
        """Validate input, persist an unactivated user, then send the activation email."""

        if session.is_authenticated or not self._policy.signup_available:
            return SignupResult(outcome=SignupOutcome.REDIRECT)

        errors = await self._validate(form)
        if errors:
            return SignupResult(outcome=SignupOutcome.INVALID, errors=tuple(errors))

        captcha_error = await self._check_captcha(
            captcha_token=captcha_token,
            remote_ip=remote_ip,
        )
        if captcha_error is not None:
            return SignupResult(outcome=SignupOutcome.INVALID, errors=(captcha_error,))

        activation_key = self._token_issuer.new_activation_key()
        payload = UserCreateInput(
            user_id=uuid4(),
            email=normalize_user_email(email=form.email),
            username=normalize_username(username=form.username),
            first_name=_optional(form.first_name),
            last_name=_optional(form.last_name),
            password_hash=self._password_hasher.hash_password(form.password),
            activation_key=activation_key,
        )
        try:
            user = await self._users.create_user(payload)
        except DuplicateUserError:
            logger.info("signup_duplicate email=%s", payload.email)
            return SignupResult(
                outcome=SignupOutcome.INVALID,
                errors=(
                    validation_error("email", "A user with this email or username already exists."),
                ),
            )
        logger.info("signup_created user_id=%s", user.user_id)

        if not await self._send_confirmation(user):
            return SignupResult(
                outcome=SignupOutcome.EMAIL_FAILED,
                user=user,
                activation_key=activation_key,
                errors=(_email_failed_error(),),
            )
        return SignupResult(
            outcome=SignupOutcome.CREATED,
            user=user,
            activation_key=activation_key,
        )

    async def resend_confirmation(self, *, email: str) -> ResendResult:
        """Resend the activation email with the key already stored for the user."""

        if self._policy.use_external_authentication:
            return ResendResult(outcome=ResendOutcome.REDIRECT)

        try:
            normalized_email = normalize_user_email(email=email)
        except ValueError:
            return ResendResult(outcome=ResendOutcome.RESTART_SIGNUP)

        user = await self._users.get_by_email(email=normalized_email)
        if user is None or user.is_activated or not user.activation_key:
            return ResendResult(outcome=ResendOutcome.RESTART_SIGNUP)

        if not await self._send_confirmation(user):
            return ResendResult(outcome=ResendOutcome.EMAIL_FAILED, user=user)
        logger.info("signup_confirmation_resent user_id=%s", user.user_id)
        return ResendResult(outcome=ResendOutcome.SENT, user=user)

    async def _validate(self, form: SignupInput) -> list[AccountError]:
        errors: list[AccountError] = []

        email: str | None = None
        try:
            email = normalize_user_email(email=form.email)
        except ValueError:
            errors.append(validation_error("email", "The email address is required."))
        if email is not None and not is_well_formed_email(email):
            errors.append(validation_error("email", "The email address is not valid."))
            email = None

        username: str | None = None
        try:
            username = normalize_username(username=form.username)
        except ValueError:
            errors.append(validation_error("username", "The username is required."))

        password_message = validate_new_password(
            password=form.password,
            password_confirmation=form.password_confirmation,
            minimum_length=self._policy.minimum_password_length,
        )
        if password_message is not None:
            errors.append(validation_error("password", password_message))

        if email is not None and await self._users.get_by_email(email=email) is not None:
            errors.append(validation_error("email", "A user with this email already exists."))
        if username is not None:
            existing = await self._users.get_by_username(username=username)
            if existing is not None:
                errors.append(
                    validation_error("username", "A user with this username already exists.")
                )
        return errors

    async def _check_captcha(
        self,
        *,
        captcha_token: str | None,
        remote_ip: str | None,
    ) -> AccountError | None:
        if not self._policy.captcha_required:
            return None
        assert self._captcha_verifier is not None

        if not captcha_token:
            return validation_error("captcha", "The CAPTCHA was not completed.")
        try:
            is_valid = await self._captcha_verifier.verify(
                response_token=captcha_token,
                remote_ip=remote_ip,
            )
        except CaptchaUnavailableError:
            logger.exception("signup_captcha_unavailable")
            return AccountError(
                kind=ErrorKind.SECURITY,
                field="captcha",
                message="The CAPTCHA could not be verified, please try again.",
            )
        if not is_valid:
            return validation_error("captcha", "The CAPTCHA response was incorrect.")
        return None

    async def _send_confirmation(self, user: UserRecord) -> bool:
        try:
            await self._email_sender.send_signup_confirmation(user=user)
        except EmailDeliveryError:
            logger.exception("signup_email_failed user_id=%s", user.user_id)
            return False
        return True


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _email_failed_error() -> AccountError:
    return AccountError(
        kind=ErrorKind.SECURITY,
        field=GENERAL_FIELD,
        message="Your account was created but the confirmation email could not be sent.",
    )
