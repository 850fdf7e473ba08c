"""Application service for reading and updating the caller's own profile."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from wiki_identity.application.ports.password_hasher_port import PasswordHasherPort
from wiki_identity.application.ports.user_repository_port import (
    DuplicateUserError,
    UserProfileUpdate,
    UserRecord,
    UserRepositoryPort,
)
from wiki_identity.domain.auth.account_policy import AccountPolicy
from wiki_identity.domain.auth.credentials import (
    is_well_formed_email,
    normalize_user_email,
    normalize_username,
    validate_new_password,
)
from wiki_identity.domain.auth.errors import (
    DEMO_LOCK_ERROR,
    FORBIDDEN_PROFILE_ERROR,
    GENERAL_FIELD,
    AccountError,
    ErrorKind,
    validation_error,
)

logger = logging.getLogger(__name__)

PROFILE_ERROR = AccountError(
    kind=ErrorKind.VALIDATION,
    field=GENERAL_FIELD,
    message="An error occurred updating your profile. The email or username may already be taken.",
)
PASSWORD_CHANGE_ERROR = AccountError(
    kind=ErrorKind.SECURITY,
    field="password",
    message="An error occurred changing your password.",
)


class ProfileOutcome(StrEnum):
    """Supported profile read outcomes."""

    FOUND = "found"
    NOT_LOGGED_IN = "not_logged_in"
    NOT_FOUND = "not_found"
    EXTERNALLY_MANAGED = "externally_managed"


class ProfileUpdateOutcome(StrEnum):
    """Supported profile update outcomes.

    COMPLETED means the update ran; `profile_updated` and `password_updated`
    report each sub-operation separately.
    """

    COMPLETED = "completed"
    NOT_LOGGED_IN = "not_logged_in"
    TAMPERED = "tampered"
    FORBIDDEN = "forbidden"
    LOCKED = "locked"
    INVALID = "invalid"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class ProfileUpdateInput:
    """Profile form fields; `password` is only changed when non-empty."""

    user_id: UUID | None
    email: str
    username: str
    first_name: str | None = None
    last_name: str | None = None
    password: str | None = None
    password_confirmation: str | None = None


@dataclass(frozen=True)
class ProfileResult:
    """Profile read result model."""

    outcome: ProfileOutcome
    user: UserRecord | None = None


@dataclass(frozen=True)
class ProfileUpdateResult:
    """Profile update result model; `password_updated` is None when no change was asked."""

    outcome: ProfileUpdateOutcome
    profile_updated: bool = False
    password_updated: bool | None = None
    user: UserRecord | None = None
    errors: tuple[AccountError, ...] = ()


class ProfileService:
    """Expose profile reads and ownership-checked profile updates."""

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

    async def get_profile(self, *, requesting_principal_id: UUID | None) -> ProfileResult:
        """Return the authenticated principal's own profile for display."""

        if requesting_principal_id is None:
            return ProfileResult(outcome=ProfileOutcome.NOT_LOGGED_IN)
        if self._policy.use_external_authentication:
            return ProfileResult(outcome=ProfileOutcome.EXTERNALLY_MANAGED)

        user = await self._users.get_by_id(user_id=requesting_principal_id)
        if user is None:
            return ProfileResult(outcome=ProfileOutcome.NOT_FOUND)
        return ProfileResult(outcome=ProfileOutcome.FOUND, user=user)

    async def update_profile(
        self,
        *,
        requesting_principal_id: UUID | None,
        update: ProfileUpdateInput,
    ) -> ProfileUpdateResult:
        """Apply a profile update after the ownership checks pass.

        Checks run in order and each one stops the update before any write:
        anonymous caller, missing target id, cross-account target, demo lock,
        field validation.
        """

        if self._policy.use_external_authentication:
            return ProfileUpdateResult(outcome=ProfileUpdateOutcome.REDIRECT)
        if requesting_principal_id is None:
            return ProfileUpdateResult(outcome=ProfileUpdateOutcome.NOT_LOGGED_IN)
        if update.user_id is None or update.user_id.int == 0:
            logger.info("profile_update_missing_id principal_id=%s", requesting_principal_id)
            return ProfileUpdateResult(outcome=ProfileUpdateOutcome.TAMPERED)
        if update.user_id != requesting_principal_id:
            logger.warning(
                "profile_update_forbidden principal_id=%s target_user_id=%s",
                requesting_principal_id,
                update.user_id,
            )
            return ProfileUpdateResult(
                outcome=ProfileUpdateOutcome.FORBIDDEN,
                errors=(FORBIDDEN_PROFILE_ERROR,),
            )
        if self._policy.is_demo_site:
            return ProfileUpdateResult(
                outcome=ProfileUpdateOutcome.LOCKED,
                errors=(DEMO_LOCK_ERROR,),
            )

        profile_update, errors = self._validate(update)
        if profile_update is None:
            return ProfileUpdateResult(outcome=ProfileUpdateOutcome.INVALID, errors=tuple(errors))

        user_id = update.user_id
        result_errors: list[AccountError] = []
        user = await self._apply_profile(user_id=user_id, profile_update=profile_update)
        profile_updated = user is not None
        if not profile_updated:
            result_errors.append(PROFILE_ERROR)

        password_updated: bool | None = None
        if update.password:
            changed = await self._users.update_password_hash(
                user_id=user_id,
                password_hash=self._password_hasher.hash_password(update.password),
            )
            password_updated = changed is not None
            if changed is None:
                logger.warning("profile_password_change_failed user_id=%s", user_id)
                result_errors.append(PASSWORD_CHANGE_ERROR)
            else:
                logger.info("profile_password_changed user_id=%s", user_id)
                user = changed

        return ProfileUpdateResult(
            outcome=ProfileUpdateOutcome.COMPLETED,
            profile_updated=profile_updated,
            password_updated=password_updated,
            user=user,
            errors=tuple(result_errors),
        )

    async def _apply_profile(
        self,
        *,
        user_id: UUID,
        profile_update: UserProfileUpdate,
    ) -> UserRecord | None:
        try:
            user = await self._users.update_profile(user_id=user_id, payload=profile_update)
        except DuplicateUserError:
            logger.info("profile_update_duplicate user_id=%s", user_id)
            return None
        if user is not None:
            logger.info("profile_updated user_id=%s", user_id)
        return user

    def _validate(
        self,
        update: ProfileUpdateInput,
    ) -> tuple[UserProfileUpdate | None, list[AccountError]]:
        errors: list[AccountError] = []

        email = ""
        try:
            email = normalize_user_email(email=update.email)
        except ValueError:
            errors.append(validation_error("email", "The email address is required."))
        if email and not is_well_formed_email(email):
            errors.append(validation_error("email", "The email address is not valid."))

        username = ""
        try:
            username = normalize_username(username=update.username)
        except ValueError:
            errors.append(validation_error("username", "The username is required."))

        if update.password:
            message = validate_new_password(
                password=update.password,
                password_confirmation=update.password_confirmation or "",
                minimum_length=self._policy.minimum_password_length,
            )
            if message is not None:
                errors.append(validation_error("password", message))

        if errors:
            return None, errors
        return (
            UserProfileUpdate(
                email=email,
                username=username,
                first_name=(update.first_name or "").strip() or None,
                last_name=(update.last_name or "").strip() or None,
            ),
            errors,
        )
