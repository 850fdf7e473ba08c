"""Port for the user directory that owns persisted identity state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class UserRecord:
    """User persistence model."""

    user_id: UUID
    email: str
    username: str
    first_name: str | None
    last_name: str | None
    password_hash: str
    is_activated: bool
    activation_key: str | None
    password_reset_key: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class UserCreateInput:
    """Input payload for inserting one unactivated user."""

    user_id: UUID
    email: str
    username: str
    first_name: str | None
    last_name: str | None
    password_hash: str
    activation_key: str


@dataclass(frozen=True)
class UserProfileUpdate:
    """Profile fields replaced by a profile update."""

    email: str
    username: str
    first_name: str | None
    last_name: str | None


class DuplicateUserError(ValueError):
    """Raised when an email or username is already registered."""

    def __init__(self, *, email: str, username: str) -> None:
        super().__init__("email or username already registered")
        self.email = email
        self.username = username


class UserRepositoryPort(Protocol):
    """User directory contract.

    Key redemption methods are compare-and-set operations: concurrent calls
    with the same key yield at most one non-None result.
    """

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id, activated or not."""

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email, activated or not."""

    async def get_by_username(self, *, username: str) -> UserRecord | None:
        """Return user by username, activated or not."""

    async def get_by_password_reset_key(self, *, password_reset_key: str) -> UserRecord | None:
        """Return the user holding an outstanding reset key."""

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Persist one unactivated user or raise DuplicateUserError."""

    async def activate_by_key(self, *, activation_key: str) -> UserRecord | None:
        """Activate the user holding the key and clear it in one step."""

    async def set_password_reset_key(
        self,
        *,
        user_id: UUID,
        password_reset_key: str,
    ) -> UserRecord | None:
        """Store a reset key for one user, replacing any outstanding key."""

    async def redeem_password_reset_key(
        self,
        *,
        password_reset_key: str,
        password_hash: str,
    ) -> UserRecord | None:
        """Set a new password hash and clear the reset key in one step."""

    async def update_profile(
        self,
        *,
        user_id: UUID,
        payload: UserProfileUpdate,
    ) -> UserRecord | None:
        """Replace profile fields for one user or raise DuplicateUserError."""

    async def update_password_hash(
        self,
        *,
        user_id: UUID,
        password_hash: str,
    ) -> UserRecord | None:
        """Replace the password hash for one user."""
