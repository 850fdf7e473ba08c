from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

from wiki_identity.application.ports.account_email_port import EmailDeliveryError
from wiki_identity.application.ports.captcha_verifier_port import CaptchaUnavailableError
from wiki_identity.application.ports.user_repository_port import (
    DuplicateUserError,
    UserCreateInput,
    UserProfileUpdate,
    UserRecord,
)


def make_user(
    *,
    user_id: UUID | None = None,
    email: str = "a@x.com",
    username: str = "alice",
    password: str = "secret1",
    is_activated: bool = True,
    activation_key: str | None = None,
    password_reset_key: str | None = None,
) -> UserRecord:
    now = datetime.now(tz=UTC)
    return UserRecord(
        user_id=user_id or uuid4(),
        email=email,
        username=username,
        first_name=None,
        last_name=None,
        password_hash=f"hashed::{password}",
        is_activated=is_activated,
        activation_key=activation_key,
        password_reset_key=password_reset_key,
        created_at=now,
        updated_at=now,
    )


class InMemoryUserRepository:
    def __init__(self, *users: UserRecord) -> None:
        self.users: dict[UUID, UserRecord] = {user.user_id: user for user in users}
        self.create_calls = 0
        self.fail_profile_updates = False
        self.fail_password_updates = False

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        return self.users.get(user_id)

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        return self._find(lambda user: user.email == email)

    async def get_by_username(self, *, username: str) -> UserRecord | None:
        return self._find(lambda user: user.username == username)

    async def get_by_password_reset_key(self, *, password_reset_key: str) -> UserRecord | None:
        return self._find(lambda user: user.password_reset_key == password_reset_key)

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        self.create_calls += 1
        if any(
            user.email == payload.email or user.username == payload.username
            for user in self.users.values()
        ):
            raise DuplicateUserError(email=payload.email, username=payload.username)
        now = datetime.now(tz=UTC)
        user = UserRecord(
            user_id=payload.user_id,
            email=payload.email,
            username=payload.username,
            first_name=payload.first_name,
            last_name=payload.last_name,
            password_hash=payload.password_hash,
            is_activated=False,
            activation_key=payload.activation_key,
            password_reset_key=None,
            created_at=now,
            updated_at=now,
        )
        self.users[user.user_id] = user
        return user

    async def activate_by_key(self, *, activation_key: str) -> UserRecord | None:
        candidate = self._find(
            lambda user: user.activation_key == activation_key and not user.is_activated
        )
        if candidate is None:
            return None
        await asyncio.sleep(0)
        current = self.users[candidate.user_id]
        if current.activation_key != activation_key:
            return None
        updated = replace(current, is_activated=True, activation_key=None)
        self.users[updated.user_id] = updated
        return updated

    async def set_password_reset_key(
        self,
        *,
        user_id: UUID,
        password_reset_key: str,
    ) -> UserRecord | None:
        current = self.users.get(user_id)
        if current is None:
            return None
        updated = replace(current, password_reset_key=password_reset_key)
        self.users[user_id] = updated
        return updated

    async def redeem_password_reset_key(
        self,
        *,
        password_reset_key: str,
        password_hash: str,
    ) -> UserRecord | None:
        candidate = self._find(lambda user: user.password_reset_key == password_reset_key)
        if candidate is None:
            return None
        await asyncio.sleep(0)
        current = self.users[candidate.user_id]
        if current.password_reset_key != password_reset_key:
            return None
        updated = replace(current, password_hash=password_hash, password_reset_key=None)
        self.users[updated.user_id] = updated
        return updated

    async def update_profile(
        self,
        *,
        user_id: UUID,
        payload: UserProfileUpdate,
    ) -> UserRecord | None:
        if self.fail_profile_updates:
            raise DuplicateUserError(email=payload.email, username=payload.username)
        current = self.users.get(user_id)
        if current is None:
            return None
        updated = replace(
            current,
            email=payload.email,
            username=payload.username,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        self.users[user_id] = updated
        return updated

    async def update_password_hash(
        self,
        *,
        user_id: UUID,
        password_hash: str,
    ) -> UserRecord | None:
        current = self.users.get(user_id)
        if current is None or self.fail_password_updates:
            return None
        updated = replace(current, password_hash=password_hash)
        self.users[user_id] = updated
        return updated

    def _find(self, predicate: Callable[[UserRecord], bool]) -> UserRecord | None:
        for user in self.users.values():
            if predicate(user):
                return user
        return None


class FakePasswordHasher:
    def __init__(self) -> None:
        self.hash_calls: list[str] = []
        self.verify_calls: list[tuple[str, str]] = []

    def hash_password(self, password: str) -> str:
        self.hash_calls.append(password)
        return f"hashed::{password}"

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        self.verify_calls.append((password, password_hash))
        return password_hash == f"hashed::{password}"


class SequenceTokenGenerator:
    def __init__(self) -> None:
        self.issued: list[str] = []

    def generate_token(self) -> str:
        token = f"token-{len(self.issued) + 1}"
        self.issued.append(token)
        return token


class RecordingEmailSender:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.signup_emails: list[UserRecord] = []
        self.reset_emails: list[UserRecord] = []

    async def send_signup_confirmation(self, *, user: UserRecord) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.signup_emails.append(user)

    async def send_password_reset(self, *, user: UserRecord) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.reset_emails.append(user)


class FakeCaptchaVerifier:
    def __init__(self, *, is_valid: bool = True, unavailable: bool = False) -> None:
        self.is_valid = is_valid
        self.unavailable = unavailable
        self.calls: list[tuple[str, str | None]] = []

    async def verify(self, *, response_token: str, remote_ip: str | None) -> bool:
        self.calls.append((response_token, remote_ip))
        if self.unavailable:
            raise CaptchaUnavailableError("provider unreachable")
        return self.is_valid
