"""SQLAlchemy adapter for the user directory."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wiki_identity.application.ports.user_repository_port import (
    DuplicateUserError,
    UserCreateInput,
    UserProfileUpdate,
    UserRecord,
    UserRepositoryPort,
)
from wiki_identity.infrastructure.db.metadata import users

_NOW = sa.text("CURRENT_TIMESTAMP")


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User directory backed by SQLAlchemy async sessions.

    Key redemptions read the candidate row and then update it with the key
    value repeated in the WHERE clause; only the writer that still sees the
    key changes a row, so exactly one concurrent redemption wins.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id, activated or not."""

        return await self._fetch_one(users.c.id == user_id)

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email, activated or not."""

        return await self._fetch_one(users.c.email == email)

    async def get_by_username(self, *, username: str) -> UserRecord | None:
        """Return user by username, activated or not."""

        return await self._fetch_one(users.c.username == username)

    async def get_by_password_reset_key(self, *, password_reset_key: str) -> UserRecord | None:
        """Return the user holding an outstanding reset key."""

        return await self._fetch_one(users.c.password_reset_key == password_reset_key)

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one unactivated user and return the persisted row."""

        statement = sa.insert(users).values(
            id=payload.user_id,
            email=payload.email,
            username=payload.username,
            first_name=payload.first_name,
            last_name=payload.last_name,
            password_hash=payload.password_hash,
            is_activated=False,
            activation_key=payload.activation_key,
        )

        async with self._session_factory() as session:
            try:
                await session.execute(statement)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateUserError(email=payload.email, username=payload.username) from exc
            row = await _select_row(session, users.c.id == payload.user_id)

        assert row is not None
        return _to_user_record(row)

    async def activate_by_key(self, *, activation_key: str) -> UserRecord | None:
        """Activate the key owner and clear the key in one conditional update."""

        async with self._session_factory() as session:
            user_id = await _select_id(
                session,
                users.c.activation_key == activation_key,
                users.c.is_activated.is_(False),
            )
            if user_id is None:
                return None

            statement = (
                sa.update(users)
                .where(
                    users.c.id == user_id,
                    users.c.activation_key == activation_key,
                    users.c.is_activated.is_(False),
                )
                .values(is_activated=True, activation_key=None, updated_at=_NOW)
            )
            return await _apply_conditional_update(session, statement, user_id=user_id)

    async def set_password_reset_key(
        self,
        *,
        user_id: UUID,
        password_reset_key: str,
    ) -> UserRecord | None:
        """Store a reset key for one user, replacing any outstanding key."""

        statement = (
            sa.update(users)
            .where(users.c.id == user_id)
            .values(password_reset_key=password_reset_key, updated_at=_NOW)
        )
        async with self._session_factory() as session:
            return await _apply_conditional_update(session, statement, user_id=user_id)

    async def redeem_password_reset_key(
        self,
        *,
        password_reset_key: str,
        password_hash: str,
    ) -> UserRecord | None:
        """Set a new password hash and clear the reset key in one conditional update."""

        async with self._session_factory() as session:
            user_id = await _select_id(session, users.c.password_reset_key == password_reset_key)
            if user_id is None:
                return None

            statement = (
                sa.update(users)
                .where(
                    users.c.id == user_id,
                    users.c.password_reset_key == password_reset_key,
                )
                .values(password_hash=password_hash, password_reset_key=None, updated_at=_NOW)
            )
            return await _apply_conditional_update(session, statement, user_id=user_id)

    async def update_profile(
        self,
        *,
        user_id: UUID,
        payload: UserProfileUpdate,
    ) -> UserRecord | None:
        """Replace profile fields for one user."""

        statement = (
            sa.update(users)
            .where(users.c.id == user_id)
            .values(
                email=payload.email,
                username=payload.username,
                first_name=payload.first_name,
                last_name=payload.last_name,
                updated_at=_NOW,
            )
        )
        async with self._session_factory() as session:
            try:
                return await _apply_conditional_update(session, statement, user_id=user_id)
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateUserError(email=payload.email, username=payload.username) from exc

    async def update_password_hash(
        self,
        *,
        user_id: UUID,
        password_hash: str,
    ) -> UserRecord | None:
        """Replace the password hash for one user."""

        statement = (
            sa.update(users)
            .where(users.c.id == user_id)
            .values(password_hash=password_hash, updated_at=_NOW)
        )
        async with self._session_factory() as session:
            return await _apply_conditional_update(session, statement, user_id=user_id)

    async def _fetch_one(self, *criteria: sa.ColumnElement[bool]) -> UserRecord | None:
        async with self._session_factory() as session:
            row = await _select_row(session, *criteria)
        if row is None:
            return None
        return _to_user_record(row)


async def _select_row(
    session: AsyncSession,
    *criteria: sa.ColumnElement[bool],
) -> sa.RowMapping | None:
    statement = sa.select(*users.c).where(*criteria).limit(1)
    result = await session.execute(statement)
    return result.mappings().first()


async def _select_id(session: AsyncSession, *criteria: sa.ColumnElement[bool]) -> UUID | None:
    statement = sa.select(users.c.id).where(*criteria).limit(1)
    result = await session.execute(statement)
    raw_user_id = result.scalar_one_or_none()
    if raw_user_id is None:
        return None
    return _coerce_uuid(raw_user_id)


async def _apply_conditional_update(
    session: AsyncSession,
    statement: sa.Update,
    *,
    user_id: UUID,
) -> UserRecord | None:
    """Run one update and return the fresh row, or None when no row matched."""

    result = cast(CursorResult[Any], await session.execute(statement))
    if int(result.rowcount or 0) != 1:
        await session.rollback()
        return None
    row = await _select_row(session, users.c.id == user_id)
    await session.commit()
    if row is None:  # pragma: no cover - row was just updated in this transaction.
        return None
    return _to_user_record(row)


def _coerce_uuid(raw_value: object) -> UUID:
    return raw_value if isinstance(raw_value, UUID) else UUID(str(raw_value))


def _to_user_record(row: sa.RowMapping) -> UserRecord:
    return UserRecord(
        user_id=_coerce_uuid(row["id"]),
        email=cast(str, row["email"]),
        username=cast(str, row["username"]),
        first_name=cast(str | None, row["first_name"]),
        last_name=cast(str | None, row["last_name"]),
        password_hash=cast(str, row["password_hash"]),
        is_activated=bool(row["is_activated"]),
        activation_key=cast(str | None, row["activation_key"]),
        password_reset_key=cast(str | None, row["password_reset_key"]),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )
