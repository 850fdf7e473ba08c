from __future__ import annotations

import asyncio
from pathlib import Path
from uuid import uuid4

import pytest
import sqlalchemy as sa
from alembic.config import Config

from alembic import command
from wiki_identity.application.ports.user_repository_port import (
    DuplicateUserError,
    UserCreateInput,
    UserProfileUpdate,
)
from wiki_identity.infrastructure.db.session import create_session_factory
from wiki_identity.infrastructure.db.user_repository import SqlAlchemyUserRepository


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _create_input(
    *,
    email: str = "a@x.com",
    username: str = "alice",
    activation_key: str = "act-1",
) -> UserCreateInput:
    return UserCreateInput(
        user_id=uuid4(),
        email=email,
        username=username,
        first_name=None,
        last_name=None,
        password_hash="hash",
        activation_key=activation_key,
    )


def test_upgrade_head_creates_users_table_with_unique_constraints(tmp_path: Path) -> None:
    sync_url, _ = _upgrade_head(tmp_path, "schema.db")

    inspector = sa.inspect(sa.create_engine(sync_url))
    columns = {column["name"] for column in inspector.get_columns("users")}
    unique_columns = {
        tuple(constraint["column_names"])
        for constraint in inspector.get_unique_constraints("users")
    }

    assert columns == {
        "id",
        "email",
        "username",
        "first_name",
        "last_name",
        "password_hash",
        "is_activated",
        "activation_key",
        "password_reset_key",
        "created_at",
        "updated_at",
    }
    assert {("email",), ("username",), ("activation_key",), ("password_reset_key",)} <= (
        unique_columns
    )


@pytest.mark.asyncio
async def test_create_user_persists_unactivated_row(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "create.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    payload = _create_input()

    created = await repo.create_user(payload)

    assert created.user_id == payload.user_id
    assert created.is_activated is False
    assert created.activation_key == "act-1"
    assert created.password_reset_key is None
    assert await repo.get_by_email(email="a@x.com") == created
    assert await repo.get_by_username(username="alice") == created
    assert await repo.get_by_id(user_id=payload.user_id) == created


@pytest.mark.asyncio
async def test_create_user_rejects_duplicate_email_or_username(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "duplicate.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    await repo.create_user(_create_input())

    with pytest.raises(DuplicateUserError):
        await repo.create_user(_create_input(username="other", activation_key="act-2"))
    with pytest.raises(DuplicateUserError):
        await repo.create_user(_create_input(email="b@x.com", activation_key="act-3"))


@pytest.mark.asyncio
async def test_activate_by_key_succeeds_once(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "activate.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    created = await repo.create_user(_create_input())

    activated = await repo.activate_by_key(activation_key="act-1")
    replayed = await repo.activate_by_key(activation_key="act-1")

    assert activated is not None
    assert activated.user_id == created.user_id
    assert activated.is_activated is True
    assert activated.activation_key is None
    assert replayed is None


@pytest.mark.asyncio
async def test_concurrent_activations_have_single_winner(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "activate_race.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    created = await repo.create_user(_create_input(activation_key="K"))

    results = await asyncio.gather(*(repo.activate_by_key(activation_key="K") for _ in range(10)))

    winners = [result for result in results if result is not None]
    assert len(winners) == 1
    assert winners[0].user_id == created.user_id
    stored = await repo.get_by_id(user_id=created.user_id)
    assert stored is not None
    assert stored.is_activated is True
    assert stored.activation_key is None


@pytest.mark.asyncio
async def test_concurrent_reset_redemptions_have_single_winner(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "redeem.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    created = await repo.create_user(_create_input())
    await repo.set_password_reset_key(user_id=created.user_id, password_reset_key="R")

    results = await asyncio.gather(
        *(
            repo.redeem_password_reset_key(password_reset_key="R", password_hash=f"hash-{index}")
            for index in range(5)
        )
    )

    winners = [result for result in results if result is not None]
    assert len(winners) == 1
    stored = await repo.get_by_id(user_id=created.user_id)
    assert stored is not None
    assert stored.password_reset_key is None
    assert stored.password_hash == winners[0].password_hash


@pytest.mark.asyncio
async def test_new_reset_key_supersedes_outstanding_key(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "supersede.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    created = await repo.create_user(_create_input())
    await repo.set_password_reset_key(user_id=created.user_id, password_reset_key="R1")
    await repo.set_password_reset_key(user_id=created.user_id, password_reset_key="R2")

    stale = await repo.redeem_password_reset_key(password_reset_key="R1", password_hash="x")
    fresh = await repo.redeem_password_reset_key(password_reset_key="R2", password_hash="y")

    assert stale is None
    assert fresh is not None
    assert fresh.password_hash == "y"


@pytest.mark.asyncio
async def test_missing_user_updates_return_none(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "missing.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))

    assert await repo.set_password_reset_key(user_id=uuid4(), password_reset_key="R") is None
    assert await repo.update_password_hash(user_id=uuid4(), password_hash="x") is None


@pytest.mark.asyncio
async def test_update_profile_rejects_taken_email(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "profile.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    await repo.create_user(_create_input())
    second = await repo.create_user(
        _create_input(email="b@x.com", username="bob", activation_key="act-2")
    )

    with pytest.raises(DuplicateUserError):
        await repo.update_profile(
            user_id=second.user_id,
            payload=UserProfileUpdate(
                email="a@x.com",
                username="bob",
                first_name=None,
                last_name=None,
            ),
        )

    updated = await repo.update_profile(
        user_id=second.user_id,
        payload=UserProfileUpdate(
            email="bob@x.com",
            username="bobby",
            first_name="Bob",
            last_name=None,
        ),
    )
    assert updated is not None
    assert (updated.email, updated.username, updated.first_name) == ("bob@x.com", "bobby", "Bob")
