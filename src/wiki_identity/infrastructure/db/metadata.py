"""SQLAlchemy metadata definitions for identity tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("email", sa.Text(), nullable=False),
    sa.Column("username", sa.Text(), nullable=False),
    sa.Column("first_name", sa.Text(), nullable=True),
    sa.Column("last_name", sa.Text(), nullable=True),
    sa.Column("password_hash", sa.Text(), nullable=False),
    sa.Column("is_activated", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("activation_key", sa.Text(), nullable=True),
    sa.Column("password_reset_key", sa.Text(), nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("email", name="uq_users_email"),
    sa.UniqueConstraint("username", name="uq_users_username"),
    sa.UniqueConstraint("activation_key", name="uq_users_activation_key"),
    sa.UniqueConstraint("password_reset_key", name="uq_users_password_reset_key"),
)
