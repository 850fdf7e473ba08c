"""Shared normalization helpers for user credential inputs."""

from __future__ import annotations

import re

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# bcrypt only hashes the first 72 bytes and rejects longer input.
MAXIMUM_PASSWORD_BYTES = 72


def normalize_user_email(*, email: str) -> str:
    """Normalize one user email and reject blank values."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    return normalized


def normalize_username(*, username: str) -> str:
    """Normalize one display username and reject blank values."""

    normalized = username.strip()
    if not normalized:
        raise ValueError("username cannot be blank")
    return normalized


def is_well_formed_email(email: str) -> bool:
    """Return whether a normalized email has a plausible mailbox shape."""

    return _EMAIL_PATTERN.match(email) is not None


def validate_new_password(
    *,
    password: str,
    password_confirmation: str,
    minimum_length: int,
) -> str | None:
    """Return a validation message for a new password pair, or None when acceptable."""

    if not password:
        return "password cannot be blank"
    if len(password) < minimum_length:
        return f"password must be at least {minimum_length} characters"
    if password_exceeds_maximum_length(password):
        return f"password must be at most {MAXIMUM_PASSWORD_BYTES} bytes"
    if password != password_confirmation:
        return "password and confirmation do not match"
    return None


def password_exceeds_maximum_length(password: str) -> bool:
    """Return whether the UTF-8 encoded password is longer than the hasher accepts."""

    return len(password.encode("utf-8")) > MAXIMUM_PASSWORD_BYTES
