"""Port for the stateless credential verifier."""

from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    """Salted password hashing and constant-time verification contract."""

    def hash_password(self, password: str) -> str:
        """Hash a plaintext password for storage; the result never contains it."""

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        """Return whether the password matches, without early exit on mismatch."""
