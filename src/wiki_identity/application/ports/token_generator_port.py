"""Port for unguessable single-use token generation."""

from __future__ import annotations

from typing import Protocol


class TokenGeneratorPort(Protocol):
    """Opaque token generation contract."""

    def generate_token(self) -> str:
        """Return a fresh URL-safe token with enough entropy to be unguessable."""
