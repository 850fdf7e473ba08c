"""Opaque token generator backed by the `secrets` CSPRNG."""

from __future__ import annotations

import secrets

from wiki_identity.application.ports.token_generator_port import TokenGeneratorPort

DEFAULT_TOKEN_BYTES = 32


class OpaqueTokenService(TokenGeneratorPort):
    """Generate URL-safe single-use tokens for activation and reset links."""

    def __init__(self, *, token_bytes: int = DEFAULT_TOKEN_BYTES) -> None:
        if token_bytes < 16:
            raise ValueError("token_bytes must be at least 16")
        self._token_bytes = token_bytes

    def generate_token(self) -> str:
        return secrets.token_urlsafe(self._token_bytes)
