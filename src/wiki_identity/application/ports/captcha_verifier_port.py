"""Port for CAPTCHA response verification."""

from __future__ import annotations

from typing import Protocol


class CaptchaUnavailableError(RuntimeError):
    """Raised when the CAPTCHA provider cannot be reached or answers garbage."""


class CaptchaVerifierPort(Protocol):
    """CAPTCHA verification contract."""

    async def verify(self, *, response_token: str, remote_ip: str | None) -> bool:
        """Return whether the client CAPTCHA response is valid."""
