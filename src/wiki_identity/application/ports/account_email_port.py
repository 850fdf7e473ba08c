"""Port for outbound account lifecycle emails."""

from __future__ import annotations

from typing import Protocol

from wiki_identity.application.ports.user_repository_port import UserRecord


class EmailDeliveryError(RuntimeError):
    """Raised when an account email could not be handed to the mail transport."""


class AccountEmailPort(Protocol):
    """Account email delivery contract."""

    async def send_signup_confirmation(self, *, user: UserRecord) -> None:
        """Send the activation link built from `user.activation_key`."""

    async def send_password_reset(self, *, user: UserRecord) -> None:
        """Send the reset link built from `user.password_reset_key`."""
