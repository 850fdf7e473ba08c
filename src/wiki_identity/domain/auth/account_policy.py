"""Deployment-level switches that gate account lifecycle operations."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AccountPolicy:
    """Immutable projection of deployment flags consumed by account services."""

    allow_user_signup: bool = True
    use_external_authentication: bool = False
    is_demo_site: bool = False
    captcha_required: bool = False
    minimum_password_length: int = 6
    conceal_unknown_reset_email: bool = False

    @property
    def signup_available(self) -> bool:
        """Return whether self-service signup may run at all."""

        return self.allow_user_signup and not self.use_external_authentication
