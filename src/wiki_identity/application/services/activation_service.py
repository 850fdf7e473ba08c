"""Application service for redeeming activation keys."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from wiki_identity.application.ports.user_repository_port import UserRecord
from wiki_identity.application.services.token_issuer import TokenIssuer
from wiki_identity.domain.auth.account_policy import AccountPolicy
from wiki_identity.domain.auth.errors import GENERAL_FIELD, AccountError, ErrorKind

ACTIVATION_ERROR = AccountError(
    kind=ErrorKind.NOT_FOUND,
    field=GENERAL_FIELD,
    message="There was a problem activating your account. The link may have already been used.",
)


class ActivationOutcome(StrEnum):
    """Supported activation outcomes."""

    ACTIVATED = "activated"
    INVALID_KEY = "invalid_key"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class ActivationResult:
    """Activation result model."""

    outcome: ActivationOutcome
    user: UserRecord | None = None
    error: AccountError | None = None


class ActivationService:
    """Activate accounts from the key sent in the signup email."""

    def __init__(self, *, token_issuer: TokenIssuer, policy: AccountPolicy) -> None:
        self._token_issuer = token_issuer
        self._policy = policy

    async def activate(self, *, activation_key: str | None) -> ActivationResult:
        """Redeem one activation key; reusing a consumed key always fails."""

        if self._policy.use_external_authentication or not activation_key:
            return ActivationResult(outcome=ActivationOutcome.REDIRECT)

        user = await self._token_issuer.redeem_activation_key(activation_key=activation_key)
        if user is None:
            return ActivationResult(outcome=ActivationOutcome.INVALID_KEY, error=ACTIVATION_ERROR)
        return ActivationResult(outcome=ActivationOutcome.ACTIVATED, user=user)
