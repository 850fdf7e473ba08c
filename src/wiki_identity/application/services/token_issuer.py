"""Issue and redeem single-use activation and password-reset keys."""

from __future__ import annotations

import logging
from uuid import UUID

from wiki_identity.application.ports.token_generator_port import TokenGeneratorPort
from wiki_identity.application.ports.user_repository_port import UserRecord, UserRepositoryPort

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Generate unguessable keys and consume them against the user directory.

    Redemption delegates to the directory's compare-and-set operations, so a
    key succeeds at most once even when redeemed concurrently.
    """

    def __init__(self, *, users: UserRepositoryPort, token_generator: TokenGeneratorPort) -> None:
        self._users = users
        self._token_generator = token_generator

    def new_activation_key(self) -> str:
        """Return a fresh activation key to be stored with a new user."""

        return self._token_generator.generate_token()

    async def redeem_activation_key(self, *, activation_key: str) -> UserRecord | None:
        """Activate the owner of the key, or return None for unknown/used keys."""

        if not activation_key:
            return None
        user = await self._users.activate_by_key(activation_key=activation_key)
        if user is None:
            logger.info("activation_key_rejected")
            return None
        logger.info("activation_key_redeemed user_id=%s", user.user_id)
        return user

    async def issue_password_reset_key(self, *, user_id: UUID) -> UserRecord | None:
        """Store a fresh reset key for the user, superseding any outstanding key."""

        password_reset_key = self._token_generator.generate_token()
        user = await self._users.set_password_reset_key(
            user_id=user_id,
            password_reset_key=password_reset_key,
        )
        if user is None:
            logger.warning("password_reset_key_not_stored user_id=%s", user_id)
            return None
        logger.info("password_reset_key_issued user_id=%s", user_id)
        return user

    async def find_password_reset_owner(self, *, password_reset_key: str) -> UserRecord | None:
        """Return the user holding an outstanding reset key."""

        if not password_reset_key:
            return None
        return await self._users.get_by_password_reset_key(password_reset_key=password_reset_key)

    async def redeem_password_reset_key(
        self,
        *,
        password_reset_key: str,
        password_hash: str,
    ) -> UserRecord | None:
        """Swap in a new password hash and consume the key, or None if already consumed."""

        if not password_reset_key:
            return None
        user = await self._users.redeem_password_reset_key(
            password_reset_key=password_reset_key,
            password_hash=password_hash,
        )
        if user is None:
            logger.info("password_reset_key_rejected")
            return None
        logger.info("password_reset_key_redeemed user_id=%s", user.user_id)
        return user
