"""SMTP adapter for account lifecycle emails."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from urllib.parse import quote

from wiki_identity.application.ports.account_email_port import (
    AccountEmailPort,
    EmailDeliveryError,
)
from wiki_identity.application.ports.user_repository_port import UserRecord

logger = logging.getLogger(__name__)

_SIGNUP_SUBJECT = "Please confirm your account"
_RESET_SUBJECT = "Password reset request"


class SmtpAccountEmailSender(AccountEmailPort):
    """Render plain-text account emails and hand them to an SMTP relay."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender_address: str,
        public_base_url: str,
        username: str | None = None,
        password: str | None = None,
        use_starttls: bool = False,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender_address = sender_address
        self._public_base_url = public_base_url.rstrip("/")
        self._username = username
        self._password = password
        self._use_starttls = use_starttls
        self._timeout_seconds = timeout_seconds

    async def send_signup_confirmation(self, *, user: UserRecord) -> None:
        if not user.activation_key:
            raise EmailDeliveryError("user has no outstanding activation key")
        link = self._link("/account/activate", user.activation_key)
        body = (
            f"Hello {user.username},\n\n"
            "Thanks for signing up. Please confirm your email address by visiting:\n\n"
            f"{link}\n"
        )
        await self._send(recipient=user.email, subject=_SIGNUP_SUBJECT, body=body)

    async def send_password_reset(self, *, user: UserRecord) -> None:
        if not user.password_reset_key:
            raise EmailDeliveryError("user has no outstanding password reset key")
        link = self._link("/account/reset-password", user.password_reset_key)
        body = (
            f"Hello {user.username},\n\n"
            "A password reset was requested for your account. To choose a new password visit:\n\n"
            f"{link}\n\n"
            "If you did not request this, you can ignore this email.\n"
        )
        await self._send(recipient=user.email, subject=_RESET_SUBJECT, body=body)

    def _link(self, path: str, key: str) -> str:
        return f"{self._public_base_url}{path}/{quote(key, safe='')}"

    async def _send(self, *, recipient: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self._sender_address
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        await asyncio.to_thread(self._send_sync, message)
        logger.info("account_email_sent subject=%s", subject)

    def _send_sync(self, message: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout_seconds) as smtp:
                if self._use_starttls:
                    smtp.starttls()
                if self._username and self._password:
                    smtp.login(self._username, self._password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as error:
            raise EmailDeliveryError("smtp delivery failed") from error
