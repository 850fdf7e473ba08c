"""reCAPTCHA siteverify adapter for signup CAPTCHA checks."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from wiki_identity.application.ports.captcha_verifier_port import (
    CaptchaUnavailableError,
    CaptchaVerifierPort,
)

DEFAULT_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptchaHttpResponse:
    """Normalized HTTP response data returned by transport implementations."""

    status_code: int
    body_bytes: bytes


class CaptchaHttpTransportPort(Protocol):
    """Transport protocol used by the reCAPTCHA adapter."""

    async def post_form(
        self,
        *,
        url: str,
        fields: dict[str, str],
        timeout_seconds: float,
    ) -> CaptchaHttpResponse:
        """POST url-encoded fields and return normalized response data."""


class UrllibCaptchaHttpTransport:
    """urllib-based async transport implementation for siteverify calls."""

    async def post_form(
        self,
        *,
        url: str,
        fields: dict[str, str],
        timeout_seconds: float,
    ) -> CaptchaHttpResponse:
        """Execute the POST in a worker thread and normalize HTTP errors."""

        return await asyncio.to_thread(
            self._post_sync,
            url=url,
            fields=fields,
            timeout_seconds=timeout_seconds,
        )

    def _post_sync(
        self,
        *,
        url: str,
        fields: dict[str, str],
        timeout_seconds: float,
    ) -> CaptchaHttpResponse:
        request = Request(
            url=url,
            data=urlencode(fields).encode("utf-8"),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            method="POST",
        )
        try:
            with urlopen(request, timeout=timeout_seconds) as response:
                return CaptchaHttpResponse(
                    status_code=int(response.getcode()),
                    body_bytes=response.read(),
                )
        except HTTPError as error:
            return CaptchaHttpResponse(status_code=int(error.code), body_bytes=error.read())
        except URLError as error:
            raise CaptchaUnavailableError("captcha transport connection failure") from error


class RecaptchaVerifier(CaptchaVerifierPort):
    """Verify reCAPTCHA response tokens against the siteverify endpoint."""

    def __init__(
        self,
        *,
        secret_key: str,
        verify_url: str = DEFAULT_VERIFY_URL,
        transport: CaptchaHttpTransportPort | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._secret_key = secret_key
        self._verify_url = verify_url
        self._transport = transport or UrllibCaptchaHttpTransport()
        self._timeout_seconds = timeout_seconds

    async def verify(self, *, response_token: str, remote_ip: str | None) -> bool:
        fields = {"secret": self._secret_key, "response": response_token}
        if remote_ip:
            fields["remoteip"] = remote_ip

        response = await self._transport.post_form(
            url=self._verify_url,
            fields=fields,
            timeout_seconds=self._timeout_seconds,
        )
        if response.status_code != 200:
            raise CaptchaUnavailableError(f"captcha verify returned status {response.status_code}")

        try:
            payload = json.loads(response.body_bytes.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as error:
            raise CaptchaUnavailableError("captcha verify returned invalid json") from error
        if not isinstance(payload, dict):
            raise CaptchaUnavailableError("captcha verify returned non-object json")

        success = payload.get("success") is True
        if not success:
            logger.info("captcha_rejected error_codes=%s", payload.get("error-codes"))
        return success
