from __future__ import annotations

import json

import pytest

from wiki_identity.application.ports.captcha_verifier_port import CaptchaUnavailableError
from wiki_identity.infrastructure.captcha.recaptcha_client import (
    DEFAULT_VERIFY_URL,
    CaptchaHttpResponse,
    RecaptchaVerifier,
)


class FakeTransport:
    def __init__(self, response: CaptchaHttpResponse) -> None:
        self._response = response
        self.calls: list[tuple[str, dict[str, str], float]] = []

    async def post_form(
        self,
        *,
        url: str,
        fields: dict[str, str],
        timeout_seconds: float,
    ) -> CaptchaHttpResponse:
        self.calls.append((url, fields, timeout_seconds))
        return self._response


def _json_response(payload: object, *, status_code: int = 200) -> CaptchaHttpResponse:
    return CaptchaHttpResponse(
        status_code=status_code,
        body_bytes=json.dumps(payload).encode("utf-8"),
    )


@pytest.mark.asyncio
async def test_verify_posts_secret_token_and_remote_ip() -> None:
    transport = FakeTransport(_json_response({"success": True}))
    verifier = RecaptchaVerifier(secret_key="s3cret", transport=transport)

    assert await verifier.verify(response_token="tok", remote_ip="10.0.0.1") is True
    assert transport.calls == [
        (DEFAULT_VERIFY_URL, {"secret": "s3cret", "response": "tok", "remoteip": "10.0.0.1"}, 10.0)
    ]


@pytest.mark.asyncio
async def test_verify_omits_missing_remote_ip() -> None:
    transport = FakeTransport(_json_response({"success": True}))
    verifier = RecaptchaVerifier(secret_key="s3cret", transport=transport)

    await verifier.verify(response_token="tok", remote_ip=None)

    assert "remoteip" not in transport.calls[0][1]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{"success": False, "error-codes": ["invalid-input-response"]}, {"success": "true"}, {}],
)
async def test_unsuccessful_payload_is_rejected(payload: dict[str, object]) -> None:
    verifier = RecaptchaVerifier(secret_key="s", transport=FakeTransport(_json_response(payload)))

    assert await verifier.verify(response_token="tok", remote_ip=None) is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        _json_response({"success": True}, status_code=503),
        CaptchaHttpResponse(status_code=200, body_bytes=b"<html>"),
        _json_response(["success"]),
    ],
)
async def test_provider_failures_raise_unavailable(response: CaptchaHttpResponse) -> None:
    verifier = RecaptchaVerifier(secret_key="s", transport=FakeTransport(response))

    with pytest.raises(CaptchaUnavailableError):
        await verifier.verify(response_token="tok", remote_ip=None)
