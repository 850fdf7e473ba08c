"""Pydantic models for account HTTP request and response payloads."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from wiki_identity.domain.auth.errors import AccountError


class StrictModel(BaseModel):
    """Base model with strict unknown-field rejection."""

    model_config = ConfigDict(extra="forbid")


class ErrorItem(BaseModel):
    """One field-scoped error returned to the client."""

    kind: str
    field: str
    message: str

    @classmethod
    def from_error(cls, error: AccountError) -> ErrorItem:
        return cls(kind=error.kind.value, field=error.field, message=error.message)


class SignupRequest(StrictModel):
    """Signup form payload."""

    email: str
    username: str
    password: str
    password_confirmation: str
    first_name: str | None = None
    last_name: str | None = None
    captcha_token: str | None = None


class SignupResponse(BaseModel):
    """Signup confirmation payload; the activation key is only ever emailed."""

    user_id: UUID
    email: str
    email_sent: bool


class EmailRequest(StrictModel):
    """Payload carrying one email address."""

    email: str


class ResendConfirmationResponse(BaseModel):
    """Confirmation resend payload."""

    email: str
    email_sent: bool


class ActivationResponse(BaseModel):
    """Activation payload."""

    user_id: UUID
    activated: bool


class LoginRequest(StrictModel):
    """Login form payload."""

    email: str
    password: str
    from_url: str | None = None


class LoginResponse(BaseModel):
    """Successful login payload."""

    user_id: UUID
    redirect_to: str


class ProfileResponse(BaseModel):
    """Profile data shown to its owner."""

    user_id: UUID
    email: str
    username: str
    first_name: str | None
    last_name: str | None
    is_activated: bool


class ProfileUpdateRequest(StrictModel):
    """Profile form payload; `user_id` must be the caller's own id."""

    user_id: UUID | None = None
    email: str
    username: str
    first_name: str | None = None
    last_name: str | None = None
    password: str | None = None
    password_confirmation: str | None = None


class ProfileUpdateResponse(BaseModel):
    """Independent results of the profile and password sub-updates."""

    profile_updated: bool
    password_updated: bool | None
    errors: list[ErrorItem]


class ResetRequestResponse(BaseModel):
    """Reset request payload."""

    email: str
    sent: bool


class ResetKeyResponse(BaseModel):
    """Owner details for a valid outstanding reset key."""

    email: str
    username: str


class CompleteResetRequest(StrictModel):
    """New password pair for a reset key."""

    password: str
    password_confirmation: str


class CompleteResetResponse(BaseModel):
    """Reset completion payload."""

    changed: bool
