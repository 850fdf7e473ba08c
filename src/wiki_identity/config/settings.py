"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, HttpUrl, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wiki_identity.domain.auth.account_policy import AccountPolicy
from wiki_identity.infrastructure.captcha.recaptcha_client import DEFAULT_VERIFY_URL

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]
PortInt = Annotated[int, Field(gt=0, le=65535)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    session_secret_key: NonEmptyStr = Field(validation_alias="SESSION_SECRET_KEY")
    public_base_url: HttpUrl = Field(validation_alias="PUBLIC_BASE_URL")
    allow_user_signup: bool = Field(default=True, validation_alias="ALLOW_USER_SIGNUP")
    use_external_authentication: bool = Field(
        default=False,
        validation_alias="USE_EXTERNAL_AUTHENTICATION",
    )
    is_demo_site: bool = Field(default=False, validation_alias="IS_DEMO_SITE")
    recaptcha_enabled: bool = Field(default=False, validation_alias="RECAPTCHA_ENABLED")
    recaptcha_secret_key: NonEmptyStr | None = Field(
        default=None,
        validation_alias="RECAPTCHA_SECRET_KEY",
    )
    recaptcha_verify_url: HttpUrl = Field(
        default=DEFAULT_VERIFY_URL,
        validation_alias="RECAPTCHA_VERIFY_URL",
    )
    minimum_password_length: PositiveInt = Field(
        default=6,
        validation_alias="MINIMUM_PASSWORD_LENGTH",
    )
    conceal_unknown_reset_email: bool = Field(
        default=False,
        validation_alias="CONCEAL_UNKNOWN_RESET_EMAIL",
    )
    smtp_host: NonEmptyStr = Field(default="localhost", validation_alias="SMTP_HOST")
    smtp_port: PortInt = Field(default=25, validation_alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, validation_alias="SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, validation_alias="SMTP_PASSWORD")
    smtp_use_starttls: bool = Field(default=False, validation_alias="SMTP_USE_STARTTLS")
    email_sender_address: NonEmptyStr = Field(
        default="noreply@localhost",
        validation_alias="EMAIL_SENDER_ADDRESS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def _require_recaptcha_secret(self) -> "Settings":
        if self.recaptcha_enabled and self.recaptcha_secret_key is None:
            raise ValueError("RECAPTCHA_SECRET_KEY is required when RECAPTCHA_ENABLED is true")
        return self

    def account_policy(self) -> AccountPolicy:
        """Project deployment flags into the policy consumed by account services."""

        return AccountPolicy(
            allow_user_signup=self.allow_user_signup,
            use_external_authentication=self.use_external_authentication,
            is_demo_site=self.is_demo_site,
            captcha_required=self.recaptcha_enabled,
            minimum_password_length=self.minimum_password_length,
            conceal_unknown_reset_email=self.conceal_unknown_reset_email,
        )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
