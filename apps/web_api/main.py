"""web-api entrypoint and account service wiring."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from wiki_identity.application.ports.account_email_port import AccountEmailPort
from wiki_identity.application.ports.captcha_verifier_port import CaptchaVerifierPort
from wiki_identity.application.ports.password_hasher_port import PasswordHasherPort
from wiki_identity.application.ports.token_generator_port import TokenGeneratorPort
from wiki_identity.application.services.activation_service import ActivationService
from wiki_identity.application.services.auth_service import AuthService
from wiki_identity.application.services.password_reset_service import PasswordResetService
from wiki_identity.application.services.profile_service import ProfileService
from wiki_identity.application.services.signup_service import SignupService
from wiki_identity.application.services.token_issuer import TokenIssuer
from wiki_identity.config.settings import Settings, load_settings
from wiki_identity.domain.auth.account_policy import AccountPolicy
from wiki_identity.infrastructure.captcha.recaptcha_client import RecaptchaVerifier
from wiki_identity.infrastructure.db.session import create_session_factory
from wiki_identity.infrastructure.db.user_repository import SqlAlchemyUserRepository
from wiki_identity.infrastructure.email.smtp_account_email import SmtpAccountEmailSender
from wiki_identity.infrastructure.http.account_router import build_account_router
from wiki_identity.infrastructure.logging import configure_logging
from wiki_identity.infrastructure.security.password_hasher import BcryptPasswordHasher
from wiki_identity.infrastructure.security.token_service import OpaqueTokenService

WEB_API_HOST = "0.0.0.0"
WEB_API_PORT = 8000
logger = logging.getLogger(__name__)


def build_email_sender(settings: Settings) -> AccountEmailPort:
    """Build SMTP email adapter from runtime settings."""

    return SmtpAccountEmailSender(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender_address=settings.email_sender_address,
        public_base_url=str(settings.public_base_url),
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_starttls=settings.smtp_use_starttls,
    )


def build_captcha_verifier(settings: Settings) -> CaptchaVerifierPort | None:
    """Build reCAPTCHA adapter when CAPTCHA is enabled."""

    if not settings.recaptcha_enabled or settings.recaptcha_secret_key is None:
        return None
    return RecaptchaVerifier(
        secret_key=settings.recaptcha_secret_key,
        verify_url=str(settings.recaptcha_verify_url),
    )


def create_app(
    *,
    database_url: str | None = None,
    session_secret_key: str | None = None,
    policy: AccountPolicy | None = None,
    email_sender: AccountEmailPort | None = None,
    captcha_verifier: CaptchaVerifierPort | None = None,
    password_hasher: PasswordHasherPort | None = None,
    token_generator: TokenGeneratorPort | None = None,
) -> FastAPI:
    """Create FastAPI app exposing account lifecycle routes.

    Explicit arguments win over environment settings; settings are only loaded
    when something required was not supplied.
    """

    should_load_settings = (
        database_url is None
        or session_secret_key is None
        or policy is None
        or email_sender is None
    )
    if should_load_settings:
        settings = load_settings()
        configure_logging(level=settings.log_level)
        if database_url is None:
            database_url = settings.database_url
        if session_secret_key is None:
            session_secret_key = settings.session_secret_key
        if policy is None:
            policy = settings.account_policy()
        if email_sender is None:
            email_sender = build_email_sender(settings)
        if captcha_verifier is None:
            captcha_verifier = build_captcha_verifier(settings)

    if password_hasher is None:
        password_hasher = BcryptPasswordHasher()
    if token_generator is None:
        token_generator = OpaqueTokenService()

    assert database_url is not None
    assert session_secret_key is not None
    assert policy is not None
    assert email_sender is not None

    session_factory = create_session_factory(database_url)
    users = SqlAlchemyUserRepository(session_factory)
    token_issuer = TokenIssuer(users=users, token_generator=token_generator)

    app = FastAPI()
    app.add_middleware(SessionMiddleware, secret_key=session_secret_key, same_site="lax")
    app.include_router(
        build_account_router(
            auth_service=AuthService(users=users, password_hasher=password_hasher, policy=policy),
            signup_service=SignupService(
                users=users,
                token_issuer=token_issuer,
                password_hasher=password_hasher,
                email_sender=email_sender,
                policy=policy,
                captcha_verifier=captcha_verifier,
            ),
            activation_service=ActivationService(token_issuer=token_issuer, policy=policy),
            password_reset_service=PasswordResetService(
                users=users,
                token_issuer=token_issuer,
                password_hasher=password_hasher,
                email_sender=email_sender,
                policy=policy,
            ),
            profile_service=ProfileService(
                users=users,
                password_hasher=password_hasher,
                policy=policy,
            ),
        )
    )
    logger.info(
        "web_api_configured signup=%s external_auth=%s demo=%s captcha=%s",
        policy.signup_available,
        policy.use_external_authentication,
        policy.is_demo_site,
        policy.captcha_required,
    )
    return app


def run_asgi_server(*, host: str = WEB_API_HOST, port: int = WEB_API_PORT) -> None:
    """Run web-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.web_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run web-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
