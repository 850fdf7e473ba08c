"""FastAPI router exposing the account lifecycle endpoints."""

from __future__ import annotations

from collections.abc import Iterable
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Request

from wiki_identity.application.dto.account_models import (
    ActivationResponse,
    CompleteResetRequest,
    CompleteResetResponse,
    EmailRequest,
    ErrorItem,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    ResendConfirmationResponse,
    ResetKeyResponse,
    ResetRequestResponse,
    SignupRequest,
    SignupResponse,
)
from wiki_identity.application.services.activation_service import (
    ActivationOutcome,
    ActivationService,
)
from wiki_identity.application.services.auth_service import AuthOutcome, AuthService
from wiki_identity.application.services.password_reset_service import (
    PasswordResetService,
    ResetCompleteOutcome,
    ResetRequestOutcome,
)
from wiki_identity.application.services.profile_service import (
    ProfileOutcome,
    ProfileService,
    ProfileUpdateInput,
    ProfileUpdateOutcome,
)
from wiki_identity.application.services.signup_service import (
    ResendOutcome,
    SignupInput,
    SignupOutcome,
    SignupService,
)
from wiki_identity.domain.auth.errors import AccountError
from wiki_identity.infrastructure.http.session_context import (
    read_session_context,
    store_session_context,
)

HOME_PATH = "/"
LOGIN_PATH = "/account/login"
SIGNUP_PATH = "/account/signup"


def build_account_router(
    *,
    auth_service: AuthService,
    signup_service: SignupService,
    activation_service: ActivationService,
    password_reset_service: PasswordResetService,
    profile_service: ProfileService,
) -> APIRouter:
    """Build router exposing signup, login, profile and password reset endpoints."""

    router = APIRouter(prefix="/account", tags=["account"])

    @router.post("/signup", response_model=SignupResponse, status_code=201)
    async def signup(payload: SignupRequest, request: Request) -> SignupResponse:
        result = await signup_service.signup(
            session=read_session_context(request),
            form=SignupInput(
                email=payload.email,
                username=payload.username,
                password=payload.password,
                password_confirmation=payload.password_confirmation,
                first_name=payload.first_name,
                last_name=payload.last_name,
            ),
            captcha_token=payload.captcha_token,
            remote_ip=request.client.host if request.client else None,
        )
        if result.outcome is SignupOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if result.outcome is SignupOutcome.INVALID or result.user is None:
            _fail(422, result.errors)
        return SignupResponse(
            user_id=result.user.user_id,
            email=result.user.email,
            email_sent=result.outcome is SignupOutcome.CREATED,
        )

    @router.get("/activate/{activation_key}", response_model=ActivationResponse)
    async def activate(activation_key: str) -> ActivationResponse:
        result = await activation_service.activate(activation_key=activation_key)
        if result.outcome is ActivationOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if result.user is None:
            _fail(404, _present(result.error))
        return ActivationResponse(user_id=result.user.user_id, activated=True)

    @router.post("/resend-confirmation", response_model=ResendConfirmationResponse)
    async def resend_confirmation(payload: EmailRequest) -> ResendConfirmationResponse:
        result = await signup_service.resend_confirmation(email=payload.email)
        if result.outcome is ResendOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if result.outcome is ResendOutcome.RESTART_SIGNUP or result.user is None:
            _redirect(SIGNUP_PATH)
        return ResendConfirmationResponse(
            email=result.user.email,
            email_sent=result.outcome is ResendOutcome.SENT,
        )

    @router.post("/login", response_model=LoginResponse)
    async def login(payload: LoginRequest, request: Request) -> LoginResponse:
        result = await auth_service.authenticate(
            email=payload.email,
            password=payload.password,
            from_url=payload.from_url,
        )
        if result.outcome is AuthOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if result.outcome is not AuthOutcome.SUCCESS or result.session.principal_id is None:
            _fail(401, _present(result.error))
        store_session_context(request, result.session)
        return LoginResponse(
            user_id=result.session.principal_id,
            redirect_to=result.redirect_to or HOME_PATH,
        )

    @router.post("/logout", status_code=204)
    async def logout(request: Request) -> None:
        cleared = auth_service.logout(session=read_session_context(request))
        store_session_context(request, cleared)

    @router.get("/profile", response_model=ProfileResponse)
    async def get_profile(request: Request) -> ProfileResponse:
        session = read_session_context(request)
        result = await profile_service.get_profile(requesting_principal_id=session.principal_id)
        if result.outcome is ProfileOutcome.NOT_LOGGED_IN:
            _fail(401, ())
        if result.outcome is ProfileOutcome.EXTERNALLY_MANAGED:
            raise HTTPException(status_code=204)
        if result.user is None:
            _fail(404, ())
        user = result.user
        return ProfileResponse(
            user_id=user.user_id,
            email=user.email,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            is_activated=user.is_activated,
        )

    @router.post("/profile", response_model=ProfileUpdateResponse)
    async def update_profile(
        payload: ProfileUpdateRequest,
        request: Request,
    ) -> ProfileUpdateResponse:
        session = read_session_context(request)
        result = await profile_service.update_profile(
            requesting_principal_id=session.principal_id,
            update=ProfileUpdateInput(
                user_id=payload.user_id,
                email=payload.email,
                username=payload.username,
                first_name=payload.first_name,
                last_name=payload.last_name,
                password=payload.password,
                password_confirmation=payload.password_confirmation,
            ),
        )
        outcome = result.outcome
        if outcome is ProfileUpdateOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if outcome is ProfileUpdateOutcome.NOT_LOGGED_IN:
            _fail(401, ())
        if outcome is ProfileUpdateOutcome.TAMPERED:
            _redirect(LOGIN_PATH)
        if outcome is ProfileUpdateOutcome.FORBIDDEN:
            _fail(403, result.errors)
        if outcome is ProfileUpdateOutcome.LOCKED:
            _fail(423, result.errors)
        if outcome is ProfileUpdateOutcome.INVALID:
            _fail(422, result.errors)
        return ProfileUpdateResponse(
            profile_updated=result.profile_updated,
            password_updated=result.password_updated,
            errors=[ErrorItem.from_error(error) for error in result.errors],
        )

    @router.post("/reset-password", response_model=ResetRequestResponse)
    async def request_reset(payload: EmailRequest) -> ResetRequestResponse:
        result = await password_reset_service.request_reset(email=payload.email)
        outcome = result.outcome
        if outcome is ResetRequestOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if outcome is ResetRequestOutcome.LOCKED:
            _fail(423, _present(result.error))
        if outcome is ResetRequestOutcome.INVALID:
            _fail(422, _present(result.error))
        if outcome is ResetRequestOutcome.NOT_FOUND:
            _fail(404, _present(result.error))
        if outcome is ResetRequestOutcome.SERVER_ERROR:
            _fail(500, _present(result.error))
        return ResetRequestResponse(
            email=result.email or "",
            sent=outcome is ResetRequestOutcome.SENT,
        )

    @router.get("/reset-password/{password_reset_key}", response_model=ResetKeyResponse)
    async def check_reset_key(password_reset_key: str) -> ResetKeyResponse:
        result = await password_reset_service.check_reset_key(
            password_reset_key=password_reset_key,
        )
        if result.outcome is ResetCompleteOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if result.user is None:
            _fail(404, _present(result.error))
        return ResetKeyResponse(email=result.user.email, username=result.user.username)

    @router.post("/reset-password/{password_reset_key}", response_model=CompleteResetResponse)
    async def complete_reset(
        password_reset_key: str,
        payload: CompleteResetRequest,
    ) -> CompleteResetResponse:
        result = await password_reset_service.complete_reset(
            password_reset_key=password_reset_key,
            password=payload.password,
            password_confirmation=payload.password_confirmation,
        )
        outcome = result.outcome
        if outcome is ResetCompleteOutcome.REDIRECT:
            _redirect(HOME_PATH)
        if outcome is ResetCompleteOutcome.LOCKED:
            _fail(423, _present(result.error))
        if outcome is ResetCompleteOutcome.INVALID:
            _fail(422, _present(result.error))
        if outcome is not ResetCompleteOutcome.CHANGED:
            _fail(404, _present(result.error))
        return CompleteResetResponse(changed=True)

    return router


def _present(error: AccountError | None) -> tuple[AccountError, ...]:
    return () if error is None else (error,)


def _fail(status_code: int, errors: Iterable[AccountError]) -> NoReturn:
    """Raise an HTTP error whose detail lists field-scoped account errors."""

    detail = [ErrorItem.from_error(error).model_dump() for error in errors]
    raise HTTPException(status_code=status_code, detail=detail)


def _redirect(location: str) -> NoReturn:
    """Raise the redirect-equivalent response used for no-op outcomes."""

    raise HTTPException(status_code=303, detail="redirect", headers={"Location": location})
