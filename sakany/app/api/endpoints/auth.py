# sakany/app/api/endpoints/auth.py
"""
Account entry points: register, login (with optional second factor),
logout and password reset.

A successful login answers with the user and sets the session cookie.
When the account has two-factor enabled, login answers with a challenge
token instead and no cookie; POST /login/2fa exchanges it for a session.
"""
from typing import Optional, Union

from fastapi import APIRouter, Depends, Response, status

from sakany.app.api import deps
from sakany.app.core.config import Settings
from sakany.app.schemas.user import (
    ForgotPasswordRequest,
    MessageResponse,
    MfaChallengeResponse,
    ResetPasswordRequest,
    TwoFactorLogin,
    UserCreate,
    UserLogin,
    UserResponse,
)
from sakany.app.services.auth import AuthResult, AuthService, AuthState

router = APIRouter()


def set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def _authenticated(result: AuthResult, response: Response, settings: Settings) -> UserResponse:
    set_session_cookie(response, result.session_id, settings)
    return UserResponse.model_validate(result.user)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
        user_in: UserCreate,
        response: Response,
        session_id: Optional[str] = Depends(deps.get_session_id),
        auth: AuthService = Depends(deps.get_auth_service),
        settings: Settings = Depends(deps.get_settings),
):
    result = await auth.register(
        email=user_in.email,
        password=user_in.password,
        display_name=user_in.display_name,
        is_landlord=user_in.is_landlord,
        is_admin_requested=user_in.is_admin,
        preferences=user_in.preferences.model_dump() if user_in.preferences else None,
        session_id=session_id,
    )
    return _authenticated(result, response, settings)


@router.post("/login", response_model=Union[UserResponse, MfaChallengeResponse])
async def login(
        credentials: UserLogin,
        response: Response,
        session_id: Optional[str] = Depends(deps.get_session_id),
        auth: AuthService = Depends(deps.get_auth_service),
        settings: Settings = Depends(deps.get_settings),
):
    result = await auth.login(credentials.email, credentials.password, session_id)

    if result.state is AuthState.MFA_PENDING:
        return MfaChallengeResponse(challenge_token=result.challenge_token)

    return _authenticated(result, response, settings)


@router.post("/login/2fa", response_model=UserResponse)
async def login_second_factor(
        body: TwoFactorLogin,
        response: Response,
        session_id: Optional[str] = Depends(deps.get_session_id),
        auth: AuthService = Depends(deps.get_auth_service),
        settings: Settings = Depends(deps.get_settings),
):
    result = await auth.verify_two_factor(body.challenge_token, body.code, session_id)
    return _authenticated(result, response, settings)


@router.post("/logout", response_model=MessageResponse)
async def logout(
        response: Response,
        session_id: Optional[str] = Depends(deps.get_session_id),
        auth: AuthService = Depends(deps.get_auth_service),
        settings: Settings = Depends(deps.get_settings),
):
    await auth.logout(session_id)
    clear_session_cookie(response, settings)
    return MessageResponse(message="Logged out")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
        body: ForgotPasswordRequest,
        auth: AuthService = Depends(deps.get_auth_service),
):
    message = await auth.request_password_reset(body.email)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
        body: ResetPasswordRequest,
        auth: AuthService = Depends(deps.get_auth_service),
):
    await auth.complete_password_reset(body.token, body.password)
    return MessageResponse(message="Password updated successfully")
