# sakany/app/api/endpoints/users.py
from typing import Optional

from fastapi import APIRouter, Depends, Response

from sakany.app.api import deps
from sakany.app.api.endpoints.auth import clear_session_cookie
from sakany.app.core.config import Settings
from sakany.app.models.user import User
from sakany.app.schemas.user import (
    MessageResponse,
    TwoFactorResponse,
    TwoFactorToggle,
    UserProfileUpdate,
    UserResponse,
)
from sakany.app.services.auth import AuthService

router = APIRouter()


@router.get("", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(deps.get_current_user)):
    return current_user


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
        body: UserProfileUpdate,
        current_user: User = Depends(deps.get_current_user),
        auth: AuthService = Depends(deps.get_auth_service),
):
    fields = body.model_dump(exclude_unset=True, exclude={"current_password"})
    return await auth.update_profile(current_user.id, fields, body.current_password)


@router.delete("/profile", response_model=MessageResponse)
async def delete_profile(
        response: Response,
        current_user: User = Depends(deps.get_current_user),
        session_id: Optional[str] = Depends(deps.get_session_id),
        auth: AuthService = Depends(deps.get_auth_service),
        settings: Settings = Depends(deps.get_settings),
):
    await auth.delete_account(current_user.id, session_id)
    clear_session_cookie(response, settings)
    return MessageResponse(message="Profile deleted")


@router.post("/2fa", response_model=TwoFactorResponse)
async def toggle_two_factor(
        body: TwoFactorToggle,
        current_user: User = Depends(deps.get_current_user),
        auth: AuthService = Depends(deps.get_auth_service),
):
    setup = await auth.toggle_two_factor(current_user.id, body.enabled)
    return TwoFactorResponse(
        message="2FA settings updated",
        two_factor_enabled=setup.enabled,
        otpauth_uri=setup.otpauth_uri,
        qr_code=setup.qr_code,
    )
