# sakany/app/schemas/user.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

PASSWORD_MIN_LENGTH = 6


class Preferences(BaseModel):
    location: Optional[str] = None
    budget: Optional[int] = Field(default=None, ge=0)
    property_type: Optional[str] = None
    lifestyle: List[str] = Field(default_factory=list)


# Request body for POST /register
class UserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    display_name: str = Field(..., min_length=1, max_length=100)
    is_landlord: bool = False
    # Only honoured for allow-listed emails; anything else is refused
    is_admin: bool = False
    preferences: Optional[Preferences] = None


class UserLogin(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TwoFactorLogin(BaseModel):
    challenge_token: str = Field(..., min_length=1)
    code: str = Field(..., min_length=6, max_length=8)


# PATCH /user/profile; current_password is required to change password
class UserProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN_LENGTH)
    current_password: Optional[str] = None
    preferences: Optional[Preferences] = None


# PATCH /admin/users/{id}
class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN_LENGTH)
    is_admin: Optional[bool] = None
    is_landlord: Optional[bool] = None
    preferences: Optional[Preferences] = None


# Returned to the client (NEVER includes hash, secret or reset token)
class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: str
    is_landlord: bool
    is_admin: bool
    two_factor_enabled: bool
    preferences: Optional[Preferences] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class MfaChallengeResponse(BaseModel):
    mfa_required: bool = True
    challenge_token: str
    message: str = "Two-factor code required"


class ForgotPasswordRequest(BaseModel):
    # Plain str: a malformed address gets the same answer as an unknown one
    email: str


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)


class TwoFactorToggle(BaseModel):
    enabled: bool


class TwoFactorResponse(BaseModel):
    message: str
    two_factor_enabled: bool
    otpauth_uri: Optional[str] = None
    qr_code: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
