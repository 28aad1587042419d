"""Auth request/response schemas

Bodies use camelCase on the wire (``refreshToken``, ``expiresIn``) and
snake_case in Python.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel

from app.schemas.user import UserResponse

MIN_PASSWORD_LENGTH = 6


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, description="At least 6 characters")


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., min_length=1)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int   # seconds until the access token expires


class AuthResponse(TokenResponse):
    """Returned by signup and login"""
    user: UserResponse


class SuccessResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None


class LogoutAllResponse(SuccessResponse):
    revoked: int


class MeResponse(CamelModel):
    user: UserResponse


class SessionResponse(CamelModel):
    """Session metadata; never includes token material"""
    id: str
    created_at: datetime
    expires_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class SessionListResponse(CamelModel):
    sessions: List[SessionResponse]
    count: int
