"""Pydantic schemas for request/response validation"""
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    SessionListResponse,
    SessionResponse,
    SignupRequest,
    TokenResponse,
)
from app.schemas.user import ProfileResponse, ProfileUpdate, UserResponse

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "SessionListResponse",
    "SessionResponse",
    "SignupRequest",
    "TokenResponse",
    "ProfileResponse",
    "ProfileUpdate",
    "UserResponse",
]
