"""Database models"""
from app.models.password_reset import PasswordReset
from app.models.refresh_token import RefreshToken
from app.models.revoked_token import RevokedToken
from app.models.user import User

__all__ = ["PasswordReset", "RefreshToken", "RevokedToken", "User"]
