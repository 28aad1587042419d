"""User and profile schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel

class UserResponse(BaseModel):
    id: str
    email: str
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ProfileResponse(UserResponse):
    name: Optional[str] = None
    home_country: Optional[str] = None
    currency: str
    updated_at: datetime


class ProfileUpdate(BaseModel):
    """Partial profile update: only the fields present in the body are applied."""
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    home_country: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ProfileEnvelope(BaseModel):
    user: ProfileResponse


class ProfileUpdateResponse(BaseModel):
    success: bool = True
    message: str
    user: ProfileResponse


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., min_length=1)
