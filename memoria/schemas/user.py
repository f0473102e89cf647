"""
User-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserSync(BaseModel):
    """
    Profile data pushed on login.
    The identity itself comes from the verified bearer token, never from the body.
    """

    email: EmailStr
    name: str = Field("", max_length=255)
    username: str = Field("", max_length=100)
    image_url: Optional[str] = Field(None, max_length=1024)


class UserResponse(BaseModel):
    """Public user profile (excludes email and external identity)."""

    id: int
    name: str
    username: str
    image_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CurrentUserResponse(UserResponse):
    """Profile of the authenticated user, including private fields."""

    external_id: str
    email: str
    updated_at: datetime


class UsernameAvailability(BaseModel):
    """Schema for username availability check."""

    username: str
    available: bool


class IdentityClaims(BaseModel):
    """Verified claims of an identity-provider token."""

    sub: str  # External identity
    exp: Optional[datetime] = None
    email: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
    picture: Optional[str] = None
