"""
Album-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AlbumCreate(BaseModel):
    """Schema for album creation."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    is_public: bool


class AlbumUpdate(BaseModel):
    """
    Partial album update.
    Only fields present in the request are applied; null clears
    description, category and cover_photo_id.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    is_public: Optional[bool] = None
    cover_photo_id: Optional[int] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for name in ("title", "is_public"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class AlbumResponse(BaseModel):
    """Schema for album response."""

    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    cover_photo_id: Optional[int] = None
    is_public: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AlbumDeleteResponse(BaseModel):
    """Result of an album delete (photos are removed with it)."""

    album_id: int
    photos_deleted: int
